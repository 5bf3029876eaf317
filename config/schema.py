"""
regacl Configuration Schema

Defines the configuration structure for the reconciliation engine.
All configuration can be specified via regacl.yaml.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from regacl.core.declaration import AclDeclaration

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class PowerShellConfig:
    """Configuration for the PowerShell collaborators"""
    executable: str = "powershell.exe"


@dataclass
class LoggingConfig:
    """Configuration for logging"""
    level: str = "INFO"
    format: str = LOG_FORMAT


@dataclass
class EngineConfig:
    """
    Central configuration for the reconciliation engine.

    Example regacl.yaml:
    ```yaml
    engine:
      dry_run: false
      powershell:
        executable: powershell.exe

    logging:
      level: INFO

    resources:
      - target: 'hklm:software\\example'
        owner: Administrators
        inherit_from_parent: false
        purge: listed
        permissions:
          - IdentityReference: Users
            RegistryRights: ReadKey
    ```
    """
    # Only PowerShell talks to a real registry
    backend: str = "powershell"
    dry_run: bool = False

    powershell: PowerShellConfig = field(default_factory=PowerShellConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Declared ACL resources, reconciled in order
    resources: List[AclDeclaration] = field(default_factory=list)

    def get_resource(self, target: str) -> AclDeclaration:
        """Get the declaration for a target string"""
        for resource in self.resources:
            if resource.target == target:
                return resource
        raise KeyError(f"No resource declared for target {target!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """
        Create EngineConfig from dictionary (e.g., parsed YAML).

        Raises:
            pydantic.ValidationError: If a resource declaration is invalid
        """
        engine_data = data.get("engine", {}) or {}

        powershell_data = engine_data.get("powershell", {}) or {}
        powershell_config = PowerShellConfig(
            executable=powershell_data.get("executable", "powershell.exe"),
        )

        logging_data = data.get("logging", {}) or {}
        logging_config = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            format=logging_data.get("format", LOG_FORMAT),
        )

        resources = [AclDeclaration.from_dict(r) for r in data.get("resources", []) or []]

        return cls(
            backend=engine_data.get("backend", "powershell"),
            dry_run=bool(engine_data.get("dry_run", False)),
            powershell=powershell_config,
            logging=logging_config,
            resources=resources,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)"""
        return {
            "engine": {
                "backend": self.backend,
                "dry_run": self.dry_run,
                "powershell": {"executable": self.powershell.executable},
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
            "resources": [r.model_dump(mode="json", by_alias=True) for r in self.resources],
        }
