"""
regacl Configuration Loader

Reads regacl.yaml and substitutes environment variables in every string:

- ${VAR} must be set
- ${VAR:-default} falls back to default

```yaml
resources:
  - target: 'hklm:software\\${APP_KEY:-Example}'
    owner: "${APP_OWNER}"
```
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from .schema import EngineConfig

logger = logging.getLogger(__name__)

ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

CONFIG_FILENAME = "regacl.yaml"


def _substitute(match: "re.Match") -> str:
    name, default = match.group(1), match.group(2)
    value = os.environ.get(name, default)
    if value is None:
        raise KeyError(f"Environment variable '{name}' is not set and has no default")
    return value


def interpolate_env_vars(value: Any) -> Any:
    """
    Substitute environment variables throughout a parsed YAML tree.

    Raises:
        KeyError: If a variable without a default is not set
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_substitute, value)
    if isinstance(value, dict):
        return {key: interpolate_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_config_from_file(config_path: Union[str, Path], interpolate: bool = True) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        KeyError: If a required environment variable is not set
        yaml.YAMLError: If the YAML is malformed
        pydantic.ValidationError: If a resource declaration is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    if interpolate:
        raw_config = interpolate_env_vars(raw_config)
    return EngineConfig.from_dict(raw_config)


def _candidates(working_dir: Optional[Path]) -> List[Path]:
    roots = [working_dir] if working_dir else []
    roots.append(Path.cwd())
    return [path for root in roots for path in (root / CONFIG_FILENAME, root / "config" / CONFIG_FILENAME)]


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    working_dir: Optional[Union[str, Path]] = None,
) -> EngineConfig:
    """
    Load the explicit file, or the first regacl.yaml found in working_dir,
    working_dir/config, the current directory or ./config. Without any,
    an empty configuration is returned.
    """
    if config_path:
        return load_config_from_file(config_path)

    for path in _candidates(Path(working_dir) if working_dir else None):
        if path.exists():
            return load_config_from_file(path)

    logger.info(f"No {CONFIG_FILENAME} found, using default configuration")
    return EngineConfig()
