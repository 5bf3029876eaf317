"""
Tests for regacl.yaml loading
"""

import pytest
from pydantic import ValidationError

from config import EngineConfig, load_config, load_config_from_file
from config.loader import interpolate_env_vars
from regacl.core.ace import PurgeMode

CONFIG = """
engine:
  dry_run: true
  powershell:
    executable: pwsh

logging:
  level: debug

resources:
  - target: 'hklm:software\\example'
    owner: Administrators
    inherit_from_parent: false
    purge: off
    permissions:
      - IdentityReference: CREATOR OWNER
        RegistryRights: FullControl
        InheritanceFlags: ContainerInherit
        PropagationFlags: InheritOnly
  - target: 'hkcr:.txt'
    purge: listed
    permissions:
      - IdentityReference: Users
        RegistryRights: ReadKey
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "regacl.yaml"
    path.write_text(CONFIG)
    return path


class TestLoadConfig:
    """YAML parsing into EngineConfig"""

    def test_load_from_file(self, config_file):
        config = load_config_from_file(config_file)

        assert config.dry_run is True
        assert config.powershell.executable == "pwsh"
        assert config.logging.level == "DEBUG"
        assert [r.target for r in config.resources] == ["hklm:software\\example", "hkcr:.txt"]

    def test_yaml_off_is_purge_off(self, config_file):
        """Unquoted off is a YAML boolean"""
        config = load_config_from_file(config_file)
        assert config.resources[0].purge is PurgeMode.OFF
        assert config.resources[1].purge is PurgeMode.LISTED

    def test_get_resource(self, config_file):
        config = load_config_from_file(config_file)
        assert config.get_resource("hkcr:.txt").permissions[0].rights == "ReadKey"
        with pytest.raises(KeyError):
            config.get_resource("hklm:missing")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_file(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "regacl.yaml"
        path.write_text("")
        config = load_config_from_file(path)
        assert config.resources == []
        assert config.backend == "powershell"

    def test_invalid_resource(self, tmp_path):
        path = tmp_path / "regacl.yaml"
        path.write_text(
            "resources:\n"
            "  - target: 'hklm:software'\n"
            "    permissions:\n"
            "      - IdentityReference: Users\n"
            "        RegistryRights: Bogus\n"
        )
        with pytest.raises(ValidationError):
            load_config_from_file(path)

    def test_search_working_dir(self, tmp_path, config_file, monkeypatch):
        monkeypatch.chdir(tmp_path.parent)
        config = load_config(working_dir=tmp_path)
        assert len(config.resources) == 2

    def test_search_config_subdirectory(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "regacl.yaml").write_text(CONFIG)
        monkeypatch.chdir(tmp_path)
        assert len(load_config().resources) == 2

    def test_default_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.resources == []
        assert config.dry_run is False

    def test_round_trip_dict(self, config_file):
        config = load_config_from_file(config_file)
        again = EngineConfig.from_dict(config.to_dict())
        assert again.resources == config.resources
        assert again.powershell.executable == "pwsh"

    def test_to_dict_sections(self, config_file):
        """Only the sections the engine reads are serialized"""
        assert set(load_config_from_file(config_file).to_dict()) == {"engine", "logging", "resources"}


class TestEnvInterpolation:
    """${VAR} and ${VAR:-default}"""

    def test_required_variable(self, monkeypatch):
        monkeypatch.setenv("APP_OWNER", "Administrators")
        assert interpolate_env_vars({"owner": "${APP_OWNER}"}) == {"owner": "Administrators"}

    def test_default_value(self, monkeypatch):
        monkeypatch.delenv("APP_KEY", raising=False)
        assert interpolate_env_vars(["hklm:software\\${APP_KEY:-Example}"]) == ["hklm:software\\Example"]

    def test_missing_required_variable(self, monkeypatch):
        monkeypatch.delenv("APP_OWNER", raising=False)
        with pytest.raises(KeyError):
            interpolate_env_vars("${APP_OWNER}")

    def test_non_strings_untouched(self):
        assert interpolate_env_vars({"dry_run": True, "n": 3}) == {"dry_run": True, "n": 3}

    def test_interpolated_in_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REGACL_OWNER", "SYSTEM")
        path = tmp_path / "regacl.yaml"
        path.write_text("resources:\n  - target: 'hklm:software'\n    owner: '${REGACL_OWNER}'\n")
        assert load_config_from_file(path).resources[0].owner == "SYSTEM"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
