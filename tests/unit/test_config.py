"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from src.modsync.config import (
    FetchConfig,
    InstanceConfig,
    LoggingConfig,
    ModsyncConfig,
    load_config,
)


class TestDefaults:
    """Test dataclass defaults."""

    def test_instance_defaults(self):
        config = InstanceConfig()

        assert config.location is None
        assert config.mods_dir == "mods"
        assert config.disabled_suffix == ".disabled"

    def test_fetch_defaults(self):
        config = FetchConfig()

        assert config.api_key is None
        assert config.timeout == 60
        assert config.verify_ssl is True
        assert config.user_agent.startswith("modsync/")

    def test_logging_defaults(self):
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.format == "console"
        assert config.file is None


class TestFromFile:
    """Test YAML loading."""

    def test_full_file(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text(
            yaml.dump(
                {
                    "instance": {"location": str(tmp_path / "pack"), "disabled_suffix": ".off"},
                    "fetch": {"api_key": "k", "timeout": 10, "verify_ssl": False},
                    "logging": {"level": "DEBUG", "format": "json", "file": "logs/modsync.log"},
                }
            )
        )

        config = ModsyncConfig.from_file(config_path)

        assert config.instance.location == tmp_path / "pack"
        assert config.instance.disabled_suffix == ".off"
        assert config.instance.mods_dir == "mods"
        assert config.fetch.api_key == "k"
        assert config.fetch.timeout == 10
        assert config.fetch.verify_ssl is False
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("logs/modsync.log")

    def test_empty_file_uses_defaults(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("")

        config = ModsyncConfig.from_file(config_path)

        assert config.instance.location is None
        assert config.fetch.timeout == 60

    def test_non_mapping_rejected(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="expected dictionary"):
            ModsyncConfig.from_file(config_path)

    def test_invalid_yaml_rejected(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("instance: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            ModsyncConfig.from_file(config_path)

    def test_unknown_key_rejected(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("fetch:\n  apikey: k\n")

        with pytest.raises(ValueError, match="unknown keys apikey"):
            ModsyncConfig.from_file(config_path)

    def test_section_must_be_mapping(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("logging: DEBUG\n")

        with pytest.raises(ValueError, match="logging: expected dictionary"):
            ModsyncConfig.from_file(config_path)

    def test_round_trip(self, tmp_path):
        config = ModsyncConfig(
            instance=InstanceConfig(location=tmp_path / "pack"),
            fetch=FetchConfig(api_key="k"),
        )
        config_path = tmp_path / "nested" / "modsync.yaml"

        config.to_file(config_path)
        loaded = ModsyncConfig.from_file(config_path)

        assert loaded == config

    def test_to_file_drops_unset_values(self, tmp_path):
        config_path = tmp_path / "modsync.yaml"
        ModsyncConfig().to_file(config_path)

        data = yaml.safe_load(config_path.read_text())

        assert "location" not in data["instance"]
        assert "api_key" not in data["fetch"]


class TestFromEnv:
    """Test environment variable loading."""

    def test_defaults_without_env(self, monkeypatch):
        for name in (
            "MODSYNC_INSTANCE",
            "MODSYNC_API_KEY",
            "MODSYNC_TIMEOUT",
            "MODSYNC_VERIFY_SSL",
            "LOG_LEVEL",
            "LOG_FORMAT",
        ):
            monkeypatch.delenv(name, raising=False)

        config = ModsyncConfig.from_env()

        assert config.instance.location is None
        assert config.fetch.api_key is None
        assert config.fetch.verify_ssl is True
        assert config.logging.level == "INFO"

    def test_values_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MODSYNC_INSTANCE", str(tmp_path))
        monkeypatch.setenv("MODSYNC_API_KEY", "env-key")
        monkeypatch.setenv("MODSYNC_TIMEOUT", "15")
        monkeypatch.setenv("LOG_FORMAT", "json")

        config = ModsyncConfig.from_env()

        assert config.instance.location == tmp_path
        assert config.fetch.api_key == "env-key"
        assert config.fetch.timeout == 15
        assert config.logging.format == "json"

    @pytest.mark.parametrize("value", ["false", "0", "no", "OFF"])
    def test_verify_ssl_disabled(self, monkeypatch, value):
        monkeypatch.setenv("MODSYNC_VERIFY_SSL", value)
        assert ModsyncConfig.from_env().fetch.verify_ssl is False

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("MODSYNC_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="MODSYNC_TIMEOUT must be an integer"):
            ModsyncConfig.from_env()


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_file_takes_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MODSYNC_API_KEY", "env-key")
        config_path = tmp_path / "modsync.yaml"
        config_path.write_text("fetch:\n  api_key: file-key\n")

        assert load_config(config_path).fetch.api_key == "file-key"

    def test_env_without_file(self, monkeypatch):
        monkeypatch.setenv("MODSYNC_API_KEY", "env-key")
        assert load_config().fetch.api_key == "env-key"
