"""Configuration management for modsync."""

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_USER_AGENT,
    DISABLED_SUFFIX,
    MODS_DIRNAME,
)


@dataclass
class InstanceConfig:
    """Location and layout of the mod instance directory."""

    location: Path | None = None
    mods_dir: str = MODS_DIRNAME
    disabled_suffix: str = DISABLED_SUFFIX


@dataclass
class FetchConfig:
    """HTTP download configuration."""

    api_key: str | None = None
    timeout: int = DEFAULT_FETCH_TIMEOUT
    verify_ssl: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class ModsyncConfig:
    """
    Complete configuration for modsync.

    One attribute per YAML section: ``instance``, ``fetch`` and ``logging``.
    """

    instance: InstanceConfig = field(default_factory=InstanceConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "ModsyncConfig":
        """
        Load configuration from a YAML file.

        Missing sections and keys keep their defaults; an empty file is the
        default configuration.

        Raises:
            ValueError: If the file is not YAML, is not a mapping, or names
                a key no section defines
        """
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(
                f"{config_path} must hold a mapping of sections: "
                f"expected dictionary, got {type(data).__name__}"
            )

        sections = {
            name: _build_section(section_cls, data.get(name), f"{config_path}:{name}")
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections)

    def to_file(self, config_path: Path) -> None:
        """Write the configuration as YAML, leaving out unset values."""
        data = {name: _dump_section(getattr(self, name)) for name in _SECTIONS}
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))

    @classmethod
    def from_env(cls) -> "ModsyncConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            MODSYNC_INSTANCE: Instance directory
            MODSYNC_API_KEY: API key sent with downloads
            MODSYNC_TIMEOUT: Download timeout in seconds (default: 60)
            MODSYNC_VERIFY_SSL: Set to 'false' to disable TLS verification
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            ModsyncConfig instance

        Raises:
            ValueError: If MODSYNC_TIMEOUT is not an integer
        """
        location = os.environ.get("MODSYNC_INSTANCE")
        instance = InstanceConfig(location=Path(location).expanduser() if location else None)

        timeout_str = os.environ.get("MODSYNC_TIMEOUT", str(DEFAULT_FETCH_TIMEOUT))
        try:
            timeout = int(timeout_str)
        except ValueError as e:
            raise ValueError(f"MODSYNC_TIMEOUT must be an integer, got {timeout_str!r}") from e

        verify_ssl_str = os.environ.get("MODSYNC_VERIFY_SSL", "true").lower()
        fetch = FetchConfig(
            api_key=os.environ.get("MODSYNC_API_KEY") or None,
            timeout=timeout,
            verify_ssl=verify_ssl_str not in ("false", "0", "no", "off"),
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(instance=instance, fetch=fetch, logging=logging_config)


_SECTIONS: dict[str, type] = {
    "instance": InstanceConfig,
    "fetch": FetchConfig,
    "logging": LoggingConfig,
}

# Fields stored as strings in YAML and as paths in memory
_PATH_FIELDS = {"location", "file"}


def _build_section(section_cls: type, raw: Any, where: str) -> Any:
    if raw is None:
        return section_cls()
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: expected dictionary, got {type(raw).__name__}")

    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"{where}: unknown keys {', '.join(unknown)}")

    values = dict(raw)
    for name in _PATH_FIELDS & values.keys():
        if values[name]:
            values[name] = Path(values[name]).expanduser()
    return section_cls(**values)


def _dump_section(section: Any) -> dict[str, Any]:
    return {
        name: str(value) if isinstance(value, Path) else value
        for name, value in asdict(section).items()
        if value is not None
    }


def load_config(config_file: Path | None = None) -> ModsyncConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        ModsyncConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return ModsyncConfig.from_file(config_file)
    return ModsyncConfig.from_env()
