"""Instance directory resolution and metadata loading."""

import json
from pathlib import Path
from typing import Any

import structlog

from ..config import ModsyncConfig
from ..constants import INSTANCE_MANIFEST_FILENAME
from ..utils.exceptions import InstanceManifestError, InstanceNotFoundError

logger = structlog.get_logger(__name__)


def resolve_instance_root(config: ModsyncConfig, override: Path | None = None) -> Path:
    """
    Determine the instance directory for a run.

    An explicit override (CLI option) wins over the configured location.

    Args:
        config: Loaded configuration
        override: Optional directory given on the command line

    Returns:
        Absolute path of an existing directory

    Raises:
        InstanceNotFoundError: If no directory is defined or it does not exist
    """
    location = override or config.instance.location
    if location is None or str(location) == "":
        raise InstanceNotFoundError(None)

    root = Path(location).expanduser()
    if not root.is_dir():
        raise InstanceNotFoundError(str(location))
    return root.resolve()


def load_instance_manifest(instance_root: Path) -> dict[str, Any]:
    """
    Read the launcher's instance metadata (``minecraftinstance.json``).

    This is the document plan producers diff against.

    Raises:
        InstanceManifestError: If the file is missing or not a JSON object
    """
    manifest_path = instance_root / INSTANCE_MANIFEST_FILENAME
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise InstanceManifestError(f"Instance metadata not found: {manifest_path}") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InstanceManifestError(f"Cannot read instance metadata {manifest_path}: {e}") from e

    if not isinstance(data, dict):
        raise InstanceManifestError(
            f"Invalid instance metadata in {manifest_path}: "
            f"expected object, got {type(data).__name__}"
        )

    logger.debug("Loaded instance metadata", path=str(manifest_path))
    return data


def summarize_manifest(manifest: dict[str, Any]) -> dict[str, Any]:
    """Extract the fields shown to users from instance metadata."""
    addons = manifest.get("installedAddons") or []
    base_loader = manifest.get("baseModLoader") or {}
    return {
        "name": manifest.get("name", "(unnamed)"),
        "game_version": manifest.get("gameVersion", "unknown"),
        "mod_loader": base_loader.get("name") if isinstance(base_loader, dict) else None,
        "installed_addons": len(addons) if isinstance(addons, list) else 0,
    }
