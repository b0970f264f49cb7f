"""modsync - apply modpack update plans to mod instance directories."""

__version__ = "0.1.0"

from .cli import app  # noqa: E402
from .config import ModsyncConfig  # noqa: E402

__all__ = ["app", "ModsyncConfig", "__version__"]
