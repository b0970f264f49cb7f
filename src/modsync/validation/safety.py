"""Path safety checks for plan entries.

Every path a plan names is relative: mod filenames resolve under
``<instance>/mods`` and override keys under ``<instance>``. A plan is produced
from remote data, so a filename such as ``../../.bashrc`` or an absolute key
must never reach the filesystem. Resolution happens lexically (without
following symlinks) so that checks on not-yet-existing files behave the same
as checks on existing ones.
"""

import os
from pathlib import Path, PurePosixPath

import structlog

from ..constants import OVERRIDES_PREFIX
from ..models.plan import UpdatePlan
from ..utils.exceptions import UnsafePathError

logger = structlog.get_logger(__name__)


def resolve_within(root: Path, relative: str) -> Path:
    """
    Resolve ``relative`` under ``root`` and refuse anything that escapes it.

    Both ``/`` and ``\\`` are treated as separators, since plans are written
    on any platform.

    Args:
        root: Directory the path must stay inside
        relative: Plan-supplied relative path

    Returns:
        Absolute, normalized destination path

    Raises:
        UnsafePathError: If the path is empty, absolute, or climbs out of root
    """
    normalized = relative.replace("\\", "/")
    parts = PurePosixPath(normalized).parts
    if not parts or normalized.startswith("/") or ":" in parts[0]:
        raise UnsafePathError(relative)

    base = Path(os.path.abspath(root))
    target = Path(os.path.normpath(base.joinpath(*parts)))
    if target == base or base not in target.parents:
        raise UnsafePathError(relative)
    return target


def check_plan_paths(plan: UpdatePlan) -> list[str]:
    """
    List every path in the plan that would escape its base directory.

    Used for pre-flight validation; the reconciler performs the same check
    per entry while running.

    Args:
        plan: Update plan to inspect

    Returns:
        Offending filenames and keys, in plan order
    """
    nominal_root = Path("/instance")
    unsafe: list[str] = []

    for entry in (
        *plan.new_addons,
        *plan.changed_addons,
        *plan.disabled_addons,
        *plan.removed_addons,
    ):
        for name in (entry.filename, entry.old_filename):
            if name is None:
                continue
            try:
                resolve_within(nominal_root / "mods", name)
            except UnsafePathError:
                unsafe.append(name)

    for override in plan.overrides:
        key = override.key
        if key.lower().startswith(OVERRIDES_PREFIX):
            key = key[len(OVERRIDES_PREFIX) :]
        try:
            resolve_within(nominal_root, key)
        except UnsafePathError:
            unsafe.append(override.key)

    if unsafe:
        logger.warning("Plan contains unsafe paths", count=len(unsafe), paths=unsafe)
    return unsafe
