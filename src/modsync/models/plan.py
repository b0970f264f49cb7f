"""Pydantic models for update plans.

An update plan is produced outside modsync (by comparing a remote modpack
manifest against the local instance metadata) and handed to the reconciler
as a JSON document. These models validate that document.

Design Principles:
- Wire names are camelCase (``oldFilename``, ``downloadUrl``); Python code
  uses the snake_case attribute names. Both spellings are accepted on input.
- Unknown fields are allowed so newer plan producers keep working.
- Identifiers (``addonID``, ``fileID``) are opaque to the engine.

Usage:
    plan = UpdatePlan.model_validate_json(path.read_text())
    plan.total  # denominator for progress percentages
"""

from pydantic import BaseModel, Field, field_validator


class UpdateFile(BaseModel):
    """One mod file action.

    Attributes:
        name: Display name, informational only
        filename: On-disk filename within the mods directory
        old_filename: File to remove before a replacement is written
            (present only for changed entries)
        addon_id: Remote project identifier
        file_id: Remote file version identifier
        download_url: Remote content location; absent means nothing to fetch
        required: Informational flag, not used by the reconciler
    """

    name: str = ""
    filename: str
    old_filename: str | None = Field(None, alias="oldFilename")
    addon_id: int | str | None = Field(None, alias="addonID")
    file_id: int | str | None = Field(None, alias="fileID")
    download_url: str | None = Field(None, alias="downloadUrl")
    required: bool = False

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Reject empty filenames; they would address the mods directory itself."""
        if not v.strip():
            raise ValueError("filename must not be empty")
        return v

    @property
    def label(self) -> str:
        """Identity used in logs and failure records."""
        return self.filename


class OverrideEntry(BaseModel):
    """A non-mod file to place verbatim into the instance root.

    Attributes:
        key: Path-like key, optionally prefixed with ``overrides/``
        content: Raw text or a ``data:<mime>;base64,`` payload; absent means skip
        is_file: False for directory entries, which are never written
    """

    key: str
    content: str | None = None
    is_file: bool = Field(True, alias="isFile")

    model_config = {"extra": "allow", "populate_by_name": True}


class UpdatePlan(BaseModel):
    """The full instruction set for one reconciliation run.

    ``overrides_total`` counts the overrides expected to produce writes and is
    computed by the plan producer; it can be smaller than ``len(overrides)``
    because directory entries are excluded upstream.
    """

    overrides: list[OverrideEntry] = Field(default_factory=list)
    overrides_total: int = Field(0, alias="overridesTotal", ge=0)
    new_addons: list[UpdateFile] = Field(default_factory=list, alias="newAddons")
    changed_addons: list[UpdateFile] = Field(default_factory=list, alias="changedAddons")
    disabled_addons: list[UpdateFile] = Field(default_factory=list, alias="disabledAddons")
    removed_addons: list[UpdateFile] = Field(default_factory=list, alias="removedAddons")

    model_config = {"extra": "allow", "populate_by_name": True}

    @property
    def total(self) -> int:
        """Progress denominator, fixed for the lifetime of a run."""
        return (
            self.overrides_total
            + len(self.new_addons)
            + len(self.changed_addons)
            + len(self.disabled_addons)
            + len(self.removed_addons)
        )

    def phase_counts(self) -> dict[str, int]:
        """Number of entries per phase, in execution order."""
        return {
            "add": len(self.new_addons),
            "replace": len(self.changed_addons),
            "disable": len(self.disabled_addons),
            "remove": len(self.removed_addons),
            "overrides": self.overrides_total,
        }
