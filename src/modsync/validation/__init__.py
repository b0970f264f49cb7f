"""Validation logic for update plans."""

from .safety import check_plan_paths, resolve_within

__all__ = ["check_plan_paths", "resolve_within"]
