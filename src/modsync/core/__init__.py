"""Core plan handling: loading, override decoding and instance metadata."""

from .instance import load_instance_manifest, resolve_instance_root, summarize_manifest
from .overrides import OverrideDecoder, is_binary_key, strip_overrides_prefix
from .plan_loader import load_plan, parse_plan

__all__ = [
    "OverrideDecoder",
    "is_binary_key",
    "strip_overrides_prefix",
    "load_plan",
    "parse_plan",
    "resolve_instance_root",
    "load_instance_manifest",
    "summarize_manifest",
]
