"""Filesystem access for the instance directory."""

from .mutator import FileMutator

__all__ = ["FileMutator"]
