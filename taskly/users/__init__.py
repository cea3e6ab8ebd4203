"""User directory - profiles and email lookups."""
from __future__ import annotations

from .directory import UserDirectory

__all__ = ["UserDirectory"]
