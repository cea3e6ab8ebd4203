"""Taskly - personal task manager with invitation-based task sharing."""
from __future__ import annotations

__version__ = "0.1.0"
