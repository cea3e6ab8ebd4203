"""Task store package - owned task documents."""
from __future__ import annotations

from .store import (
    EDITABLE_FIELDS,
    IMMUTABLE_FIELDS,
    TaskStore,
    normalize_task_fields,
)

__all__ = [
    "EDITABLE_FIELDS",
    "IMMUTABLE_FIELDS",
    "TaskStore",
    "normalize_task_fields",
]
