"""Task Store adapter - owned task CRUD against the ``todos`` collection.

Architecture:
- Firestore path: todos/{task_id}, owner in ``userId``/``owner``
- Every call is a single-document operation; nothing here is transactional.

Callers holding a local task list apply their change only after the call
returns, so the list never runs ahead of the store.
"""
from __future__ import annotations

from datetime import date
import logging
from typing import Any, Dict, List, Optional

from ..documents import TASKS, DocumentStore
from ..errors import TaskNotFound, ValidationError
from ..models import Category, Priority, Task, UserIdentity, utc_now

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "completed", "category", "dueDate", "priority")
IMMUTABLE_FIELDS = ("originalOwner", "owner", "userId", "createdAt")

VALID_CATEGORIES = [c.value for c in Category]
VALID_PRIORITIES = [p.value for p in Priority]


def normalize_task_fields(fields: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    """Validate user-supplied task fields and return their stored form.

    Args:
        fields: Document-named fields (``title``, ``dueDate``...)
        partial: True for updates, where every field is optional

    Returns:
        Cleaned field dictionary ready to write

    Raises:
        ValidationError: on unknown, immutable or malformed fields
    """
    cleaned: Dict[str, Any] = {}

    for key, value in fields.items():
        if key in IMMUTABLE_FIELDS:
            raise ValidationError(f"Field '{key}' cannot be changed.")
        if key not in EDITABLE_FIELDS:
            raise ValidationError(f"Unknown task field '{key}'.")

        if key == "title":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("Task title is required.")
            cleaned["title"] = value.strip()
        elif key == "description":
            cleaned["description"] = value or ""
        elif key == "completed":
            if not isinstance(value, bool):
                raise ValidationError("Field 'completed' must be true or false.")
            cleaned["completed"] = value
        elif key == "category":
            if value not in VALID_CATEGORIES:
                raise ValidationError(f"Invalid category '{value}'. Valid: {VALID_CATEGORIES}")
            cleaned["category"] = value
        elif key == "priority":
            if value not in VALID_PRIORITIES:
                raise ValidationError(f"Invalid priority '{value}'. Valid: {VALID_PRIORITIES}")
            cleaned["priority"] = value
        elif key == "dueDate":
            cleaned["dueDate"] = _normalize_due_date(value)

    if not partial and "title" not in cleaned:
        raise ValidationError("Task title is required.")

    return cleaned


def _normalize_due_date(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)).isoformat()
    except ValueError as exc:
        raise ValidationError(f"Invalid dueDate '{value}'. Expected YYYY-MM-DD.") from exc


class TaskStore:
    """Owned-task operations over an injected document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def create_task(self, owner: UserIdentity, fields: Dict[str, Any]) -> Task:
        """Create a new task owned by ``owner``.

        Args:
            owner: The authenticated user creating the task
            fields: title (required), description, category, dueDate, priority

        Returns:
            The created Task with its store-assigned id

        Raises:
            ValidationError: if the title is blank or a field is malformed
        """
        cleaned = normalize_task_fields(fields, partial=False)
        cleaned.pop("completed", None)

        document = {
            "title": cleaned["title"],
            "description": cleaned.get("description", ""),
            "completed": False,
            "category": cleaned.get("category", Category.PERSONAL.value),
            "dueDate": cleaned.get("dueDate"),
            "priority": cleaned.get("priority", Priority.MEDIUM.value),
            "createdAt": utc_now().isoformat(),
            "userId": owner.id,
            "owner": owner.email,
            "originalOwner": owner.email,
        }
        task_id = self.store.add(TASKS, document)
        logger.info("[TaskStore] Created task %s for %s", task_id, owner.email)
        return Task.from_dict(task_id, document)

    def get_task(self, task_id: str) -> Optional[Task]:
        data = self.get_task_data(task_id)
        if data is None:
            return None
        return Task.from_dict(task_id, data)

    def get_task_data(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Return the raw stored document, as copied into share snapshots."""
        return self.store.get(TASKS, task_id)

    def require_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise TaskNotFound(f"Task {task_id} not found.")
        return task

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Write the given fields onto an owned task.

        Returns:
            The cleaned fields that were written

        Raises:
            ValidationError: on invalid fields
            DocumentNotFound: if the task no longer exists
        """
        cleaned = normalize_task_fields(fields, partial=True)
        if not cleaned:
            return cleaned
        self.store.update(TASKS, task_id, cleaned)
        return cleaned

    def delete_task(self, task_id: str) -> None:
        self.store.delete(TASKS, task_id)
        logger.info("[TaskStore] Deleted task %s", task_id)

    def list_owned_tasks(self, user_id: str) -> List[Task]:
        return [Task.from_dict(doc.id, doc.data) for doc in self.store.query(TASKS, "userId", user_id)]
