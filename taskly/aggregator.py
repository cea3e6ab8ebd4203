"""Task Aggregator - the signed-in user's combined task list.

Merges owned tasks with the user's shared copies, routes each mutation to
the right document (``todos/{id}`` or ``users/{uid}/shared_todos/{sharedId}``)
and enforces view-only permission before anything is written.

The local list changes only after the store confirms a write. Every
mutation reports a ``MutationResult`` so callers can tell the user why
nothing happened.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any, Dict, List, Optional

from .documents import shared_todos
from .errors import NotFound, RemoteCallFailure, ValidationError
from .models import SharedTaskRecord, TaskEntry, UserIdentity, normalize_email, parse_due_date
from .ordering import filter_and_sort
from .sharing import InvitationService
from .task_store import TaskStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class MutationOutcome(str, Enum):
    APPLIED = "applied"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(slots=True)
class MutationResult:
    outcome: MutationOutcome
    message: str = ""
    entry: Optional[TaskEntry] = None
    payload: Any = None

    @property
    def applied(self) -> bool:
        return self.outcome == MutationOutcome.APPLIED


def _result(outcome: MutationOutcome, message: str = "", **kwargs) -> MutationResult:
    return MutationResult(outcome=outcome, message=message, **kwargs)


class TaskAggregator:
    """Owns the local task list for one signed-in user."""

    def __init__(
        self,
        identity: UserIdentity,
        tasks: TaskStore,
        invitations: InvitationService,
    ) -> None:
        self.identity = identity
        self.tasks = tasks
        self.store = tasks.store
        self.invitations = invitations
        self.entries: List[TaskEntry] = []

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_all(self) -> List[TaskEntry]:
        """Load owned tasks followed by shared copies.

        On a store failure the previous list is kept and the error re-raised.
        """
        try:
            owned = [
                TaskEntry(task=task, is_owner=True)
                for task in self.tasks.list_owned_tasks(self.identity.id)
            ]
            shared = [
                SharedTaskRecord.from_dict(doc.id, doc.data).to_entry()
                for doc in self.store.stream(shared_todos(self.identity.id))
            ]
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error fetching tasks for %s: %s", self.identity.email, exc)
            raise

        self.entries = owned + shared
        return self.entries

    def find(self, task_id: str, shared_id: Optional[str] = None) -> Optional[TaskEntry]:
        if shared_id:
            return next((e for e in self.entries if e.shared_id == shared_id), None)
        return next((e for e in self.entries if e.id == task_id), None)

    def visible(
        self,
        status_filter: str = "all",
        category_filter: str = "all",
        sort_key: str = "createdAt",
    ) -> List[TaskEntry]:
        return filter_and_sort(self.entries, status_filter, category_filter, sort_key)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, fields: Dict[str, Any]) -> MutationResult:
        try:
            task = self.tasks.create_task(self.identity, fields)
        except ValidationError as exc:
            return _result(MutationOutcome.INVALID, exc.message)
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error adding task: %s", exc)
            return _result(MutationOutcome.FAILED, "Could not save the task. Please try again.")

        entry = TaskEntry(task=task, is_owner=True)
        self.entries.insert(0, entry)
        return _result(MutationOutcome.APPLIED, entry=entry)

    def toggle_completion(self, task_id: str, shared_id: Optional[str] = None) -> MutationResult:
        """Flip completion on an owned task or on the caller's shared copy."""
        entry = self.find(task_id, shared_id)
        if entry is None:
            return _result(MutationOutcome.NOT_FOUND, "Task not found.")
        if entry.read_only:
            return _result(MutationOutcome.FORBIDDEN, "This task is shared with you as view-only.")

        completed = not entry.completed
        try:
            if entry.is_shared:
                self.store.update(
                    shared_todos(self.identity.id),
                    entry.shared_id,
                    {"todoData.completed": completed},
                )
            else:
                self.tasks.update_task(entry.id, {"completed": completed})
        except NotFound as exc:
            logger.warning("[Aggregator] Task %s disappeared before toggle: %s", task_id, exc)
            return _result(MutationOutcome.NOT_FOUND, "Task no longer exists.")
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error updating task %s: %s", task_id, exc)
            return _result(MutationOutcome.FAILED, "Could not update the task. Please try again.")

        entry.task.completed = completed
        return _result(MutationOutcome.APPLIED, entry=entry)

    def edit(
        self,
        task_id: str,
        fields: Dict[str, Any],
        shared_id: Optional[str] = None,
    ) -> MutationResult:
        """Edit the underlying ``todos`` document.

        An edit-permitted holder edits the original task; their own shared
        copy keeps its snapshot until they reload.
        """
        entry = self.find(task_id, shared_id)
        if entry is None:
            return _result(MutationOutcome.NOT_FOUND, "Task not found.")
        if entry.read_only:
            return _result(MutationOutcome.FORBIDDEN, "This task is shared with you as view-only.")

        try:
            written = self.tasks.update_task(entry.id, fields)
        except ValidationError as exc:
            return _result(MutationOutcome.INVALID, exc.message)
        except NotFound as exc:
            logger.warning("[Aggregator] Task %s disappeared before edit: %s", task_id, exc)
            return _result(MutationOutcome.NOT_FOUND, "Task no longer exists.")
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error editing task %s: %s", task_id, exc)
            return _result(MutationOutcome.FAILED, "Could not save your changes. Please try again.")

        for key, value in written.items():
            if key == "dueDate":
                entry.task.due_date = parse_due_date(value)
            else:
                setattr(entry.task, key, value)
        return _result(MutationOutcome.APPLIED, entry=entry)

    def delete(
        self,
        task_id: str,
        is_shared: bool = False,
        shared_id: Optional[str] = None,
    ) -> MutationResult:
        """Delete an owned task, or remove a shared copy from the caller's list.

        Shared deletes only ever touch the caller's own ``shared_todos``.
        """
        if is_shared:
            if not shared_id:
                return _result(MutationOutcome.INVALID, "sharedId is required to remove a shared task.")
            try:
                self.store.delete(shared_todos(self.identity.id), shared_id)
            except RemoteCallFailure as exc:
                logger.error("[Aggregator] Error removing shared task %s: %s", shared_id, exc)
                return _result(MutationOutcome.FAILED, "Could not remove the task. Please try again.")
            self.entries = [e for e in self.entries if e.shared_id != shared_id]
            return _result(MutationOutcome.APPLIED)

        owned = next((e for e in self.entries if not e.is_shared and e.id == task_id), None)
        try:
            if owned is None:
                task = self.tasks.get_task(task_id)
                if task is None:
                    return _result(MutationOutcome.NOT_FOUND, "Task not found.")
                if task.user_id != self.identity.id:
                    return _result(MutationOutcome.FORBIDDEN, "Only the owner can delete this task.")
            self.tasks.delete_task(task_id)
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error deleting task %s: %s", task_id, exc)
            return _result(MutationOutcome.FAILED, "Could not delete the task. Please try again.")

        self.entries = [e for e in self.entries if e.is_shared or e.id != task_id]
        return _result(MutationOutcome.APPLIED)

    def share(self, task_id: str, recipient_email: str, permission: str = "view") -> MutationResult:
        """Invite another user to the task; view-only holders cannot re-share."""
        entry = self.find(task_id)
        if entry is None:
            return _result(MutationOutcome.NOT_FOUND, "Task not found.")
        if entry.read_only:
            return _result(MutationOutcome.FORBIDDEN, "View-only tasks cannot be shared.")

        recipient_email = normalize_email(recipient_email)
        if not EMAIL_PATTERN.match(recipient_email):
            return _result(MutationOutcome.INVALID, "Please enter a valid email address.")
        if recipient_email == normalize_email(self.identity.email):
            return _result(MutationOutcome.INVALID, "You cannot share a task with yourself.")

        try:
            invitation = self.invitations.create_invitation(
                entry.id, self.identity.email, recipient_email, permission
            )
        except ValidationError as exc:
            return _result(MutationOutcome.INVALID, exc.message)
        except NotFound as exc:
            logger.warning("[Aggregator] Share of %s failed: %s", task_id, exc)
            return _result(MutationOutcome.NOT_FOUND, exc.message)
        except RemoteCallFailure as exc:
            logger.error("[Aggregator] Error sharing task %s: %s", task_id, exc)
            return _result(MutationOutcome.FAILED, "Failed to share the task. Please try again.")

        return _result(MutationOutcome.APPLIED, entry=entry, payload=invitation)
