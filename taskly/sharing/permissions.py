"""Sharing/Permission Manager - who holds a shared copy, at what level.

Only the task's original owner may enumerate recipients, change their
permission or revoke them.

Finding the holders of a task scans every user's ``shared_todos``
sub-collection (one query per user). That is fine for a handful of users
and does not scale; an index keyed by task id would replace it without
changing the authorization rules here.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..documents import DocumentStore, shared_todos
from ..errors import (
    NotFound,
    RemoteCallFailure,
    SharedRecordNotFound,
    TasklyError,
    UserNotFound,
    ValidationError,
)
from ..models import EPOCH, Permission, SharedTaskRecord, SharedUser, normalize_email
from ..task_store import TaskStore
from ..users import UserDirectory

logger = logging.getLogger(__name__)

VALID_PERMISSIONS = [p.value for p in Permission]


def validate_permission(permission: str) -> str:
    if permission not in VALID_PERMISSIONS:
        raise ValidationError(f"Invalid permission '{permission}'. Valid: {VALID_PERMISSIONS}")
    return permission


class SharingManager:
    """Enumerates, updates and revokes shared-task records."""

    def __init__(self, store: DocumentStore, users: UserDirectory, tasks: TaskStore) -> None:
        self.store = store
        self.users = users
        self.tasks = tasks

    def is_original_owner(self, task_id: str, email: str) -> bool:
        task = self.tasks.get_task(task_id)
        return task is not None and bool(email) and normalize_email(task.original_owner) == normalize_email(email)

    def list_shared_users(self, task_id: str, requester_email: str) -> List[SharedUser]:
        """Return every user holding a shared copy of the task, newest first.

        Fails closed: an unknown task, a requester other than the original
        owner, or a store failure yields an empty list rather than an error.
        """
        try:
            task = self.tasks.get_task(task_id)
        except RemoteCallFailure as exc:
            logger.error("[Sharing] Failed to load task %s: %s", task_id, exc)
            return []

        if task is None:
            logger.warning("[Sharing] Task %s not found", task_id)
            return []

        if not requester_email or normalize_email(task.original_owner) != normalize_email(requester_email):
            logger.warning("[Sharing] %s is not authorized to view shares of %s", requester_email, task_id)
            return []

        try:
            users = self.users.list_users()
        except RemoteCallFailure as exc:
            logger.error("[Sharing] Failed to list users: %s", exc)
            return []

        shared_users: List[SharedUser] = []
        for user in users:
            if normalize_email(user.email) == normalize_email(task.original_owner):
                continue
            try:
                matches = self.store.query(shared_todos(user.id), "todoId", task_id, limit=1)
            except RemoteCallFailure as exc:
                logger.error("[Sharing] Error checking shared status for %s: %s", user.email, exc)
                continue
            if not matches:
                continue

            record = SharedTaskRecord.from_dict(matches[0].id, matches[0].data)
            shared_users.append(
                SharedUser(
                    user_id=user.id,
                    email=user.email,
                    shared_id=record.id,
                    permission=record.permission,
                    added_at=record.added_at,
                )
            )

        shared_users.sort(key=lambda shared: shared.added_at or EPOCH, reverse=True)
        return shared_users

    def update_permission(self, recipient_email: str, shared_id: str, new_permission: str) -> None:
        """Set the permission on a recipient's shared record.

        Both the top-level field and the snapshot copy are written so either
        can be read back.

        Raises:
            ValidationError: if the permission is not view/edit
            UserNotFound: if no user has ``recipient_email``
            SharedRecordNotFound: if the shared record is gone
        """
        new_permission = validate_permission(new_permission)

        user = self.users.find_by_email(recipient_email)
        if user is None:
            raise UserNotFound(f"No user registered with {recipient_email}.")

        path = shared_todos(user.id)
        if self.store.get(path, shared_id) is None:
            raise SharedRecordNotFound(f"Shared record {shared_id} not found for {recipient_email}.")

        self.store.update(path, shared_id, {
            "permission": new_permission,
            "todoData.permission": new_permission,
        })
        logger.info("[Sharing] Permission for %s on %s set to %s", recipient_email, shared_id, new_permission)

    def revoke_access(self, recipient_user_id: str, shared_id: str) -> None:
        """Delete a recipient's shared record. Revoking twice is harmless."""
        self.store.delete(shared_todos(recipient_user_id), shared_id)
        logger.info("[Sharing] Revoked shared record %s from user %s", shared_id, recipient_user_id)


class SharedUserList:
    """The owner's local view of one task's recipients.

    Permission changes are applied locally before the store call and put
    back if it fails; revocations are applied locally only after the store
    confirms.
    """

    def __init__(self, manager: SharingManager, task_id: str, requester_email: str) -> None:
        self.manager = manager
        self.task_id = task_id
        self.requester_email = requester_email
        self.users: List[SharedUser] = []

    def refresh(self) -> List[SharedUser]:
        self.users = self.manager.list_shared_users(self.task_id, self.requester_email)
        return self.users

    def find(self, user_id: str) -> Optional[SharedUser]:
        return next((user for user in self.users if user.user_id == user_id), None)

    def _require(self, user_id: str) -> SharedUser:
        shared_user = self.find(user_id)
        if shared_user is None:
            raise NotFound(f"User {user_id} does not hold task {self.task_id}.")
        return shared_user

    def change_permission(self, user_id: str, new_permission: str) -> SharedUser:
        new_permission = validate_permission(new_permission)
        shared_user = self._require(user_id)

        previous = shared_user.permission
        shared_user.permission = new_permission
        try:
            self.manager.update_permission(shared_user.email, shared_user.shared_id, new_permission)
        except TasklyError as exc:
            shared_user.permission = previous
            logger.error("[Sharing] Permission update for %s failed, reverted: %s", shared_user.email, exc)
            raise
        return shared_user

    def revoke(self, user_id: str) -> None:
        shared_user = self._require(user_id)
        try:
            self.manager.revoke_access(shared_user.user_id, shared_user.shared_id)
        except TasklyError as exc:
            logger.error("[Sharing] Revoking %s failed: %s", shared_user.email, exc)
            raise
        self.users = [user for user in self.users if user.user_id != user_id]
