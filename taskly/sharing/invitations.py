"""Invitation Service - share requests stored under the recipient.

Firestore Structure:
    users/{recipient_id}/invited_todos/{invitation_id} -> Invitation document
    users/{recipient_id}/shared_todos/{shared_id}      -> SharedTaskRecord document

Accepting an invitation is two independent writes (create the shared record,
then delete the invitation). If the delete fails after the create succeeded
the invitation stays pending and accepting it again produces a second
shared record.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..documents import DocumentStore, invited_todos, shared_todos
from ..errors import RecipientNotFound, TaskNotFound, UserNotFound, ValidationError
from ..models import Invitation, InvitationStatus, SharedTaskRecord, utc_now
from ..task_store import TaskStore
from ..users import UserDirectory
from .permissions import validate_permission

logger = logging.getLogger(__name__)


class InvitationService:
    """Creates, lists and resolves task invitations."""

    def __init__(
        self,
        store: DocumentStore,
        users: UserDirectory,
        tasks: TaskStore,
        *,
        dedupe: bool = False,
    ) -> None:
        self.store = store
        self.users = users
        self.tasks = tasks
        self.dedupe = dedupe

    def create_invitation(
        self,
        task_id: str,
        owner_email: str,
        recipient_email: str,
        permission: str = "view",
    ) -> Invitation:
        """Invite ``recipient_email`` to a snapshot of the task as it is now.

        Args:
            task_id: The task being shared
            owner_email: Email of the user sending the invitation
            recipient_email: Email of the registered user being invited
            permission: "view" or "edit"

        Returns:
            The stored Invitation (an existing pending one when dedupe is on)

        Raises:
            ValidationError: if the permission is not view/edit
            TaskNotFound: if the task no longer exists
            RecipientNotFound: if no user record has ``recipient_email``
        """
        permission = validate_permission(permission)

        task_data = self.tasks.get_task_data(task_id)
        if task_data is None:
            raise TaskNotFound(f"Task {task_id} not found.")

        recipient = self.users.find_by_email(recipient_email)
        if recipient is None:
            raise RecipientNotFound(f"No user registered with {recipient_email}.")

        if self.dedupe:
            existing = self._pending_for_task(recipient.id, task_id)
            if existing is not None:
                logger.info(
                    "[Invitations] Reusing pending invitation %s for task %s -> %s",
                    existing.id, task_id, recipient_email,
                )
                return existing

        invitation = Invitation(
            id="",
            task_id=task_id,
            task_data=task_data,
            owner_email=owner_email,
            # Tasks created before re-sharing existed carry only ``owner``.
            original_owner=task_data.get("originalOwner") or task_data.get("owner") or owner_email,
            permission=permission,
            status=InvitationStatus.PENDING.value,
            created_at=utc_now(),
        )
        invitation.id = self.store.add(invited_todos(recipient.id), invitation.to_dict())
        logger.info(
            "[Invitations] %s invited %s to task %s (%s)",
            owner_email, recipient_email, task_id, permission,
        )
        return invitation

    def _pending_for_task(self, recipient_id: str, task_id: str) -> Optional[Invitation]:
        for doc in self.store.query(invited_todos(recipient_id), "todoId", task_id):
            invitation = Invitation.from_dict(doc.id, doc.data)
            if invitation.status == InvitationStatus.PENDING.value:
                return invitation
        return None

    def list_pending_invitations(self, user_email: str) -> List[Invitation]:
        """Return the user's pending invitations; unknown users have none."""
        user = self.users.find_by_email(user_email)
        if user is None:
            return []
        docs = self.store.query(invited_todos(user.id), "status", InvitationStatus.PENDING.value)
        return [Invitation.from_dict(doc.id, doc.data) for doc in docs]

    def resolve_invitation(
        self,
        user_email: str,
        invitation_id: str,
        task_id: Optional[str],
        accept: bool,
    ) -> Optional[str]:
        """Accept or decline an invitation.

        Accepting a still-existing invitation creates a shared record from its
        snapshot, for the task the invitation names. The invitation is deleted
        either way.

        Returns:
            The new shared record id when one was created, else None

        Raises:
            UserNotFound: if the recipient's user record cannot be resolved
            ValidationError: if ``task_id`` is given and is not the invited task
        """
        user = self.users.find_by_email(user_email)
        if user is None:
            raise UserNotFound(f"No user registered with {user_email}.")

        path = invited_todos(user.id)
        data = self.store.get(path, invitation_id)

        invitation = Invitation.from_dict(invitation_id, data) if data is not None else None
        if invitation is not None:
            if task_id is not None and task_id != invitation.task_id:
                raise ValidationError(
                    f"Invitation {invitation_id} is for task {invitation.task_id}, not {task_id}."
                )
            task_id = invitation.task_id

        shared_id = None
        if accept and invitation is not None:
            record = SharedTaskRecord(
                id="",
                task_id=invitation.task_id,
                task_data=invitation.task_data,
                owner_email=invitation.owner_email,
                original_owner=invitation.original_owner,
                permission=invitation.permission,
                added_at=utc_now(),
            )
            shared_id = self.store.add(shared_todos(user.id), record.to_dict())
            logger.info("[Invitations] %s accepted task %s as %s", user_email, task_id, shared_id)
        elif accept:
            logger.warning("[Invitations] Invitation %s no longer exists for %s", invitation_id, user_email)
        else:
            logger.info("[Invitations] %s declined task %s", user_email, task_id)

        self.store.delete(path, invitation_id)
        return shared_id
