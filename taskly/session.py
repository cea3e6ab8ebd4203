"""Session start sequence and service wiring.

A session runs ``authenticate -> load_owned_and_shared ->
load_pending_invitations`` explicitly instead of reacting to auth-state
callbacks, so the whole sign-in flow can be driven step by step.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

from .aggregator import TaskAggregator
from .documents import DocumentStore
from .errors import InvitationNotFound, RemoteCallFailure, Unauthorized
from .models import Invitation, TaskEntry, UserIdentity
from .sharing import InvitationService, SharedUserList, SharingManager
from .task_store import TaskStore
from .users import UserDirectory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """The services sharing one injected document store."""

    store: DocumentStore
    users: UserDirectory
    tasks: TaskStore
    invitations: InvitationService
    sharing: SharingManager


def build_services(store: DocumentStore, *, dedupe_invitations: bool = False) -> Services:
    users = UserDirectory(store)
    tasks = TaskStore(store)
    return Services(
        store=store,
        users=users,
        tasks=tasks,
        invitations=InvitationService(store, users, tasks, dedupe=dedupe_invitations),
        sharing=SharingManager(store, users, tasks),
    )


class Session:
    """State for one signed-in user: identity, task list and pending invitations."""

    def __init__(self, services: Services) -> None:
        self.services = services
        self.identity: Optional[UserIdentity] = None
        self.aggregator: Optional[TaskAggregator] = None
        self.invitations: List[Invitation] = []

    def start(self, identity: UserIdentity, *, photo_url: Optional[str] = None) -> "Session":
        self.authenticate(identity, photo_url=photo_url)
        self.load_owned_and_shared()
        self.load_pending_invitations()
        return self

    def authenticate(self, identity: UserIdentity, *, photo_url: Optional[str] = None) -> None:
        self.services.users.upsert_profile(identity, photo_url=photo_url)
        self.identity = identity
        self.aggregator = TaskAggregator(identity, self.services.tasks, self.services.invitations)

    def attach(self, identity: UserIdentity) -> None:
        """Bind an already-registered identity without rewriting its profile."""
        self.identity = identity
        self.aggregator = TaskAggregator(identity, self.services.tasks, self.services.invitations)

    def end(self) -> None:
        """Sign out: drop all local state."""
        self.identity = None
        self.aggregator = None
        self.invitations = []

    @property
    def tasks(self) -> TaskAggregator:
        if self.aggregator is None:
            raise Unauthorized("Sign in first.")
        return self.aggregator

    def _require_identity(self) -> UserIdentity:
        if self.identity is None:
            raise Unauthorized("Sign in first.")
        return self.identity

    def load_owned_and_shared(self) -> List[TaskEntry]:
        return self.tasks.load_all()

    def load_pending_invitations(self) -> List[Invitation]:
        """Refresh pending invitations; a failed lookup keeps the previous list."""
        identity = self._require_identity()
        try:
            self.invitations = self.services.invitations.list_pending_invitations(identity.email)
        except RemoteCallFailure as exc:
            logger.error("[Session] Error fetching invitations for %s: %s", identity.email, exc)
        return self.invitations

    def respond_to_invitation(
        self,
        invitation_id: str,
        accept: bool,
        task_id: Optional[str] = None,
    ) -> Optional[str]:
        """Accept or decline, then refresh invitations (and tasks on accept).

        ``task_id`` is optional; when given it must match the invited task.
        """
        identity = self._require_identity()
        if not any(i.id == invitation_id for i in self.invitations):
            raise InvitationNotFound(f"Invitation {invitation_id} not found.")

        shared_id = self.services.invitations.resolve_invitation(
            identity.email, invitation_id, task_id, accept
        )
        self.load_pending_invitations()
        if shared_id:
            self.load_owned_and_shared()
        return shared_id

    def shared_users(self, task_id: str) -> SharedUserList:
        identity = self._require_identity()
        shared = SharedUserList(self.services.sharing, task_id, identity.email)
        shared.refresh()
        return shared
