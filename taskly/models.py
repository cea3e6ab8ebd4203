"""Domain models for tasks, invitations, shared records and users.

Storage dictionaries use the camelCase document fields of the ``todos``,
``users`` and per-user ``invited_todos``/``shared_todos`` collections.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Category(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    SHOPPING = "shopping"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Permission(str, Enum):
    """Access level a recipient holds on a shared task."""

    VIEW = "view"
    EDIT = "edit"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: Optional[str]) -> str:
    """Emails join users, invitations and shared records; compare them lower-cased."""
    return (email or "").strip().lower()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (including the JS ``...Z`` form) to an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_due_date(value: Any) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` due date; blank values mean no due date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Tasks
# =============================================================================

@dataclass(slots=True)
class Task:
    """An owned task document in the ``todos`` collection."""

    id: str
    title: str
    user_id: str
    owner: str
    original_owner: str
    created_at: datetime
    description: str = ""
    completed: bool = False
    category: str = Category.PERSONAL.value
    due_date: Optional[date] = None
    priority: str = Priority.MEDIUM.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored document shape (id lives in the document key)."""
        return {
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "category": self.category,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority,
            "createdAt": self.created_at.isoformat(),
            "userId": self.user_id,
            "owner": self.owner,
            "originalOwner": self.original_owner,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "Task":
        """Create from a stored document or a shared snapshot.

        Documents written before ``title`` existed carry the text in ``text``,
        and documents written before re-sharing carry no ``originalOwner``.
        """
        owner = data.get("owner") or ""
        return cls(
            id=doc_id,
            title=data.get("title") or data.get("text") or "",
            description=data.get("description") or "",
            completed=bool(data.get("completed", False)),
            category=data.get("category") or Category.PERSONAL.value,
            due_date=parse_due_date(data.get("dueDate")),
            priority=data.get("priority") or Priority.MEDIUM.value,
            created_at=parse_timestamp(data.get("createdAt")) or EPOCH,
            user_id=data.get("userId") or "",
            owner=owner,
            original_owner=data.get("originalOwner") or owner,
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.to_dict()}


@dataclass(slots=True)
class TaskEntry:
    """One row of the client-visible task list: an owned task or a shared copy.

    ``shared_id`` routes mutations of a shared row to the holder's
    ``shared_todos`` record; owned rows route by ``task.id``.
    """

    task: Task
    is_owner: bool = False
    is_shared: bool = False
    shared_id: Optional[str] = None
    owner_email: Optional[str] = None
    original_owner: Optional[str] = None
    permission: Optional[str] = None

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def completed(self) -> bool:
        return self.task.completed

    @property
    def category(self) -> str:
        return self.task.category

    @property
    def due_date(self) -> Optional[date]:
        return self.task.due_date

    @property
    def priority(self) -> str:
        return self.task.priority

    @property
    def created_at(self) -> datetime:
        return self.task.created_at

    @property
    def read_only(self) -> bool:
        return self.is_shared and self.permission == Permission.VIEW.value

    def to_api_dict(self) -> Dict[str, Any]:
        data = self.task.to_api_dict()
        data["isOwner"] = self.is_owner
        data["isShared"] = self.is_shared
        if self.is_shared:
            data.update({
                "sharedId": self.shared_id,
                "ownerEmail": self.owner_email,
                "originalOwner": self.original_owner,
                "permission": self.permission,
            })
        return data


# =============================================================================
# Sharing
# =============================================================================

@dataclass(slots=True)
class Invitation:
    """A pending share request stored under the recipient's user record."""

    id: str
    task_id: str
    task_data: Dict[str, Any]
    owner_email: str
    original_owner: str
    permission: str
    status: str = InvitationStatus.PENDING.value
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "todoId": self.task_id,
            "todoData": self.task_data,
            "ownerEmail": self.owner_email,
            "originalOwner": self.original_owner,
            "permission": self.permission,
            "status": self.status,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "Invitation":
        return cls(
            id=doc_id,
            task_id=data.get("todoId", ""),
            task_data=data.get("todoData") or {},
            owner_email=data.get("ownerEmail", ""),
            original_owner=data.get("originalOwner", ""),
            permission=data.get("permission", Permission.VIEW.value),
            status=data.get("status", InvitationStatus.PENDING.value),
            created_at=parse_timestamp(data.get("createdAt")),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.to_dict()}


@dataclass(slots=True)
class SharedTaskRecord:
    """A recipient's denormalized copy of a task plus sharing metadata."""

    id: str
    task_id: str
    task_data: Dict[str, Any]
    owner_email: str
    original_owner: str
    permission: str
    added_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "todoId": self.task_id,
            "todoData": self.task_data,
            "ownerEmail": self.owner_email,
            "originalOwner": self.original_owner,
            "permission": self.permission,
            "addedAt": format_timestamp(self.added_at),
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "SharedTaskRecord":
        task_data = data.get("todoData") or {}
        return cls(
            id=doc_id,
            task_id=data.get("todoId", ""),
            task_data=task_data,
            owner_email=data.get("ownerEmail", ""),
            original_owner=data.get("originalOwner", ""),
            # The top-level field is authoritative; the snapshot copy covers
            # records whose top-level write never landed.
            permission=data.get("permission") or task_data.get("permission") or Permission.VIEW.value,
            added_at=parse_timestamp(data.get("addedAt")),
        )

    def to_entry(self) -> TaskEntry:
        return TaskEntry(
            task=Task.from_dict(self.task_id, self.task_data),
            is_shared=True,
            shared_id=self.id,
            owner_email=self.owner_email,
            original_owner=self.original_owner,
            permission=self.permission,
        )


@dataclass(slots=True)
class SharedUser:
    """A user holding a shared copy of a task, as seen by the original owner."""

    user_id: str
    email: str
    shared_id: str
    permission: str
    added_at: Optional[datetime] = None

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "email": self.email,
            "sharedId": self.shared_id,
            "permission": self.permission,
            "addedAt": format_timestamp(self.added_at),
        }


# =============================================================================
# Users
# =============================================================================

@dataclass(slots=True)
class UserIdentity:
    """Authenticated caller as reported by the authentication provider."""

    id: str
    email: str
    display_name: Optional[str] = None


@dataclass(slots=True)
class UserRecord:
    """A ``users/{id}`` document."""

    id: str
    email: str
    display_name: Optional[str] = None
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=doc_id,
            email=data.get("email", ""),
            display_name=data.get("displayName"),
            last_updated=parse_timestamp(data.get("lastUpdated")),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "lastUpdated": format_timestamp(self.last_updated),
        }
