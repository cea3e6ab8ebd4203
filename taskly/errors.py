"""Error taxonomy shared by the store adapter, services and API."""
from __future__ import annotations

from typing import Optional


class TasklyError(Exception):
    """Base class for all Taskly failures."""

    code = "ERR_UNKNOWN"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NotFound(TasklyError):
    code = "ERR_NOT_FOUND"


class TaskNotFound(NotFound):
    code = "ERR_TASK_NOT_FOUND"


class UserNotFound(NotFound):
    code = "ERR_USER_NOT_FOUND"


class RecipientNotFound(UserNotFound):
    """The email a task is being shared with has no user record."""

    code = "ERR_RECIPIENT_NOT_FOUND"


class InvitationNotFound(NotFound):
    code = "ERR_INVITATION_NOT_FOUND"


class SharedRecordNotFound(NotFound):
    code = "ERR_SHARED_RECORD_NOT_FOUND"


class DocumentNotFound(NotFound):
    """Raised by the document store when updating a missing document."""

    code = "ERR_DOCUMENT_NOT_FOUND"


class Unauthorized(TasklyError):
    code = "ERR_PERMISSION_DENIED"


class ValidationError(TasklyError):
    code = "ERR_VALIDATION"


class RemoteCallFailure(TasklyError):
    """A network or store call failed."""

    code = "ERR_REMOTE_CALL"
