"""Sharing package - invitations, shared records and permissions."""
from __future__ import annotations

from .invitations import InvitationService
from .permissions import SharedUserList, SharingManager, validate_permission

__all__ = [
    "InvitationService",
    "SharedUserList",
    "SharingManager",
    "validate_permission",
]
