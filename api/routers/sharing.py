"""Sharing Router - invitations, recipients and permissions.

Handles:
- Inviting another user to a task (owner or edit-permitted holder)
- Listing, re-permissioning and revoking recipients (original owner only)
- Listing and answering the caller's pending invitations
- Checking whether an email belongs to a registered user
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_services, get_session, raise_for_outcome
from api.models import InvitationResponseRequest, PermissionUpdateRequest, ShareRequest
from taskly.auth import get_current_identity
from taskly.models import UserIdentity
from taskly.session import Services, Session

logger = logging.getLogger(__name__)

# Mounted at /tasks
router = APIRouter()

# Mounted at /invitations
invitations_router = APIRouter()

# Mounted at /users
users_router = APIRouter()


def _require_original_owner(session: Session, task_id: str) -> None:
    if not session.services.sharing.is_original_owner(task_id, session.identity.email):
        raise HTTPException(
            status_code=403,
            detail="Only the original owner can manage who this task is shared with.",
        )


# =============================================================================
# Task Sharing Endpoints
# =============================================================================

@router.post("/{task_id}/share", status_code=201)
def share_task(
    task_id: str,
    request: ShareRequest,
    session: Session = Depends(get_session),
) -> dict:
    result = session.tasks.share(task_id, request.email, request.permission)
    raise_for_outcome(result)
    return {"invitation": result.payload.to_api_dict()}


@router.get("/{task_id}/shares")
def list_shares(
    task_id: str,
    session: Session = Depends(get_session),
) -> dict:
    """Recipients of a task. Empty for anyone but the original owner."""
    shared = session.shared_users(task_id)
    return {"sharedUsers": [user.to_api_dict() for user in shared.users]}


@router.patch("/{task_id}/shares/{user_id}")
def update_share_permission(
    task_id: str,
    user_id: str,
    request: PermissionUpdateRequest,
    session: Session = Depends(get_session),
) -> dict:
    _require_original_owner(session, task_id)
    shared = session.shared_users(task_id)
    updated = shared.change_permission(user_id, request.permission)
    return {"sharedUser": updated.to_api_dict()}


@router.delete("/{task_id}/shares/{user_id}")
def revoke_share(
    task_id: str,
    user_id: str,
    session: Session = Depends(get_session),
) -> dict:
    _require_original_owner(session, task_id)
    shared = session.shared_users(task_id)
    shared.revoke(user_id)
    return {
        "status": "revoked",
        "sharedUsers": [user.to_api_dict() for user in shared.users],
    }


# =============================================================================
# Invitation Endpoints
# =============================================================================

@invitations_router.get("")
def list_invitations(session: Session = Depends(get_session)) -> dict:
    invitations = session.load_pending_invitations()
    return {
        "invitations": [invitation.to_api_dict() for invitation in invitations],
        "count": len(invitations),
    }


@invitations_router.post("/{invitation_id}/respond")
def respond_to_invitation(
    invitation_id: str,
    request: InvitationResponseRequest,
    session: Session = Depends(get_session),
) -> dict:
    session.load_pending_invitations()
    shared_id = session.respond_to_invitation(invitation_id, request.accept, task_id=request.task_id)
    return {
        "status": "accepted" if request.accept else "declined",
        "sharedId": shared_id,
        "invitations": [invitation.to_api_dict() for invitation in session.invitations],
    }


# =============================================================================
# User Lookup
# =============================================================================

@users_router.get("/exists")
def user_exists(
    email: str = Query(..., min_length=3),
    identity: UserIdentity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> dict:
    return {"email": email, "exists": services.users.user_exists(email)}
