"""Shared Pydantic models for API routers.

Usage in routers:
    from api.models import TaskCreateRequest, ShareRequest
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CategoryValue = Literal["personal", "work", "shopping", "other"]
PriorityValue = Literal["low", "medium", "high"]
PermissionValue = Literal["view", "edit"]


# =============================================================================
# Session
# =============================================================================

class SessionRequest(BaseModel):
    """Request body for starting a session (sign-in)."""
    model_config = ConfigDict(populate_by_name=True)

    photo_url: Optional[str] = Field(None, alias="photoUrl")


# =============================================================================
# Task Models
# =============================================================================

class TaskCreateRequest(BaseModel):
    """Request body for creating a task."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Task title (required, non-blank)")
    description: str = ""
    category: CategoryValue = "personal"
    due_date: Optional[str] = Field(None, alias="dueDate", description="YYYY-MM-DD")
    priority: PriorityValue = "medium"


class TaskUpdateRequest(BaseModel):
    """Request body for editing a task. Only fields that are sent are written."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[CategoryValue] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
    priority: Optional[PriorityValue] = None
    shared_id: Optional[str] = Field(
        None,
        alias="sharedId",
        description="Shared record id when editing through a shared copy.",
    )


# =============================================================================
# Sharing Models
# =============================================================================

class ShareRequest(BaseModel):
    """Request body for inviting another user to a task."""
    email: str
    permission: PermissionValue = "view"


class PermissionUpdateRequest(BaseModel):
    permission: PermissionValue


class InvitationResponseRequest(BaseModel):
    """Accept or decline a pending invitation."""
    model_config = ConfigDict(populate_by_name=True)

    accept: bool
    task_id: Optional[str] = Field(
        None,
        alias="taskId",
        description="Optional; rejected unless it is the invited task.",
    )


# =============================================================================
# Suggestions
# =============================================================================

class SuggestionRequest(BaseModel):
    title: str
    description: Optional[str] = None
