"""Tasks Router - the caller's owned and shared tasks.

Handles:
- Filtered/sorted task listing
- Task creation and editing
- Completion toggling (owned task or shared copy)
- Deletion (owned task, or removal of a shared copy)
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_session, raise_for_outcome
from api.models import TaskCreateRequest, TaskUpdateRequest
from taskly.session import Session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_tasks(
    status: Literal["all", "pending", "completed"] = Query("all"),
    category: str = Query("all"),
    sort: Literal["date", "priority", "createdAt"] = Query("createdAt"),
    session: Session = Depends(get_session),
) -> dict:
    """List owned and shared tasks after filtering and sorting."""
    entries = session.tasks.visible(status, category, sort)
    return {
        "tasks": [entry.to_api_dict() for entry in entries],
        "count": len(entries),
    }


@router.post("", status_code=201)
def create_task(
    request: TaskCreateRequest,
    session: Session = Depends(get_session),
) -> dict:
    result = session.tasks.add(request.model_dump(by_alias=True))
    raise_for_outcome(result)
    return {"task": result.entry.to_api_dict()}


@router.patch("/{task_id}")
def edit_task(
    task_id: str,
    request: TaskUpdateRequest,
    session: Session = Depends(get_session),
) -> dict:
    """Edit a task. Edit-permitted holders of a shared copy edit the original."""
    fields = request.model_dump(by_alias=True, exclude_unset=True)
    shared_id = fields.pop("sharedId", None)
    result = session.tasks.edit(task_id, fields, shared_id=shared_id)
    raise_for_outcome(result)
    return {"task": result.entry.to_api_dict()}


@router.post("/{task_id}/toggle")
def toggle_task(
    task_id: str,
    shared_id: Optional[str] = Query(None, alias="sharedId"),
    session: Session = Depends(get_session),
) -> dict:
    result = session.tasks.toggle_completion(task_id, shared_id=shared_id)
    raise_for_outcome(result)
    return {"task": result.entry.to_api_dict()}


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    shared_id: Optional[str] = Query(None, alias="sharedId"),
    session: Session = Depends(get_session),
) -> dict:
    """Delete an owned task, or remove a shared copy when sharedId is given."""
    result = session.tasks.delete(task_id, is_shared=shared_id is not None, shared_id=shared_id)
    raise_for_outcome(result)
    logger.info("[Tasks] %s deleted %s (shared=%s)", session.identity.email, task_id, shared_id)
    return {"status": "deleted", "taskId": task_id, "sharedId": shared_id}
