"""FastAPI service for Taskly."""
from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_services, get_settings, status_for_error
from api.models import SessionRequest
from api.routers import (
    invitations_router,
    sharing_router,
    suggestions_router,
    tasks_router,
    users_router,
)
from taskly import __version__
from taskly.auth import get_current_identity
from taskly.errors import TasklyError
from taskly.models import UserIdentity
from taskly.session import Services, Session

logger = logging.getLogger(__name__)

settings = get_settings()
logging.basicConfig(
    level=settings.log_level_value,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title="Taskly API",
    version=__version__,
    description="Personal tasks with invitation-based sharing.",
)

origins = [origin for origin in settings.allowed_origins if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(TasklyError)
def handle_taskly_error(request: Request, exc: TasklyError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("[API] %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health")
def health_check() -> dict:
    settings = get_settings()
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "store": "file" if settings.force_file_store else "firestore",
    }


@app.post("/session")
def start_session(
    request: SessionRequest,
    identity: UserIdentity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> dict:
    """Sign-in: record the profile, then load tasks and pending invitations."""
    session = Session(services).start(identity, photo_url=request.photo_url)
    user = services.users.get(identity.id)
    logger.info("[API] Session started for %s", identity.email)
    return {
        "user": user.to_api_dict() if user else None,
        "tasks": [entry.to_api_dict() for entry in session.tasks.visible()],
        "invitations": [invitation.to_api_dict() for invitation in session.invitations],
    }


app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
app.include_router(sharing_router, prefix="/tasks", tags=["sharing"])
app.include_router(invitations_router, prefix="/invitations", tags=["sharing"])
app.include_router(users_router, prefix="/users", tags=["users"])
app.include_router(suggestions_router, prefix="/suggestions", tags=["suggestions"])
