"""API Routers Package.

Routers:
- tasks.py: task list, create, edit, toggle, delete
- sharing.py: share invitations, recipients, permissions, revocation
- suggestions.py: AI suggestions for a task

Additionally, separate routers are exported from sharing.py:
- invitations_router: /invitations/* endpoints for the recipient
- users_router: /users/* lookups used by the share form

Usage in main.py:
    from api.routers import tasks_router, sharing_router, invitations_router, users_router, suggestions_router

    app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
    app.include_router(sharing_router, prefix="/tasks", tags=["sharing"])
    app.include_router(invitations_router, prefix="/invitations", tags=["sharing"])
    app.include_router(users_router, prefix="/users", tags=["users"])
    app.include_router(suggestions_router, prefix="/suggestions", tags=["suggestions"])
"""

from .tasks import router as tasks_router
from .sharing import router as sharing_router
from .sharing import invitations_router
from .sharing import users_router
from .suggestions import router as suggestions_router

__all__ = [
    "tasks_router",
    "sharing_router",
    "invitations_router",
    "users_router",
    "suggestions_router",
]
