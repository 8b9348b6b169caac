"""API routers."""

from .auth import router as auth_router
from .notifications import router as notifications_router
from .tasks import router as tasks_router
from .ws import router as ws_router

__all__ = ["auth_router", "notifications_router", "tasks_router", "ws_router"]
