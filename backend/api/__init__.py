from fastapi import APIRouter

# Subrouters are imported and re-exported for convenience
from .auth import router as auth_router  # noqa: F401
from .events import router as events_router  # noqa: F401
from .registrations import router as registrations_router  # noqa: F401
from .event_items import router as event_items_router  # noqa: F401
from .teams import router as teams_router  # noqa: F401
from .profile import router as profile_router  # noqa: F401
from .assistant import router as assistant_router  # noqa: F401
from .sessions import router as sessions_router  # noqa: F401

__all__ = [
    "APIRouter",
    "auth_router",
    "events_router",
    "registrations_router",
    "event_items_router",
    "teams_router",
    "profile_router",
    "assistant_router",
    "sessions_router",
]
