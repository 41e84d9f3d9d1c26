from fastapi import APIRouter

# Re-export generate_stream symbol so tests monkeypatch it via `import router as router_module`
from llm import generate_stream as generate_stream  # noqa: F401

# Compose modular sub-routers
from api import (
    auth_router,
    events_router,
    registrations_router,
    event_items_router,
    teams_router,
    profile_router,
    assistant_router,
    sessions_router,
)


router = APIRouter()

# main.py applies `/api` prefix
router.include_router(auth_router)
router.include_router(events_router)
router.include_router(registrations_router)
router.include_router(event_items_router)
router.include_router(teams_router)
router.include_router(profile_router)
router.include_router(assistant_router)
router.include_router(sessions_router)
