from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.schemas import EventCreate, EventUpdate, UserSession
from tools import create_event, delete_event, get_event_details, list_events, update_event
from .common import call_service, current_user


router = APIRouter()


@router.get("/events")
def get_events(
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    organizer: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    user: Optional[UserSession] = Depends(current_user),
):
    return call_service(
        "Failed to fetch events",
        lambda: {"events": list_events(event_type=type, status=status, limit=limit, organizer=organizer, user=user)},
    )


@router.post("/events")
def post_event(payload: EventCreate, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to create event", lambda: {"event": create_event(user, payload)}, status_code=201)


@router.get("/events/{event_id}")
def get_event(event_id: int):
    return call_service("Failed to fetch event", lambda: {"event": get_event_details(event_id)})


@router.put("/events/{event_id}")
def put_event(event_id: int, payload: EventUpdate, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to update event", lambda: {"event": update_event(user, event_id, payload)})


@router.delete("/events/{event_id}")
def remove_event(event_id: int, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to delete event", delete_event, user, event_id)
