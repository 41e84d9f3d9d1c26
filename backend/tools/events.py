from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.db import (
    count_event_children,
    create_event as create_event_db,
    delete_event as delete_event_db,
    get_event,
    get_user_by_id,
    list_event_registrations,
    list_event_teams,
    list_events as list_events_db,
    list_prizes,
    list_schedule_items,
    list_team_members,
    update_event as update_event_db,
)
from models.schemas import (
    Event,
    EventCreate,
    EventStatus,
    EventUpdate,
    Prize,
    Registration,
    ScheduleItem,
    Team,
    TeamMember,
    UserPublic,
    UserRole,
    UserSession,
)
from services.auth import require_user
from services.errors import Forbidden, NotFound, ValidationFailed


logger = logging.getLogger(__name__)


def load_event(event_id: int) -> Event:
    row = get_event(event_id)
    if row is None:
        raise NotFound("Event not found")
    return Event.from_row(row)


def require_event_owner(user: Optional[UserSession], event_id: int, action: str = "modify") -> Event:
    """Load an event the caller organizes; Unauthorized/NotFound/Forbidden otherwise."""
    user = require_user(user)
    event = load_event(event_id)
    if event.organizer_id != user.id:
        raise Forbidden(f"Not authorized to {action} this event")
    return event


def _organizer_summary(organizer_id: int, with_bio: bool = False) -> Optional[Dict[str, Any]]:
    row = get_user_by_id(organizer_id)
    if row is None:
        return None
    out = {"id": row["id"], "name": row["name"], "email": row["email"], "avatar": row["avatar"]}
    if with_bio:
        out["bio"] = row["bio"]
    return out


def _event_summary(event: Event) -> Dict[str, Any]:
    d = event.to_api()
    d["organizer"] = _organizer_summary(event.organizer_id)
    d["prizes"] = [Prize.from_row(r).to_api() for r in list_prizes(event.id)]
    d["scheduleItems"] = [ScheduleItem.from_row(r).to_api() for r in list_schedule_items(event.id)]
    d["counts"] = count_event_children(event.id)
    return d


def registration_with_user(row) -> Dict[str, Any]:
    d = Registration.from_row(row).to_api()
    d["user"] = UserPublic.from_joined_row(row).to_api()
    return d


def list_teams_with_members(event_id: int) -> List[Team]:
    teams = []
    for row in list_event_teams(event_id):
        members = [TeamMember.from_row(m) for m in list_team_members(row["id"])]
        teams.append(Team.from_row(row, members))
    return teams


def list_events(
    event_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    organizer: Optional[str] = None,
    user: Optional[UserSession] = None,
) -> List[Dict[str, Any]]:
    """List events ordered by start date.

    Public listings default to PUBLISHED events. ``organizer="me"`` lists every
    event the caller organizes regardless of status, or nothing when anonymous.
    """
    event_type = event_type.upper() if event_type else None
    status = status.upper() if status else None
    if organizer == "me":
        if user is None:
            return []
        rows = list_events_db(event_type=event_type, organizer_id=user.id, limit=limit)
    else:
        rows = list_events_db(event_type=event_type, status=status or EventStatus.PUBLISHED.value, limit=limit)
    return [_event_summary(Event.from_row(r)) for r in rows]


def get_my_events(user: Optional[UserSession]) -> List[Dict[str, Any]]:
    return list_events(organizer="me", user=user)


def get_event_details(event_id: int) -> Dict[str, Any]:
    event = load_event(event_id)
    d = event.to_api()
    d["organizer"] = _organizer_summary(event.organizer_id, with_bio=True)
    d["prizes"] = [Prize.from_row(r).to_api() for r in list_prizes(event.id)]
    d["scheduleItems"] = [ScheduleItem.from_row(r).to_api() for r in list_schedule_items(event.id)]
    d["teams"] = [t.to_api() for t in list_teams_with_members(event.id)]
    d["registrations"] = [registration_with_user(row) for row in list_event_registrations(event.id)]
    d["counts"] = count_event_children(event.id)
    return d


def create_event(user: Optional[UserSession], payload: EventCreate) -> Dict[str, Any]:
    user = require_user(user)
    if user.role != UserRole.ORGANIZER:
        raise Forbidden("Only organizers can create events")
    event_id = create_event_db(
        user.id,
        title=payload.title,
        description=payload.description,
        type=payload.type.value,
        status=payload.status.value,
        start_date=payload.start_date.isoformat(),
        end_date=payload.end_date.isoformat(),
        location=payload.location,
        capacity=payload.capacity,
        price=payload.price,
        currency=payload.currency.value,
        image_url=payload.image_url,
        tags=payload.tags,
        requirements=payload.requirements,
    )
    logger.info(f"Organizer {user.id} created event {event_id}")
    return _event_summary(load_event(event_id))


def update_event(user: Optional[UserSession], event_id: int, payload: EventUpdate) -> Dict[str, Any]:
    event = require_event_owner(user, event_id, "update")
    if payload.start_date or payload.end_date:
        start = payload.start_date or datetime.fromisoformat(event.start_date)
        end = payload.end_date or datetime.fromisoformat(event.end_date)
        try:
            backwards = end < start
        except TypeError:
            raise ValidationFailed("startDate and endDate must both carry a timezone or neither")
        if backwards:
            raise ValidationFailed("endDate must not be before startDate")
    update_event_db(
        event_id,
        title=payload.title,
        description=payload.description,
        type=payload.type.value if payload.type else None,
        status=payload.status.value if payload.status else None,
        start_date=payload.start_date.isoformat() if payload.start_date else None,
        end_date=payload.end_date.isoformat() if payload.end_date else None,
        location=payload.location,
        capacity=payload.capacity,
        price=payload.price,
        currency=payload.currency.value if payload.currency else None,
        image_url=payload.image_url,
        tags=payload.tags,
        requirements=payload.requirements,
    )
    return _event_summary(load_event(event_id))


def delete_event(user: Optional[UserSession], event_id: int) -> Dict[str, Any]:
    require_event_owner(user, event_id, "delete")
    delete_event_db(event_id)
    logger.info(f"Deleted event {event_id}")
    return {"ok": True, "message": "Event deleted successfully"}


__all__ = [
    "load_event",
    "require_event_owner",
    "registration_with_user",
    "list_teams_with_members",
    "list_events",
    "get_my_events",
    "get_event_details",
    "create_event",
    "update_event",
    "delete_event",
]
