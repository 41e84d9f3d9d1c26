from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models.db import create_team_with_owner, get_registration, get_team, join_team as join_team_db
from models.schemas import RegistrationStatus, TeamCreate, UserSession
from services.auth import require_user
from services.errors import Conflict, Forbidden, NotFound
from .events import list_teams_with_members, load_event


logger = logging.getLogger(__name__)


def _require_active_registration(user: UserSession, event_id: int) -> None:
    row = get_registration(user.id, event_id)
    if row is None or row["status"] == RegistrationStatus.CANCELLED.value:
        raise Forbidden("Register for the event before joining a team")


def get_teams(event_id: int) -> List[Dict[str, Any]]:
    load_event(event_id)
    return [t.to_api() for t in list_teams_with_members(event_id)]


def create_team(user: Optional[UserSession], event_id: int, payload: TeamCreate) -> Dict[str, Any]:
    user = require_user(user)
    load_event(event_id)
    _require_active_registration(user, event_id)
    team_id = create_team_with_owner(event_id, user.id, payload.name, payload.description, payload.looking_for)
    if team_id is None:
        raise Conflict("Already a member of a team for this event")
    logger.info(f"User {user.id} created team {team_id} for event {event_id}")
    return next(t for t in get_teams(event_id) if t["id"] == team_id)


def join_team(user: Optional[UserSession], team_id: int) -> Dict[str, Any]:
    user = require_user(user)
    team = get_team(team_id)
    if team is None:
        raise NotFound("Team not found")
    event_id = team["event_id"]
    _require_active_registration(user, event_id)
    if not join_team_db(team_id, user.id, event_id):
        raise Conflict("Already a member of a team for this event")
    return next(t for t in get_teams(event_id) if t["id"] == team_id)


__all__ = ["get_teams", "create_team", "join_team"]
