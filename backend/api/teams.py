from typing import Optional

from fastapi import APIRouter, Depends

from models.schemas import TeamCreate, UserSession
from tools import create_team, get_teams, join_team
from .common import call_service, current_user


router = APIRouter()


@router.get("/events/{event_id}/teams")
def list_teams(event_id: int):
    return call_service("Failed to fetch teams", lambda: {"teams": get_teams(event_id)})


@router.post("/events/{event_id}/teams")
def post_team(event_id: int, payload: TeamCreate, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to create team", create_team, user, event_id, payload, status_code=201)


@router.post("/teams/{team_id}/join")
def join(team_id: int, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to join team", join_team, user, team_id)
