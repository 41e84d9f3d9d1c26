from typing import Optional

from fastapi import APIRouter, Depends

from models.schemas import PrizeCreate, ScheduleItemCreate, UserSession
from tools import add_prize, add_schedule_item, get_prizes, get_schedule
from .common import call_service, current_user


router = APIRouter()


@router.get("/events/{event_id}/prizes")
def list_prizes(event_id: int):
    return call_service("Failed to fetch prizes", lambda: {"prizes": get_prizes(event_id)})


@router.post("/events/{event_id}/prizes")
def post_prize(event_id: int, payload: PrizeCreate, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to add prize", lambda: {"prize": add_prize(user, event_id, payload)}, status_code=201)


@router.get("/events/{event_id}/schedule")
def list_schedule(event_id: int):
    return call_service("Failed to fetch schedule", lambda: {"scheduleItems": get_schedule(event_id)})


@router.post("/events/{event_id}/schedule")
def post_schedule_item(
    event_id: int, payload: ScheduleItemCreate, user: Optional[UserSession] = Depends(current_user)
):
    return call_service(
        "Failed to add schedule item",
        lambda: {"scheduleItem": add_schedule_item(user, event_id, payload)},
        status_code=201,
    )
