from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.db import add_prize as add_prize_db
from models.db import add_schedule_item as add_schedule_item_db
from models.db import list_prizes, list_schedule_items
from models.schemas import Prize, PrizeCreate, ScheduleItem, ScheduleItemCreate, UserSession
from services.errors import ValidationFailed
from .events import require_event_owner


def get_prizes(event_id: int) -> List[Dict[str, Any]]:
    """Prizes ordered by rank."""
    return [Prize.from_row(r).to_api() for r in list_prizes(event_id)]


def add_prize(user: Optional[UserSession], event_id: int, payload: PrizeCreate) -> Dict[str, Any]:
    require_event_owner(user, event_id)
    prize_id = add_prize_db(
        event_id,
        rank=payload.rank,
        title=payload.title,
        description=payload.description,
        value=payload.value,
        currency=payload.currency.value,
    )
    return next(p for p in get_prizes(event_id) if p["id"] == prize_id)


def get_schedule(event_id: int) -> List[Dict[str, Any]]:
    """Schedule items ordered by their ``order`` field."""
    return [ScheduleItem.from_row(r).to_api() for r in list_schedule_items(event_id)]


def add_schedule_item(user: Optional[UserSession], event_id: int, payload: ScheduleItemCreate) -> Dict[str, Any]:
    require_event_owner(user, event_id)
    try:
        backwards = payload.end_time < payload.start_time
    except TypeError:
        raise ValidationFailed("startTime and endTime must both carry a timezone or neither")
    if backwards:
        raise ValidationFailed("endTime must not be before startTime")
    item_id = add_schedule_item_db(
        event_id,
        title=payload.title,
        start_time=payload.start_time.isoformat(),
        end_time=payload.end_time.isoformat(),
        description=payload.description,
        location=payload.location,
        speaker=payload.speaker,
        sort_order=payload.order,
    )
    return next(s for s in get_schedule(event_id) if s["id"] == item_id)


__all__ = ["get_prizes", "add_prize", "get_schedule", "add_schedule_item"]
