from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.db import get_user_team_for_event, list_event_registrations, list_user_registrations
from models.schemas import Registration, RegistrationRequest, RegistrationStatus, UserSession
from services import registration as workflow
from services.auth import require_user
from .events import registration_with_user


def register_for_event(
    user: Optional[UserSession],
    event_id: int,
    details: Optional[RegistrationRequest] = None,
) -> Dict[str, Any]:
    outcome = workflow.register_for_event(user, event_id, details)
    if outcome.requires_payment:
        return {
            "checkoutUrl": outcome.checkout_url,
            "registration": outcome.registration.to_api(),
            "message": "Please complete payment to confirm registration",
        }
    return {
        "registration": outcome.registration.to_api(),
        "message": "Successfully registered for the event!",
    }


def get_event_registrations(event_id: int, user: Optional[UserSession] = None) -> Dict[str, Any]:
    registrations = [registration_with_user(row) for row in list_event_registrations(event_id)]
    own = None
    if user is not None:
        own = next((r for r in registrations if r["userId"] == user.id), None)
    return {"registrations": registrations, "userRegistration": own, "count": len(registrations)}


def get_my_registrations(user: Optional[UserSession]) -> List[Dict[str, Any]]:
    user = require_user(user)
    out = []
    for row in list_user_registrations(user.id):
        d = Registration.from_row(row).to_api()
        d["event"] = {
            "id": row["event_id"],
            "title": row["event_title"],
            "description": row["event_description"],
            "type": row["event_type"],
            "status": row["event_status"],
            "startDate": row["event_start_date"],
            "endDate": row["event_end_date"],
            "location": row["event_location"],
            "imageUrl": row["event_image_url"],
            "organizer": {"id": row["event_organizer_id"], "name": row["event_organizer_name"]},
        }
        team = get_user_team_for_event(user.id, row["event_id"])
        d["team"] = (
            {"id": team["id"], "name": team["name"], "status": team["status"], "eventId": team["event_id"]}
            if team
            else None
        )
        out.append(d)
    return out


def confirm_payment(user: Optional[UserSession], event_id: int) -> Dict[str, Any]:
    registration, paid = workflow.confirm_payment(user, event_id)
    return {
        "registration": registration.to_api(),
        "paid": paid,
        "message": "Payment confirmed" if paid else "Payment has not been completed",
    }


def cancel_registration(user: Optional[UserSession], event_id: int) -> Dict[str, Any]:
    registration = workflow.cancel_registration(user, event_id)
    return {"registration": registration.to_api(), "message": "Registration cancelled"}


def set_registration_status(
    user: Optional[UserSession],
    event_id: int,
    registration_id: int,
    status: RegistrationStatus | str,
) -> Dict[str, Any]:
    registration = workflow.set_registration_status(user, event_id, registration_id, status)
    return {"registration": registration.to_api()}


__all__ = [
    "register_for_event",
    "get_event_registrations",
    "get_my_registrations",
    "confirm_payment",
    "cancel_registration",
    "set_registration_status",
]
