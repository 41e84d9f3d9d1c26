import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from models.schemas import RegistrationRequest, RegistrationStatusUpdate, UserSession
from services.errors import ServiceError
from tools import (
    cancel_registration,
    confirm_payment,
    get_event_registrations,
    get_my_registrations,
    register_for_event,
    set_registration_status,
)
from .common import call_service, current_user, error_response


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/events/{event_id}/register")
def register(
    event_id: int,
    payload: Optional[RegistrationRequest] = None,
    user: Optional[UserSession] = Depends(current_user),
):
    try:
        result = register_for_event(user, event_id, payload)
    except ServiceError as e:
        return error_response(e, "Failed to register for event")
    except Exception:
        logger.exception(f"Registration for event {event_id} failed")
        return JSONResponse(status_code=500, content={"error": "Failed to register for event"})
    # Paid registrations are not complete until checkout succeeds
    return JSONResponse(status_code=200 if "checkoutUrl" in result else 201, content=result)


@router.get("/events/{event_id}/register")
def list_registrations(event_id: int, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to fetch registrations", get_event_registrations, event_id, user)


@router.delete("/events/{event_id}/register")
def cancel(event_id: int, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to cancel registration", cancel_registration, user, event_id)


@router.post("/events/{event_id}/register/confirm")
def confirm(event_id: int, user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to confirm payment", confirm_payment, user, event_id)


@router.put("/events/{event_id}/registrations/{registration_id}")
def update_status(
    event_id: int,
    registration_id: int,
    payload: RegistrationStatusUpdate,
    user: Optional[UserSession] = Depends(current_user),
):
    return call_service(
        "Failed to update registration",
        set_registration_status,
        user,
        event_id,
        registration_id,
        payload.status,
    )


@router.get("/user/registrations")
def my_registrations(user: Optional[UserSession] = Depends(current_user)):
    return call_service(
        "Failed to fetch registrations",
        lambda: {"registrations": get_my_registrations(user)},
    )
