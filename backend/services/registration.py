"""Event registration workflow.

A registration attempt is checked in order: authenticated caller, existing
event, no prior registration for the (user, event) pair, a free seat. Free
events confirm immediately; priced events create a PENDING registration and
hand back a hosted checkout URL; if the checkout session cannot be created the
pending row is removed again. The payment step is confirmed later by
``confirm_payment`` once the processor reports the session as paid.

The duplicate and capacity checks run in the same write transaction as the
insert (see ``models.db.insert_registration_within_capacity``), so concurrent
attempts cannot overfill an event or double-register a user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from config import settings
from models.db import (
    REGISTRATION_DUPLICATE,
    REGISTRATION_FULL,
    delete_unpaid_registration,
    get_event,
    get_registration,
    get_registration_by_id,
    insert_registration_within_capacity,
    set_registration_payment_id,
    update_registration_status,
)
from models.schemas import (
    Event,
    Registration,
    RegistrationRequest,
    RegistrationStatus,
    UserSession,
)
from services import payments
from services.auth import require_user
from services.errors import (
    DuplicateRegistration,
    EventFull,
    Forbidden,
    NotFound,
    ValidationFailed,
)


logger = logging.getLogger(__name__)


@dataclass
class RegistrationOutcome:
    registration: Registration
    checkout_url: Optional[str] = None

    @property
    def requires_payment(self) -> bool:
        return self.checkout_url is not None


def _load_event(event_id: int) -> Event:
    row = get_event(event_id)
    if row is None:
        raise NotFound("Event not found")
    return Event.from_row(row)


def payment_redirect_urls(event_id: int) -> tuple[str, str]:
    base = f"{settings.APP_URL}/events/{event_id}"
    return f"{base}?payment=success", f"{base}?payment=cancelled"


def register_for_event(
    user: Optional[UserSession],
    event_id: int,
    details: Optional[RegistrationRequest] = None,
) -> RegistrationOutcome:
    user = require_user(user, "Unauthorized - please login first")
    event = _load_event(event_id)
    details = details or RegistrationRequest()

    status = RegistrationStatus.PENDING if event.is_paid else RegistrationStatus.CONFIRMED
    outcome, registration_id = insert_registration_within_capacity(
        user_id=user.id,
        event_id=event.id,
        capacity=event.capacity,
        status=status.value,
        team_preference=details.team_preference,
        motivation=details.motivation,
        skills=details.skills,
        special_requests=details.special_requests,
    )
    if outcome == REGISTRATION_DUPLICATE:
        raise DuplicateRegistration()
    if outcome == REGISTRATION_FULL:
        raise EventFull()

    if not event.is_paid:
        logger.info(f"Confirmed registration {registration_id} for event {event.id}, user {user.id}")
        return RegistrationOutcome(Registration.from_row(get_registration_by_id(registration_id)))

    success_url, cancel_url = payment_redirect_urls(event.id)
    try:
        checkout = payments.create_checkout_session(
            event.id,
            event.title,
            event.price,
            user.id,
            success_url,
            cancel_url,
            currency=event.currency,
        )
    except Exception:
        # Release the seat so the same user can retry
        logger.exception(f"Checkout creation failed for pending registration {registration_id}")
        delete_unpaid_registration(registration_id)
        raise
    set_registration_payment_id(registration_id, checkout.id)
    logger.info(f"Pending registration {registration_id} for event {event.id} awaiting payment {checkout.id}")
    return RegistrationOutcome(
        Registration.from_row(get_registration_by_id(registration_id)),
        checkout_url=checkout.url,
    )


def confirm_payment(user: Optional[UserSession], event_id: int) -> tuple[Registration, bool]:
    """Verify the caller's checkout session and confirm the registration when paid.

    Returns the (possibly updated) registration and whether payment was verified.
    """
    user = require_user(user)
    _load_event(event_id)
    row = get_registration(user.id, event_id)
    if row is None:
        raise NotFound("Registration not found")
    registration = Registration.from_row(row)
    if registration.status == RegistrationStatus.CONFIRMED:
        return registration, True
    if registration.status != RegistrationStatus.PENDING or not registration.payment_id:
        raise ValidationFailed("Registration has no pending payment")

    if not payments.verify_payment(registration.payment_id):
        logger.warning(f"Payment {registration.payment_id} for registration {registration.id} is not paid")
        return registration, False

    update_registration_status(registration.id, RegistrationStatus.CONFIRMED.value)
    logger.info(f"Payment verified; confirmed registration {registration.id}")
    return Registration.from_row(get_registration_by_id(registration.id)), True


def cancel_registration(user: Optional[UserSession], event_id: int) -> Registration:
    user = require_user(user)
    _load_event(event_id)
    row = get_registration(user.id, event_id)
    if row is None:
        raise NotFound("Registration not found")
    update_registration_status(row["id"], RegistrationStatus.CANCELLED.value)
    logger.info(f"User {user.id} cancelled registration {row['id']}")
    return Registration.from_row(get_registration_by_id(row["id"]))


def set_registration_status(
    user: Optional[UserSession],
    event_id: int,
    registration_id: int,
    status: RegistrationStatus | str,
) -> Registration:
    """Organizer override of a registration's status."""
    user = require_user(user)
    event = _load_event(event_id)
    if event.organizer_id != user.id:
        raise Forbidden("Not authorized to modify this event")
    try:
        new_status = RegistrationStatus(status)
    except ValueError:
        raise ValidationFailed(f"Invalid registration status: {status}")
    row = get_registration_by_id(registration_id)
    if row is None or row["event_id"] != event.id:
        raise NotFound("Registration not found")
    update_registration_status(registration_id, new_status.value)
    logger.info(f"Organizer {user.id} set registration {registration_id} to {new_status.value}")
    return Registration.from_row(get_registration_by_id(registration_id))


__all__ = [
    "RegistrationOutcome",
    "payment_redirect_urls",
    "register_for_event",
    "confirm_payment",
    "cancel_registration",
    "set_registration_status",
]
