from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from models.db import (
    count_active_registrations,
    get_registration,
    init_db,
    list_event_registrations,
    set_db_path,
)
from models.schemas import EventCreate, RegistrationRequest, RegistrationStatus
from services import payments
from services import registration as workflow
from services.auth import register_user
from services.errors import (
    DuplicateRegistration,
    EventFull,
    Forbidden,
    NotFound,
    PaymentError,
    Unauthorized,
)
from tools import create_event


@pytest.fixture(autouse=True)
def db(tmp_path):
    set_db_path(tmp_path / "workflow.db")
    init_db()


@pytest.fixture
def organizer():
    session, _ = register_user("org@example.com", "pw-1234", "Olive Organizer", "ORGANIZER")
    return session


@pytest.fixture
def checkout_calls(monkeypatch):
    calls = []

    def fake_checkout(event_id, event_title, price, user_id, success_url, cancel_url, currency="USD"):
        calls.append(dict(event_id=event_id, price=price, user_id=user_id, success_url=success_url, currency=currency))
        sid = f"cs_test_{len(calls)}"
        return payments.CheckoutSession(id=sid, url=f"https://checkout.test/{sid}")

    monkeypatch.setattr(payments, "create_checkout_session", fake_checkout)
    return calls


def attendee(n: int):
    session, _ = register_user(f"user{n}@example.com", "pw-1234", f"User {n}", "ATTENDEE")
    return session


def make_event(organizer, capacity: int = 2, price: float = 0) -> int:
    payload = EventCreate(
        title="Spring Hack",
        type="HACKATHON",
        status="PUBLISHED",
        start_date="2030-04-01T09:00:00",
        end_date="2030-04-02T18:00:00",
        capacity=capacity,
        price=price,
    )
    return create_event(organizer, payload)["id"]


def test_free_event_confirms_immediately(organizer, checkout_calls):
    eid = make_event(organizer)
    user = attendee(1)
    outcome = workflow.register_for_event(
        user, eid, RegistrationRequest(skills=["python"], motivation="Learn", team_preference="looking")
    )
    reg = outcome.registration
    assert reg.status == RegistrationStatus.CONFIRMED
    assert reg.payment_id is None
    assert reg.skills == ["python"] and reg.team_preference == "looking"
    assert not outcome.requires_payment
    assert checkout_calls == []


def test_capacity_is_never_exceeded(organizer, checkout_calls):
    eid = make_event(organizer, capacity=2)
    workflow.register_for_event(attendee(1), eid)
    workflow.register_for_event(attendee(2), eid)
    with pytest.raises(EventFull, match="Event is full"):
        workflow.register_for_event(attendee(3), eid)
    assert count_active_registrations(eid) == 2


def test_second_registration_is_rejected(organizer, checkout_calls):
    eid = make_event(organizer, capacity=5)
    user = attendee(1)
    workflow.register_for_event(user, eid)
    with pytest.raises(DuplicateRegistration, match="Already registered for this event"):
        workflow.register_for_event(user, eid)
    assert count_active_registrations(eid) == 1


def test_unauthenticated_caller_always_unauthorized(organizer):
    eid = make_event(organizer, capacity=1)
    workflow.register_for_event(attendee(1), eid)
    with pytest.raises(Unauthorized):
        workflow.register_for_event(None, eid)
    with pytest.raises(Unauthorized):
        workflow.register_for_event(None, 9999)


def test_redirect_urls_point_back_to_event(monkeypatch):
    monkeypatch.setattr(workflow.settings, "APP_URL", "https://events.example")
    assert workflow.payment_redirect_urls(4) == (
        "https://events.example/events/4?payment=success",
        "https://events.example/events/4?payment=cancelled",
    )


def test_missing_event_is_not_found():
    with pytest.raises(NotFound, match="Event not found"):
        workflow.register_for_event(attendee(1), 9999)


def test_paid_event_creates_pending_registration_with_checkout(organizer, checkout_calls):
    eid = make_event(organizer, capacity=3, price=25.5)
    user = attendee(1)
    outcome = workflow.register_for_event(user, eid)

    assert outcome.requires_payment
    assert outcome.checkout_url == "https://checkout.test/cs_test_1"
    assert outcome.registration.status == RegistrationStatus.PENDING
    assert outcome.registration.payment_id == "cs_test_1"
    assert checkout_calls == [
        {
            "event_id": eid,
            "price": 25.5,
            "user_id": user.id,
            "success_url": workflow.payment_redirect_urls(eid)[0],
            "currency": "USD",
        }
    ]


def test_pending_registrations_hold_seats(organizer, checkout_calls):
    eid = make_event(organizer, capacity=1, price=10)
    workflow.register_for_event(attendee(1), eid)
    with pytest.raises(EventFull):
        workflow.register_for_event(attendee(2), eid)


def test_payment_failure_releases_seat_and_allows_retry(organizer, monkeypatch):
    attempts = []

    def flaky_checkout(*args, **kwargs):
        attempts.append(1)
        if len(attempts) == 1:
            raise PaymentError("Payment processor unreachable")
        return payments.CheckoutSession(id="cs_test_retry", url="https://checkout.test/cs_test_retry")

    monkeypatch.setattr(payments, "create_checkout_session", flaky_checkout)
    eid = make_event(organizer, capacity=1, price=10)
    user = attendee(1)
    with pytest.raises(PaymentError):
        workflow.register_for_event(user, eid)

    assert get_registration(user.id, eid) is None
    assert count_active_registrations(eid) == 0

    outcome = workflow.register_for_event(user, eid)
    assert outcome.checkout_url == "https://checkout.test/cs_test_retry"
    assert outcome.registration.status == RegistrationStatus.PENDING
    assert outcome.registration.payment_id == "cs_test_retry"


def test_cancel_frees_seat_but_blocks_reregistration(organizer, checkout_calls):
    eid = make_event(organizer, capacity=1)
    first = attendee(1)
    workflow.register_for_event(first, eid)
    cancelled = workflow.cancel_registration(first, eid)
    assert cancelled.status == RegistrationStatus.CANCELLED

    workflow.register_for_event(attendee(2), eid)
    with pytest.raises(DuplicateRegistration):
        workflow.register_for_event(first, eid)


def test_confirm_payment(organizer, checkout_calls, monkeypatch):
    eid = make_event(organizer, price=15)
    user = attendee(1)
    workflow.register_for_event(user, eid)

    monkeypatch.setattr(payments, "verify_payment", lambda session_id: False)
    reg, paid = workflow.confirm_payment(user, eid)
    assert not paid and reg.status == RegistrationStatus.PENDING

    verified = []
    monkeypatch.setattr(payments, "verify_payment", lambda session_id: verified.append(session_id) or True)
    reg, paid = workflow.confirm_payment(user, eid)
    assert paid and reg.status == RegistrationStatus.CONFIRMED
    assert verified == ["cs_test_1"]

    # Already confirmed: no second processor lookup
    reg, paid = workflow.confirm_payment(user, eid)
    assert paid and verified == ["cs_test_1"]


def test_organizer_sets_registration_status(organizer, checkout_calls):
    eid = make_event(organizer, capacity=4)
    user = attendee(1)
    reg = workflow.register_for_event(user, eid).registration

    updated = workflow.set_registration_status(organizer, eid, reg.id, "WAITLISTED")
    assert updated.status == RegistrationStatus.WAITLISTED
    with pytest.raises(Forbidden):
        workflow.set_registration_status(user, eid, reg.id, "CONFIRMED")
    with pytest.raises(NotFound):
        workflow.set_registration_status(organizer, eid, 9999, "CONFIRMED")


def _race(calls):
    """Run callables at the same moment from separate threads; collect results or raised errors."""
    barrier = threading.Barrier(len(calls))

    def run(fn):
        barrier.wait()
        try:
            return fn()
        except Exception as e:
            return e

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(run, calls))


def test_concurrent_attendees_cannot_overfill_event(organizer, checkout_calls):
    eid = make_event(organizer, capacity=1)
    users = [attendee(n) for n in range(8)]

    results = _race([lambda u=u: workflow.register_for_event(u, eid) for u in users])

    winners = [r for r in results if isinstance(r, workflow.RegistrationOutcome)]
    assert len(winners) == 1
    assert sum(isinstance(r, EventFull) for r in results) == len(users) - 1
    assert count_active_registrations(eid) == 1


def test_concurrent_duplicate_requests_create_one_row(organizer, checkout_calls):
    eid = make_event(organizer, capacity=10)
    user = attendee(1)

    results = _race([lambda: workflow.register_for_event(user, eid)] * 2)

    assert sum(isinstance(r, workflow.RegistrationOutcome) for r in results) == 1
    assert sum(isinstance(r, DuplicateRegistration) for r in results) == 1
    assert len(list_event_registrations(eid)) == 1
