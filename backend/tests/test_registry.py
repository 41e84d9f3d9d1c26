from __future__ import annotations

import pytest
from pydantic import ValidationError

from models.db import set_db_path, init_db
from services.auth import register_user
from tools import call_tool, get_component_schemas, get_tool_schemas, validate_component_props


@pytest.fixture(autouse=True)
def db(tmp_path):
    set_db_path(tmp_path / "registry.db")
    init_db()


@pytest.fixture
def organizer():
    session, _ = register_user("org@example.com", "pw-1234", "Olive", "ORGANIZER")
    return session


@pytest.fixture
def attendee():
    session, _ = register_user("att@example.com", "pw-1234", "Arthur", "ATTENDEE")
    return session


def _create(organizer, **overrides):
    args = {
        "title": "Data Meetup",
        "description": "Talks and pizza",
        "type": "meetup",
        "startDate": "2030-05-01T18:00:00",
        "endDate": "2030-05-01T21:00:00",
        "location": "Berlin",
        "capacity": 30,
    }
    args.update(overrides)
    return call_tool("createEvent", args, user=organizer)


def test_tool_manifest():
    schemas = get_tool_schemas()
    names = [s["function"]["name"] for s in schemas]
    assert names == [
        "getEvents",
        "getEventDetails",
        "registerForEvent",
        "getCurrentUser",
        "getMyRegistrations",
        "getMyEvents",
        "createEvent",
        "updateProfile",
    ]
    by_name = {s["function"]["name"]: s["function"] for s in schemas}
    assert all(s["type"] == "function" for s in schemas)
    assert by_name["getEventDetails"]["parameters"]["required"] == ["eventId"]
    create_params = by_name["createEvent"]["parameters"]
    assert {"title", "startDate", "endDate", "capacity", "price"} <= set(create_params["properties"])
    assert "price" not in create_params["required"]


def test_component_manifest_and_props_validation():
    names = [c["name"] for c in get_component_schemas()]
    assert names == [
        "EventList",
        "TeamMatcher",
        "EventSchedule",
        "PrizeDisplay",
        "ParticipantList",
        "EventCalendar",
        "EventAnalytics",
    ]
    assert validate_component_props("EventCalendar", {"month": 3, "eventType": "HACKATHON"}) == {
        "month": 3,
        "eventType": "HACKATHON",
    }
    with pytest.raises(ValidationError):
        validate_component_props("EventCalendar", {"month": 12})
    with pytest.raises(KeyError):
        validate_component_props("Carousel", {})


def test_unknown_tool_and_bad_arguments():
    assert call_tool("launchRocket", {}) == {"ok": False, "error": "Unknown function: launchRocket"}
    out = call_tool("getEventDetails", {"eventId": "not-a-number"})
    assert out["ok"] is False and out["error"].startswith("Invalid arguments for getEventDetails")


def test_create_event_requires_organizer(organizer, attendee):
    out = _create(organizer)
    event = out["event"]
    assert event["status"] == "DRAFT" and event["type"] == "MEETUP" and event["price"] == 0
    assert event["organizer"]["name"] == "Olive"

    denied = _create(attendee)
    assert denied == {"ok": False, "error": "Only organizers can create events", "status": 403}

    anonymous = _create(None)
    assert anonymous["status"] == 401


def test_get_events_and_details(organizer):
    draft_id = _create(organizer)["event"]["id"]
    # Drafts stay out of public listings but show up for their organizer
    assert call_tool("getEvents", {}) == []
    assert [e["id"] for e in call_tool("getMyEvents", {}, user=organizer)] == [draft_id]
    assert call_tool("getMyEvents", {}) == []

    details = call_tool("getEventDetails", {"eventId": draft_id})
    assert details["title"] == "Data Meetup"
    assert details["prizes"] == [] and details["teams"] == [] and details["registrations"] == []
    missing = call_tool("getEventDetails", {"eventId": 999})
    assert missing == {"ok": False, "error": "Event not found", "status": 404}


def test_register_through_registry(organizer, attendee):
    event_id = _create(organizer)["event"]["id"]

    anonymous = call_tool("registerForEvent", {"eventId": event_id})
    assert anonymous["ok"] is False and anonymous["status"] == 401

    out = call_tool("registerForEvent", {"eventId": event_id, "skills": ["sql"]}, user=attendee)
    assert out["message"] == "Successfully registered for the event!"
    assert out["registration"]["status"] == "CONFIRMED"
    assert out["registration"]["teamPreference"] == "looking"

    again = call_tool("registerForEvent", {"eventId": event_id}, user=attendee)
    assert again["error"] == "Already registered for this event"

    mine = call_tool("getMyRegistrations", {}, user=attendee)
    assert [r["event"]["id"] for r in mine] == [event_id]
    assert call_tool("getMyRegistrations", {}) == {"error": "Not logged in", "registrations": []}


def test_current_user_and_profile_update(attendee):
    assert call_tool("getCurrentUser", {}) == {"error": "Not logged in", "loggedIn": False}
    me = call_tool("getCurrentUser", {}, user=attendee)
    assert me["loggedIn"] is True and me["email"] == "att@example.com"

    out = call_tool("updateProfile", {"bio": "Data nerd", "skills": ["sql", "dbt"]}, user=attendee)
    assert out["user"]["bio"] == "Data nerd" and out["user"]["skills"] == ["sql", "dbt"]
    assert out["user"]["name"] == "Arthur"
