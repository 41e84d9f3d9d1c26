from __future__ import annotations

from pathlib import Path
import sqlite3
import tempfile

import pytest

from models.db import (
    set_db_path,
    init_db,
    get_connection,
    create_user,
    get_user_by_email,
    update_user_profile,
    count_user_activity,
    create_event,
    get_event,
    list_events,
    update_event,
    delete_event,
    count_event_children,
    count_active_registrations,
    insert_registration_within_capacity,
    get_registration,
    update_registration_status,
    list_event_registrations,
    list_user_registrations,
    add_prize,
    list_prizes,
    add_schedule_item,
    list_schedule_items,
    create_team_with_owner,
    join_team,
    list_team_members,
    create_chat_session,
    add_chat_message,
    get_chat_messages,
    get_recent_chat_sessions,
    delete_chat_session,
    REGISTRATION_CREATED,
    REGISTRATION_DUPLICATE,
    REGISTRATION_FULL,
)


def with_temp_db(func):
    def wrapper():
        with tempfile.TemporaryDirectory() as td:
            db_path = Path(td) / "test.db"
            set_db_path(db_path)
            init_db()
            func()
    return wrapper


def _event(organizer_id: int, **overrides) -> int:
    fields = dict(
        title="Spring Hack",
        type="HACKATHON",
        status="PUBLISHED",
        start_date="2030-04-01T09:00:00",
        end_date="2030-04-02T18:00:00",
        capacity=2,
    )
    fields.update(overrides)
    return create_event(organizer_id, **fields)


@with_temp_db
def test_migrations_are_idempotent():
    init_db()
    with get_connection() as conn:
        versions = [r[0] for r in conn.execute("SELECT version FROM schema_migrations ORDER BY version")]
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert versions == ["0001_init_events", "0002_assistant_history"]
    assert {"users", "events", "registrations", "prizes", "schedule_items", "teams", "team_members"} <= tables
    assert {"chat_sessions", "chat_messages"} <= tables


@with_temp_db
def test_users_unique_email_and_profile_update():
    uid = create_user("ada@example.com", "hash", "Ada", "ATTENDEE")
    with pytest.raises(sqlite3.IntegrityError):
        create_user("ada@example.com", "hash", "Ada Again", "ATTENDEE")

    assert update_user_profile(uid, bio="Builder", skills=["python", "sql"]) is True
    row = get_user_by_email("ada@example.com")
    assert row["bio"] == "Builder" and row["name"] == "Ada"
    assert row["skills"] == '["python", "sql"]'
    assert update_user_profile(9999, name="Nobody") is False


@with_temp_db
def test_events_crud_and_filters():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    later = _event(org, title="Later", start_date="2030-06-01T09:00:00", end_date="2030-06-01T18:00:00")
    sooner = _event(org, title="Sooner", tags=["ai", "web"])
    _event(org, title="Draft", status="DRAFT", type="MEETUP")

    published = list_events(status="PUBLISHED")
    assert [r["id"] for r in published] == [sooner, later]
    assert [r["title"] for r in list_events(event_type="MEETUP")] == ["Draft"]
    assert len(list_events(organizer_id=org)) == 3
    assert len(list_events(limit=1)) == 1
    assert get_event(sooner)["tags"] == '["ai", "web"]'

    assert update_event(sooner, title="Sooner v2", capacity=5) is True
    row = get_event(sooner)
    assert row["title"] == "Sooner v2" and row["capacity"] == 5 and row["type"] == "HACKATHON"
    assert update_event(424242, title="x") is False


@with_temp_db
def test_event_check_constraints():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    with pytest.raises(sqlite3.IntegrityError):
        _event(org, capacity=0)
    with pytest.raises(sqlite3.IntegrityError):
        _event(org, type="PARTY")


@with_temp_db
def test_registration_insert_outcomes():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    a = create_user("a@example.com", "hash", "A", "ATTENDEE")
    b = create_user("b@example.com", "hash", "B", "ATTENDEE")
    c = create_user("c@example.com", "hash", "C", "ATTENDEE")
    eid = _event(org, capacity=2)

    outcome, rid = insert_registration_within_capacity(a, eid, 2, "CONFIRMED", skills=["go"])
    assert outcome == REGISTRATION_CREATED and rid is not None
    assert insert_registration_within_capacity(a, eid, 2, "CONFIRMED") == (REGISTRATION_DUPLICATE, None)

    outcome, _ = insert_registration_within_capacity(b, eid, 2, "PENDING")
    assert outcome == REGISTRATION_CREATED
    assert insert_registration_within_capacity(c, eid, 2, "CONFIRMED") == (REGISTRATION_FULL, None)
    assert count_active_registrations(eid) == 2

    # Cancelled rows no longer occupy a seat
    update_registration_status(rid, "CANCELLED")
    assert count_active_registrations(eid) == 1
    outcome, _ = insert_registration_within_capacity(c, eid, 2, "CONFIRMED")
    assert outcome == REGISTRATION_CREATED
    assert get_registration(a, eid)["status"] == "CANCELLED"


@with_temp_db
def test_registration_listings_join_users_and_events():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    a = create_user("a@example.com", "hash", "A", "ATTENDEE")
    eid = _event(org, title="Joined")
    insert_registration_within_capacity(a, eid, 2, "CONFIRMED")

    regs = list_event_registrations(eid)
    assert len(regs) == 1 and regs[0]["user_name"] == "A"
    mine = list_user_registrations(a)
    assert mine[0]["event_title"] == "Joined" and mine[0]["event_organizer_name"] == "Org"
    assert count_user_activity(a) == {"organizedEvents": 0, "registrations": 1}
    assert count_user_activity(org) == {"organizedEvents": 1, "registrations": 0}


@with_temp_db
def test_prizes_and_schedule_are_ordered():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    eid = _event(org)
    add_prize(eid, 2, "Runner up", value=500)
    add_prize(eid, 1, "Grand prize", value=1000)
    add_schedule_item(eid, "Closing", "2030-04-02T17:00:00", "2030-04-02T18:00:00", sort_order=2)
    add_schedule_item(eid, "Kickoff", "2030-04-01T09:00:00", "2030-04-01T10:00:00", sort_order=1)

    assert [p["title"] for p in list_prizes(eid)] == ["Grand prize", "Runner up"]
    assert [s["title"] for s in list_schedule_items(eid)] == ["Kickoff", "Closing"]


@with_temp_db
def test_teams_one_per_user_per_event():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    a = create_user("a@example.com", "hash", "A", "ATTENDEE")
    b = create_user("b@example.com", "hash", "B", "ATTENDEE")
    eid = _event(org)

    t1 = create_team_with_owner(eid, a, "Alpha", looking_for=["designer"])
    assert t1 is not None
    assert create_team_with_owner(eid, a, "Second") is None
    t2 = create_team_with_owner(eid, b, "Beta")
    assert join_team(t2, a, eid) is False

    members = list_team_members(t1)
    assert [(m["user_id"], m["role"]) for m in members] == [(a, "OWNER")]


@with_temp_db
def test_delete_event_cascades_children():
    org = create_user("org@example.com", "hash", "Org", "ORGANIZER")
    a = create_user("a@example.com", "hash", "A", "ATTENDEE")
    eid = _event(org)
    insert_registration_within_capacity(a, eid, 2, "CONFIRMED")
    add_prize(eid, 1, "Prize")
    create_team_with_owner(eid, a, "Alpha")
    assert count_event_children(eid) == {"registrations": 1, "teams": 1}

    assert delete_event(eid) is True
    assert get_event(eid) is None
    assert list_prizes(eid) == []
    assert count_event_children(eid) == {"registrations": 0, "teams": 0}
    with get_connection() as conn:
        assert conn.execute("SELECT COUNT(*) FROM team_members").fetchone()[0] == 0


@with_temp_db
def test_chat_history_helpers():
    uid = create_user("a@example.com", "hash", "A", "ATTENDEE")
    create_chat_session("s-anon")
    create_chat_session("s-user", user_id=uid, title="Finding events")
    for i in range(5):
        add_chat_message("s-user", "user" if i % 2 == 0 else "assistant", f"m{i}")

    recent = get_chat_messages("s-user", limit=2)
    assert [m["content"] for m in recent] == ["m3", "m4"]
    assert [s["session_id"] for s in get_recent_chat_sessions(user_id=uid)] == ["s-user"]
    assert len(get_recent_chat_sessions()) == 2

    delete_chat_session("s-user")
    assert get_chat_messages("s-user") == []
