from __future__ import annotations

import json
import os
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence
from contextlib import contextmanager


DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

DEFAULT_DB_PATH = DATA_DIR / "events.db"

_DB_PATH: Path = Path(os.getenv("EVENTS_DB_PATH", str(DEFAULT_DB_PATH)))

# Statuses that occupy a seat at an event
ACTIVE_REGISTRATION_STATUSES = ("PENDING", "CONFIRMED")

# Outcomes of insert_registration_within_capacity
REGISTRATION_CREATED = "created"
REGISTRATION_DUPLICATE = "duplicate"
REGISTRATION_FULL = "full"


def set_db_path(path: Path | str) -> None:
    global _DB_PATH
    _DB_PATH = Path(path)
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    return _DB_PATH


def _connect(path: Optional[Path] = None) -> sqlite3.Connection:
    target = Path(path) if path else get_db_path()
    conn = sqlite3.connect(target, check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    # Enforce foreign keys (cascading deletes of event children rely on it)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_connection(path: Optional[Path] = None, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a connection that commits on success and rolls back on error.

    With ``immediate=True`` the write lock is taken up front, so reads made
    inside the block cannot be invalidated by another writer before commit.
    """
    conn = _connect(path)
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _ensure_schema_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    _ensure_schema_migrations_table(conn)
    cur = conn.execute("SELECT version FROM schema_migrations")
    return {row[0] for row in cur.fetchall()}


def _record_applied(conn: sqlite3.Connection, version: str) -> None:
    conn.execute("INSERT OR IGNORE INTO schema_migrations(version) VALUES (?)", (version,))


def _migration_files() -> Sequence[Path]:
    migrations_dir = Path(__file__).resolve().parents[1] / "migrations"
    return sorted(p for p in migrations_dir.iterdir() if p.suffix == ".sql")


def run_migrations(path: Optional[Path] = None) -> None:
    """Run pending SQL migrations found in backend/migrations/*.sql in sorted order."""
    with get_connection(path) as conn:
        applied = _get_applied_versions(conn)
        for sql_file in _migration_files():
            version = sql_file.stem
            if version in applied:
                continue
            conn.executescript(sql_file.read_text(encoding="utf-8"))
            _record_applied(conn, version)


def init_db(path: Optional[Path | str] = None) -> None:
    """Initialize database by running migrations. Safe to call multiple times."""
    if path is not None:
        set_db_path(path)
    run_migrations()


def _json_list(values: Optional[Iterable[Any]]) -> str:
    return json.dumps(list(values or []))


# --- Users ---

def create_user(email: str, password_hash: str, name: str, role: str) -> int:
    """Insert a user. Raises sqlite3.IntegrityError when the email is taken."""
    with get_connection() as conn:
        cur = conn.execute(
            "INSERT INTO users(email, password_hash, name, role) VALUES(?, ?, ?, ?)",
            (email, password_hash, name, role),
        )
        return int(cur.lastrowid)


def get_user_by_id(user_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()


def get_user_by_email(email: str) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()


def update_user_profile(
    user_id: int,
    name: Optional[str] = None,
    bio: Optional[str] = None,
    avatar: Optional[str] = None,
    skills: Optional[list[str]] = None,
    interests: Optional[list[str]] = None,
) -> bool:
    """Update the given profile fields. Returns True if the user exists."""
    fields = []
    params: list[Any] = []
    if name is not None:
        fields.append("name = ?")
        params.append(name)
    if bio is not None:
        fields.append("bio = ?")
        params.append(bio)
    if avatar is not None:
        fields.append("avatar = ?")
        params.append(avatar)
    if skills is not None:
        fields.append("skills = ?")
        params.append(_json_list(skills))
    if interests is not None:
        fields.append("interests = ?")
        params.append(_json_list(interests))
    with get_connection() as conn:
        if fields:
            params.append(user_id)
            conn.execute(
                "UPDATE users SET " + ", ".join(fields) + ", updated_at = datetime('now') WHERE id = ?",
                params,
            )
        return conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is not None


def count_user_activity(user_id: int) -> dict[str, int]:
    """Number of events organized and registrations held by a user."""
    with get_connection() as conn:
        organized = conn.execute("SELECT COUNT(*) FROM events WHERE organizer_id = ?", (user_id,)).fetchone()[0]
        registered = conn.execute("SELECT COUNT(*) FROM registrations WHERE user_id = ?", (user_id,)).fetchone()[0]
    return {"organizedEvents": int(organized), "registrations": int(registered)}


# --- Events ---

_EVENT_COLUMNS = (
    "title",
    "description",
    "type",
    "status",
    "start_date",
    "end_date",
    "location",
    "capacity",
    "price",
    "currency",
    "image_url",
    "tags",
    "requirements",
)
_JSON_EVENT_COLUMNS = {"tags", "requirements"}


def create_event(organizer_id: int, **fields: Any) -> int:
    columns = ["organizer_id"]
    params: list[Any] = [organizer_id]
    for col in _EVENT_COLUMNS:
        if col in fields and fields[col] is not None:
            columns.append(col)
            value = fields[col]
            params.append(_json_list(value) if col in _JSON_EVENT_COLUMNS else value)
    placeholders = ", ".join("?" for _ in columns)
    with get_connection() as conn:
        cur = conn.execute(
            f"INSERT INTO events({', '.join(columns)}) VALUES({placeholders})",
            params,
        )
        return int(cur.lastrowid)


def get_event(event_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()


def list_events(
    event_type: Optional[str] = None,
    status: Optional[str] = None,
    organizer_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[sqlite3.Row]:
    """List events ordered by start date, optionally filtered."""
    clauses = []
    params: list[Any] = []
    if event_type:
        clauses.append("type = ?")
        params.append(event_type)
    if status:
        clauses.append("status = ?")
        params.append(status)
    if organizer_id is not None:
        clauses.append("organizer_id = ?")
        params.append(organizer_id)
    query = "SELECT * FROM events"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY start_date ASC, id ASC"
    if limit:
        query += " LIMIT ?"
        params.append(limit)
    with get_connection() as conn:
        return list(conn.execute(query, params).fetchall())


def update_event(event_id: int, **fields: Any) -> bool:
    """Update the provided (non-None) event columns. Returns True if the event exists."""
    sets = []
    params: list[Any] = []
    for col in _EVENT_COLUMNS:
        if col in fields and fields[col] is not None:
            sets.append(f"{col} = ?")
            value = fields[col]
            params.append(_json_list(value) if col in _JSON_EVENT_COLUMNS else value)
    with get_connection() as conn:
        if sets:
            params.append(event_id)
            conn.execute(
                "UPDATE events SET " + ", ".join(sets) + ", updated_at = datetime('now') WHERE id = ?",
                params,
            )
        return conn.execute("SELECT 1 FROM events WHERE id = ?", (event_id,)).fetchone() is not None


def delete_event(event_id: int) -> bool:
    with get_connection() as conn:
        cur = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        return cur.rowcount > 0


def count_event_children(event_id: int) -> dict[str, int]:
    with get_connection() as conn:
        registrations = conn.execute(
            "SELECT COUNT(*) FROM registrations WHERE event_id = ?", (event_id,)
        ).fetchone()[0]
        teams = conn.execute("SELECT COUNT(*) FROM teams WHERE event_id = ?", (event_id,)).fetchone()[0]
    return {"registrations": int(registrations), "teams": int(teams)}


def _count_active_registrations(conn: sqlite3.Connection, event_id: int) -> int:
    placeholders = ", ".join("?" for _ in ACTIVE_REGISTRATION_STATUSES)
    row = conn.execute(
        f"SELECT COUNT(*) FROM registrations WHERE event_id = ? AND status IN ({placeholders})",
        (event_id, *ACTIVE_REGISTRATION_STATUSES),
    ).fetchone()
    return int(row[0])


def count_active_registrations(event_id: int) -> int:
    with get_connection() as conn:
        return _count_active_registrations(conn, event_id)


# --- Registrations ---

def get_registration(user_id: int, event_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute(
            "SELECT * FROM registrations WHERE user_id = ? AND event_id = ?",
            (user_id, event_id),
        ).fetchone()


def get_registration_by_id(registration_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM registrations WHERE id = ?", (registration_id,)).fetchone()


def insert_registration_within_capacity(
    user_id: int,
    event_id: int,
    capacity: int,
    status: str,
    team_preference: Optional[str] = None,
    motivation: Optional[str] = None,
    skills: Optional[list[str]] = None,
    special_requests: Optional[str] = None,
) -> tuple[str, Optional[int]]:
    """Insert a registration if the user has none and a seat is free.

    The duplicate and capacity checks run inside the same write transaction as
    the insert. Returns ``(outcome, registration_id)`` where outcome is one of
    REGISTRATION_CREATED, REGISTRATION_DUPLICATE or REGISTRATION_FULL.
    """
    try:
        with get_connection(immediate=True) as conn:
            existing = conn.execute(
                "SELECT id FROM registrations WHERE user_id = ? AND event_id = ?",
                (user_id, event_id),
            ).fetchone()
            if existing:
                return REGISTRATION_DUPLICATE, None
            if _count_active_registrations(conn, event_id) >= capacity:
                return REGISTRATION_FULL, None
            cur = conn.execute(
                """
                INSERT INTO registrations(user_id, event_id, status, team_preference, motivation, skills, special_requests)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, event_id, status, team_preference, motivation, _json_list(skills), special_requests),
            )
            return REGISTRATION_CREATED, int(cur.lastrowid)
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e).upper():
            return REGISTRATION_DUPLICATE, None
        raise


def set_registration_payment_id(registration_id: int, payment_id: str) -> None:
    with get_connection() as conn:
        conn.execute(
            "UPDATE registrations SET payment_id = ?, updated_at = datetime('now') WHERE id = ?",
            (payment_id, registration_id),
        )


def delete_unpaid_registration(registration_id: int) -> bool:
    """Remove a PENDING registration that never got a checkout session."""
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM registrations WHERE id = ? AND status = 'PENDING' AND payment_id IS NULL",
            (registration_id,),
        )
        return cur.rowcount > 0


def update_registration_status(registration_id: int, status: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE registrations SET status = ?, updated_at = datetime('now') WHERE id = ?",
            (status, registration_id),
        )
        return cur.rowcount > 0


def list_event_registrations(event_id: int) -> list[sqlite3.Row]:
    """Registrations for an event, newest first, joined with registrant profile columns."""
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT r.*, u.name AS user_name, u.avatar AS user_avatar,
                   u.skills AS user_skills, u.bio AS user_bio
            FROM registrations r
            JOIN users u ON u.id = r.user_id
            WHERE r.event_id = ?
            ORDER BY r.created_at DESC, r.id DESC
            """,
            (event_id,),
        )
        return list(cur.fetchall())


def list_user_registrations(user_id: int) -> list[sqlite3.Row]:
    """A user's registrations, newest first, joined with event summary columns."""
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT r.*, e.title AS event_title, e.description AS event_description,
                   e.type AS event_type, e.status AS event_status,
                   e.start_date AS event_start_date, e.end_date AS event_end_date,
                   e.location AS event_location, e.image_url AS event_image_url,
                   e.organizer_id AS event_organizer_id, o.name AS event_organizer_name
            FROM registrations r
            JOIN events e ON e.id = r.event_id
            JOIN users o ON o.id = e.organizer_id
            WHERE r.user_id = ?
            ORDER BY r.created_at DESC, r.id DESC
            """,
            (user_id,),
        )
        return list(cur.fetchall())


# --- Prizes and schedule items ---

def add_prize(
    event_id: int,
    rank: int,
    title: str,
    description: str = "",
    value: float = 0,
    currency: str = "USD",
) -> int:
    with get_connection() as conn:
        cur = conn.execute(
            "INSERT INTO prizes(event_id, rank, title, description, value, currency) VALUES(?, ?, ?, ?, ?, ?)",
            (event_id, rank, title, description, value, currency),
        )
        return int(cur.lastrowid)


def list_prizes(event_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute("SELECT * FROM prizes WHERE event_id = ? ORDER BY rank ASC, id ASC", (event_id,))
        return list(cur.fetchall())


def add_schedule_item(
    event_id: int,
    title: str,
    start_time: str,
    end_time: str,
    description: str = "",
    location: str = "",
    speaker: str = "",
    sort_order: int = 0,
) -> int:
    with get_connection() as conn:
        cur = conn.execute(
            """
            INSERT INTO schedule_items(event_id, title, description, start_time, end_time, location, speaker, sort_order)
            VALUES(?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (event_id, title, description, start_time, end_time, location, speaker, sort_order),
        )
        return int(cur.lastrowid)


def list_schedule_items(event_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            "SELECT * FROM schedule_items WHERE event_id = ? ORDER BY sort_order ASC, id ASC",
            (event_id,),
        )
        return list(cur.fetchall())


# --- Teams ---

def create_team_with_owner(
    event_id: int,
    user_id: int,
    name: str,
    description: str = "",
    looking_for: Optional[list[str]] = None,
) -> Optional[int]:
    """Create a team and add its creator as owner.

    Returns None when the user already belongs to a team for this event.
    """
    with get_connection(immediate=True) as conn:
        if _user_team_id_for_event(conn, user_id, event_id) is not None:
            return None
        cur = conn.execute(
            "INSERT INTO teams(event_id, name, description, looking_for) VALUES(?, ?, ?, ?)",
            (event_id, name, description, _json_list(looking_for)),
        )
        team_id = int(cur.lastrowid)
        conn.execute(
            "INSERT INTO team_members(team_id, user_id, role) VALUES(?, ?, 'OWNER')",
            (team_id, user_id),
        )
        return team_id


def join_team(team_id: int, user_id: int, event_id: int) -> bool:
    """Add a member unless they already belong to a team for the event."""
    with get_connection(immediate=True) as conn:
        if _user_team_id_for_event(conn, user_id, event_id) is not None:
            return False
        conn.execute(
            "INSERT INTO team_members(team_id, user_id, role) VALUES(?, ?, 'MEMBER')",
            (team_id, user_id),
        )
        return True


def _user_team_id_for_event(conn: sqlite3.Connection, user_id: int, event_id: int) -> Optional[int]:
    row = conn.execute(
        """
        SELECT t.id FROM teams t
        JOIN team_members m ON m.team_id = t.id
        WHERE m.user_id = ? AND t.event_id = ?
        """,
        (user_id, event_id),
    ).fetchone()
    return int(row[0]) if row else None


def get_team(team_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()


def get_user_team_for_event(user_id: int, event_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        team_id = _user_team_id_for_event(conn, user_id, event_id)
        if team_id is None:
            return None
        return conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()


def list_event_teams(event_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute("SELECT * FROM teams WHERE event_id = ? ORDER BY id ASC", (event_id,))
        return list(cur.fetchall())


def list_team_members(team_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT m.*, u.name AS user_name, u.avatar AS user_avatar, u.skills AS user_skills
            FROM team_members m
            JOIN users u ON u.id = m.user_id
            WHERE m.team_id = ?
            ORDER BY m.id ASC
            """,
            (team_id,),
        )
        return list(cur.fetchall())


# --- Assistant chat history ---

def create_chat_session(session_id: str, user_id: Optional[int] = None, title: Optional[str] = None) -> int:
    """Create a new chat session and return its internal ID."""
    with get_connection() as conn:
        cur = conn.execute(
            "INSERT OR IGNORE INTO chat_sessions(session_id, user_id, title) VALUES(?, ?, ?)",
            (session_id, user_id, title),
        )
        if cur.rowcount == 0:
            # Session already exists, get its ID
            row = conn.execute("SELECT id FROM chat_sessions WHERE session_id = ?", (session_id,)).fetchone()
            return int(row["id"]) if row else 0
        return int(cur.lastrowid)


def get_chat_session(session_id: str) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM chat_sessions WHERE session_id = ?", (session_id,)).fetchone()


def update_chat_session_title(session_id: str, title: str) -> None:
    with get_connection() as conn:
        conn.execute(
            "UPDATE chat_sessions SET title = ?, updated_at = datetime('now') WHERE session_id = ?",
            (title, session_id),
        )


def add_chat_message(
    session_id: str,
    role: str,
    content: str,
    metadata: Optional[dict] = None,
) -> int:
    metadata_json = json.dumps(metadata) if metadata else None
    with get_connection() as conn:
        cur = conn.execute(
            "INSERT INTO chat_messages(session_id, role, content, metadata) VALUES(?, ?, ?, ?)",
            (session_id, role, content, metadata_json),
        )
        conn.execute(
            "UPDATE chat_sessions SET updated_at = datetime('now') WHERE session_id = ?",
            (session_id,),
        )
        return int(cur.lastrowid)


def get_chat_messages(session_id: str, limit: Optional[int] = None) -> list[sqlite3.Row]:
    """Messages for a session in insertion order; with ``limit`` only the most recent ones."""
    with get_connection() as conn:
        if limit:
            cur = conn.execute(
                "SELECT * FROM (SELECT * FROM chat_messages WHERE session_id = ? ORDER BY id DESC LIMIT ?) ORDER BY id ASC",
                (session_id, limit),
            )
        else:
            cur = conn.execute("SELECT * FROM chat_messages WHERE session_id = ? ORDER BY id ASC", (session_id,))
        return list(cur.fetchall())


def get_recent_chat_sessions(limit: int = 10, user_id: Optional[int] = None) -> list[sqlite3.Row]:
    with get_connection() as conn:
        if user_id is None:
            cur = conn.execute(
                "SELECT * FROM chat_sessions ORDER BY updated_at DESC, id DESC LIMIT ?",
                (limit,),
            )
        else:
            cur = conn.execute(
                "SELECT * FROM chat_sessions WHERE user_id = ? ORDER BY updated_at DESC, id DESC LIMIT ?",
                (user_id, limit),
            )
        return list(cur.fetchall())


def delete_chat_session(session_id: str) -> None:
    """Delete a chat session and all its messages."""
    with get_connection() as conn:
        conn.execute("DELETE FROM chat_sessions WHERE session_id = ?", (session_id,))
