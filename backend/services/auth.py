from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
from jose import JWTError, jwt

from config.settings import SESSION_ALGORITHM, SESSION_SECRET, SESSION_TTL_DAYS
from models.db import create_user, get_user_by_email, get_user_by_id
from models.schemas import UserRole, UserSession
from services.errors import Unauthorized, ValidationFailed


logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_session_token(user: UserSession, ttl: Optional[timedelta] = None) -> str:
    """Sign the session identity with an embedded expiry (7 days by default)."""
    now = datetime.now(timezone.utc)
    expires = now + (ttl if ttl is not None else timedelta(days=SESSION_TTL_DAYS))
    payload = {
        "user": user.model_dump(mode="json"),
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALGORITHM)


def verify_session_token(token: Optional[str]) -> Optional[UserSession]:
    """Return the identity carried by a valid token, or None for missing/invalid/expired tokens."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, SESSION_SECRET, algorithms=[SESSION_ALGORITHM])
    except JWTError:
        return None
    user = payload.get("user")
    if not isinstance(user, dict):
        return None
    try:
        return UserSession.model_validate(user)
    except ValueError:
        return None


def require_user(user: Optional[UserSession], message: str = "Unauthorized") -> UserSession:
    if user is None:
        raise Unauthorized(message)
    return user


def register_user(email: str, password: str, name: str, role: UserRole | str) -> Tuple[UserSession, str]:
    """Create an account and return its session identity plus a signed token."""
    role_value = role.value if isinstance(role, UserRole) else str(role)
    if role_value not in (UserRole.ORGANIZER.value, UserRole.ATTENDEE.value):
        raise ValidationFailed("Invalid role")
    email = email.strip().lower()
    if get_user_by_email(email) is not None:
        raise ValidationFailed("Email already exists")
    try:
        user_id = create_user(email, hash_password(password), name, role_value)
    except sqlite3.IntegrityError:
        raise ValidationFailed("Email already exists")
    logger.info(f"Registered user {user_id} with role {role_value}")
    session = UserSession.from_row(get_user_by_id(user_id))
    return session, create_session_token(session)


def login(email: str, password: str) -> Tuple[UserSession, str]:
    row = get_user_by_email(email.strip().lower())
    if row is None or not verify_password(password, row["password_hash"]):
        raise Unauthorized("Invalid email or password")
    session = UserSession.from_row(row)
    return session, create_session_token(session)


__all__ = [
    "hash_password",
    "verify_password",
    "create_session_token",
    "verify_session_token",
    "require_user",
    "register_user",
    "login",
]
