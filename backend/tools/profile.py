from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from models.db import count_user_activity, get_user_by_id, update_user_profile
from models.schemas import ProfileUpdate, User, UserSession
from services.auth import create_session_token, require_user
from services.errors import NotFound


def _load_user(user_id: int) -> User:
    row = get_user_by_id(user_id)
    if row is None:
        raise NotFound("User not found")
    return User.from_row(row)


def get_current_user(user: Optional[UserSession]) -> Dict[str, Any]:
    """Profile of the logged-in user, or a not-logged-in marker."""
    if user is None:
        return {"error": "Not logged in", "loggedIn": False}
    try:
        profile = _load_user(user.id)
    except NotFound:
        return {"error": "Not logged in", "loggedIn": False}
    return {**profile.to_api(), "loggedIn": True}


def get_profile(user: Optional[UserSession]) -> Dict[str, Any]:
    user = require_user(user)
    profile = _load_user(user.id).to_api()
    profile["counts"] = count_user_activity(user.id)
    return profile


def update_profile(user: Optional[UserSession], payload: ProfileUpdate) -> Tuple[Dict[str, Any], str]:
    """Apply profile changes; returns the updated profile and a re-issued session token."""
    user = require_user(user)
    found = update_user_profile(
        user.id,
        name=payload.name,
        bio=payload.bio,
        avatar=payload.avatar,
        skills=payload.skills,
        interests=payload.interests,
    )
    if not found:
        raise NotFound("User not found")
    profile = _load_user(user.id)
    token = create_session_token(
        UserSession(id=profile.id, email=profile.email, name=profile.name, role=profile.role, avatar=profile.avatar)
    )
    return profile.to_api(), token


__all__ = ["get_current_user", "get_profile", "update_profile"]
