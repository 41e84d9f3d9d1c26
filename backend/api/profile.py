import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from models.schemas import ProfileUpdate, UserSession
from services.errors import ServiceError
from tools import get_profile, update_profile
from .common import call_service, current_user, error_response, set_session_cookie


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user/profile")
def read_profile(user: Optional[UserSession] = Depends(current_user)):
    return call_service("Failed to fetch profile", lambda: {"user": get_profile(user)})


@router.put("/user/profile")
def write_profile(payload: ProfileUpdate, user: Optional[UserSession] = Depends(current_user)):
    try:
        profile, token = update_profile(user, payload)
    except ServiceError as e:
        return error_response(e, "Failed to update profile")
    except Exception:
        logger.exception("Profile update failed")
        return JSONResponse(status_code=500, content={"error": "Failed to update profile"})
    response = JSONResponse(content={"user": profile})
    # Name and avatar live in the session token too
    set_session_cookie(response, token)
    return response
