import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from models.schemas import LoginRequest, SignupRequest, UserSession
from services.auth import login, register_user
from services.errors import ServiceError
from tools import get_current_user
from .common import clear_session_cookie, current_user, error_response, set_session_cookie


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/register")
def signup(payload: SignupRequest):
    try:
        session, token = register_user(payload.email, payload.password, payload.name, payload.role)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Registration error")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    response = JSONResponse(content={"user": session.to_api(), "message": "Registration successful"})
    set_session_cookie(response, token)
    return response


@router.post("/auth/login")
def login_route(payload: LoginRequest):
    try:
        session, token = login(payload.email, payload.password)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Login error")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    response = JSONResponse(content={"user": session.to_api(), "message": "Login successful"})
    set_session_cookie(response, token)
    return response


@router.post("/auth/logout")
def logout():
    response = JSONResponse(content={"ok": True})
    clear_session_cookie(response)
    return response


@router.get("/auth/me")
def me(user: Optional[UserSession] = Depends(current_user)):
    data = get_current_user(user)
    if not data.get("loggedIn"):
        return JSONResponse(status_code=401, content={"error": "Not logged in"})
    return {"user": data}
