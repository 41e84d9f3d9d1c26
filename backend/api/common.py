import logging
from typing import Any, Callable, Optional

from fastapi import Cookie, Response
from fastapi.responses import JSONResponse

from config import settings
from models.schemas import UserSession
from services.auth import verify_session_token
from services.errors import ServiceError


logger = logging.getLogger(__name__)


def current_user(
    session: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[UserSession]:
    """Identity from the signed session cookie, re-derived on every request."""
    return verify_session_token(session)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.IS_PRODUCTION,
        samesite="lax",
        max_age=60 * 60 * 24 * settings.SESSION_TTL_DAYS,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


def error_response(err: ServiceError, failure_message: str = "Internal server error") -> JSONResponse:
    """Client errors keep their message; internal ones are reported generically."""
    if err.status_code >= 500:
        logger.error(f"{failure_message}: {err.message}")
        return JSONResponse(status_code=err.status_code, content={"error": failure_message})
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


def call_service(
    failure_message: str,
    fn: Callable[..., Any],
    *args: Any,
    status_code: int = 200,
    **kwargs: Any,
) -> JSONResponse:
    """Run an operation and map its outcome to a JSON response.

    Domain errors keep their message and status; anything else is logged and
    reported as ``failure_message`` with a 500.
    """
    try:
        result = fn(*args, **kwargs)
    except ServiceError as e:
        return error_response(e, failure_message)
    except Exception:
        logger.exception(failure_message)
        return JSONResponse(status_code=500, content={"error": failure_message})
    return JSONResponse(status_code=status_code, content=result)


def get_generate_stream():
    """Return the streaming function used by the assistant route.

    Looked up on `router` at call time so tests can monkeypatch `router.generate_stream`.
    """
    import router as router_module  # lazy import to avoid cycles

    return router_module.generate_stream
