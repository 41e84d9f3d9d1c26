from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from models.schemas import (
    CamelModel,
    EventCreate,
    EventStatus,
    ProfileUpdate,
    RegistrationRequest,
    UserSession,
)
from services.errors import ServiceError
from . import events, profile, registrations


logger = logging.getLogger(__name__)


# --- Argument models ---

class NoArgs(BaseModel):
    pass


class GetEventsArgs(CamelModel):
    type: Optional[str] = Field(default=None, description="Event type: HACKATHON, CONFERENCE, WORKSHOP, or MEETUP")
    status: Optional[str] = Field(default=None, description="Event status: DRAFT, PUBLISHED, ONGOING, or COMPLETED")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of events to return")


class EventIdArgs(CamelModel):
    event_id: int = Field(description="The event ID")


class RegisterForEventArgs(CamelModel):
    event_id: int = Field(description="The event ID to register for")
    skills: Optional[List[str]] = Field(default=None, description="User skills")
    motivation: Optional[str] = Field(default=None, description="Motivation for attending")


class CreateEventArgs(CamelModel):
    title: str = Field(description="Event title")
    description: str = Field(description="Event description")
    type: str = Field(description="Event type: HACKATHON, CONFERENCE, WORKSHOP, or MEETUP")
    start_date: str = Field(description="Start date in ISO format")
    end_date: str = Field(description="End date in ISO format")
    location: str = Field(description="Event location")
    capacity: int = Field(description="Maximum capacity")
    price: Optional[float] = Field(default=None, description="Ticket price (0 for free)")


class UpdateProfileArgs(CamelModel):
    name: Optional[str] = Field(default=None, description="New name")
    bio: Optional[str] = Field(default=None, description="New bio")
    skills: Optional[List[str]] = Field(default=None, description="Skills list")
    interests: Optional[List[str]] = Field(default=None, description="Interests list")


# --- Handlers: thin pass-throughs to the operations behind the HTTP routes ---

def _get_events(user: Optional[UserSession], args: GetEventsArgs) -> Any:
    return events.list_events(event_type=args.type, status=args.status, limit=args.limit, user=user)


def _get_event_details(user: Optional[UserSession], args: EventIdArgs) -> Any:
    return events.get_event_details(args.event_id)


def _register_for_event(user: Optional[UserSession], args: RegisterForEventArgs) -> Any:
    details = RegistrationRequest(
        skills=args.skills or [],
        motivation=args.motivation or "",
        team_preference="looking",
    )
    return registrations.register_for_event(user, args.event_id, details)


def _get_current_user(user: Optional[UserSession], args: NoArgs) -> Any:
    return profile.get_current_user(user)


def _get_my_registrations(user: Optional[UserSession], args: NoArgs) -> Any:
    if user is None:
        return {"error": "Not logged in", "registrations": []}
    return registrations.get_my_registrations(user)


def _get_my_events(user: Optional[UserSession], args: NoArgs) -> Any:
    return events.get_my_events(user)


def _create_event(user: Optional[UserSession], args: CreateEventArgs) -> Any:
    payload = EventCreate(
        title=args.title,
        description=args.description,
        type=args.type,
        start_date=args.start_date,
        end_date=args.end_date,
        location=args.location,
        capacity=args.capacity,
        price=args.price or 0,
        status=EventStatus.DRAFT,
    )
    return {"event": events.create_event(user, payload)}


def _update_profile(user: Optional[UserSession], args: UpdateProfileArgs) -> Any:
    payload = ProfileUpdate(name=args.name, bio=args.bio, skills=args.skills, interests=args.interests)
    updated, _token = profile.update_profile(user, payload)
    return {"user": updated}


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[Optional[UserSession], Any], Any]

    def schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(by_alias=True),
            },
        }


TOOLS: Dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            "getEvents",
            "Fetch list of events from the database with optional filters for type and status. "
            "Use this to show users available events.",
            GetEventsArgs,
            _get_events,
        ),
        ToolSpec(
            "getEventDetails",
            "Get detailed information about a specific event including prizes, schedule, and participants",
            EventIdArgs,
            _get_event_details,
        ),
        ToolSpec(
            "registerForEvent",
            "Register the current logged-in user for an event. User must be logged in.",
            RegisterForEventArgs,
            _register_for_event,
        ),
        ToolSpec(
            "getCurrentUser",
            "Get information about the currently logged in user including their role (ORGANIZER or ATTENDEE), "
            "name, email, skills, and interests",
            NoArgs,
            _get_current_user,
        ),
        ToolSpec(
            "getMyRegistrations",
            "Get the list of events the current user is registered for. Only works for logged-in users.",
            NoArgs,
            _get_my_registrations,
        ),
        ToolSpec(
            "getMyEvents",
            "Get events created by the current organizer. Only works for logged-in organizers.",
            NoArgs,
            _get_my_events,
        ),
        ToolSpec(
            "createEvent",
            "Create a new event. Only organizers can use this. Returns the created event.",
            CreateEventArgs,
            _create_event,
        ),
        ToolSpec(
            "updateProfile",
            "Update the current user profile including name, bio, skills, and interests",
            UpdateProfileArgs,
            _update_profile,
        ),
    )
}


def get_tool_schemas() -> List[Dict[str, Any]]:
    return [spec.schema() for spec in TOOLS.values()]


def call_tool(function_name: str, arguments: Optional[Dict[str, Any]], user: Optional[UserSession] = None) -> Any:
    """Validate arguments against the tool's schema and run it on behalf of ``user``.

    Failures come back as ``{"ok": False, "error": ...}`` so the assistant can relay them.
    """
    spec = TOOLS.get(function_name)
    if spec is None:
        return {"ok": False, "error": f"Unknown function: {function_name}"}
    try:
        args = spec.args_model.model_validate(arguments or {})
    except ValidationError as e:
        return {"ok": False, "error": f"Invalid arguments for {function_name}: {e.errors(include_url=False)}"}
    try:
        return spec.handler(user, args)
    except ServiceError as e:
        return {"ok": False, "error": e.message, "status": e.status_code}
    except ValidationError as e:
        return {"ok": False, "error": f"Invalid arguments for {function_name}: {e.errors(include_url=False)}"}
    except Exception as e:
        logger.exception(f"Tool {function_name} failed")
        return {"ok": False, "error": str(e)}


__all__ = [
    "ToolSpec",
    "TOOLS",
    "get_tool_schemas",
    "call_tool",
]
