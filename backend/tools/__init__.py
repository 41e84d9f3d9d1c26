from __future__ import annotations

# Public API facade for the operations shared by HTTP routes and the assistant

from .events import (
    list_events,
    get_my_events,
    get_event_details,
    create_event,
    update_event,
    delete_event,
)
from .registrations import (
    register_for_event,
    get_event_registrations,
    get_my_registrations,
    confirm_payment,
    cancel_registration,
    set_registration_status,
)
from .event_items import get_prizes, add_prize, get_schedule, add_schedule_item
from .teams import get_teams, create_team, join_team
from .profile import get_current_user, get_profile, update_profile
from .components import get_component_schemas, validate_component_props
from .registry import get_tool_schemas, call_tool


__all__ = [
    "list_events",
    "get_my_events",
    "get_event_details",
    "create_event",
    "update_event",
    "delete_event",
    "register_for_event",
    "get_event_registrations",
    "get_my_registrations",
    "confirm_payment",
    "cancel_registration",
    "set_registration_status",
    "get_prizes",
    "add_prize",
    "get_schedule",
    "add_schedule_item",
    "get_teams",
    "create_team",
    "join_team",
    "get_current_user",
    "get_profile",
    "update_profile",
    "get_component_schemas",
    "validate_component_props",
    "get_tool_schemas",
    "call_tool",
]
