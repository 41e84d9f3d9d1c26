"""Props schemas for the UI components the assistant may render.

Rendering happens in the web client; this module only declares which
components exist and which props each accepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field

from models.schemas import CamelModel, EventType


class EventListProps(CamelModel):
    event_type: Optional[EventType] = Field(default=None, description="Filter by event type")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of events to show")
    show_filters: Optional[bool] = Field(default=None, description="Show filter controls")


class TeamMatcherProps(CamelModel):
    event_id: int = Field(description="The event ID for team matching")
    user_skills: Optional[List[str]] = Field(default=None, description="Current user skills to match")


class ScheduleItemProps(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    start_time: str
    end_time: str
    location: Optional[str] = None
    speaker: Optional[str] = None


class EventScheduleProps(CamelModel):
    event_id: int = Field(description="The event ID")
    schedule_items: List[ScheduleItemProps] = Field(description="Schedule items to display")


class PrizeProps(CamelModel):
    rank: int
    title: str
    description: str
    value: float
    currency: str


class PrizeDisplayProps(CamelModel):
    prizes: List[PrizeProps] = Field(description="List of prizes")


class ParticipantListProps(CamelModel):
    event_id: int = Field(description="The event ID")
    show_teams: Optional[bool] = Field(default=None, description="Show team information")


class EventCalendarProps(CamelModel):
    month: Optional[int] = Field(default=None, ge=0, le=11, description="Month (0-11)")
    year: Optional[int] = Field(default=None, description="Year")
    event_type: Optional[EventType] = Field(default=None, description="Filter by event type")


class EventAnalyticsProps(CamelModel):
    event_id: Optional[int] = Field(default=None, description="Specific event ID or leave empty for all events")
    organizer_id: Optional[int] = Field(default=None, description="Organizer ID")


@dataclass(frozen=True)
class ComponentSpec:
    name: str
    description: str
    props_model: Type[BaseModel]

    def manifest(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "propsSchema": self.props_model.model_json_schema(by_alias=True),
        }


COMPONENTS: Dict[str, ComponentSpec] = {
    spec.name: spec
    for spec in (
        ComponentSpec(
            "EventList",
            "Display a list of events with filtering options. Use this to show hackathons, conferences, "
            "workshops, and meetups to the user.",
            EventListProps,
        ),
        ComponentSpec(
            "TeamMatcher",
            "Find and suggest teammates for hackathons based on skills. Use this when a user wants to find "
            "team members.",
            TeamMatcherProps,
        ),
        ComponentSpec(
            "EventSchedule",
            "Display event schedule with timeline view showing sessions, talks, and activities. Use when user "
            "asks about event agenda or schedule.",
            EventScheduleProps,
        ),
        ComponentSpec(
            "PrizeDisplay",
            "Show prizes and awards for hackathon events with values and descriptions. Use when user asks "
            "about prizes or awards.",
            PrizeDisplayProps,
        ),
        ComponentSpec(
            "ParticipantList",
            "Display list of event participants with team status. Use when user asks to see who registered "
            "or participants.",
            ParticipantListProps,
        ),
        ComponentSpec(
            "EventCalendar",
            "Calendar view showing events across months with type indicators. Use when user wants to see "
            "events in calendar format.",
            EventCalendarProps,
        ),
        ComponentSpec(
            "EventAnalytics",
            "Analytics dashboard showing registrations, revenue, and trends. Use when organizer asks for "
            "event statistics or analytics.",
            EventAnalyticsProps,
        ),
    )
}


def get_component_schemas() -> List[Dict[str, Any]]:
    return [spec.manifest() for spec in COMPONENTS.values()]


def validate_component_props(name: str, props: Dict[str, Any]) -> Dict[str, Any]:
    """Validate props for a named component; raises KeyError or pydantic.ValidationError."""
    spec = COMPONENTS[name]
    return spec.props_model.model_validate(props).model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "ComponentSpec",
    "COMPONENTS",
    "get_component_schemas",
    "validate_component_props",
]
