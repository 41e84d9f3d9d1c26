from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import json

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    ORGANIZER = "ORGANIZER"
    ATTENDEE = "ATTENDEE"


class EventType(str, Enum):
    HACKATHON = "HACKATHON"
    CONFERENCE = "CONFERENCE"
    WORKSHOP = "WORKSHOP"
    MEETUP = "MEETUP"


class EventStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    WAITLISTED = "WAITLISTED"


class TeamStatus(str, Enum):
    FORMING = "FORMING"
    ACTIVE = "ACTIVE"
    SUBMITTED = "SUBMITTED"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


def _list_column(row, key: str) -> List[str]:
    raw = row[key]
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return [str(v) for v in value] if isinstance(value, list) else []


class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- Row models ---

class UserSession(CamelModel):
    """Identity carried inside the signed session token."""

    id: int
    email: str
    name: str
    role: UserRole
    avatar: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "UserSession":
        return cls(id=row["id"], email=row["email"], name=row["name"], role=row["role"], avatar=row["avatar"])


class User(CamelModel):
    id: int
    email: str
    name: str
    role: UserRole
    avatar: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "User":
        return cls(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            role=row["role"],
            avatar=row["avatar"],
            bio=row["bio"],
            skills=_list_column(row, "skills"),
            interests=_list_column(row, "interests"),
            created_at=row["created_at"],
        )


class UserPublic(CamelModel):
    id: int
    name: str
    avatar: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    bio: Optional[str] = None

    @classmethod
    def from_joined_row(cls, row) -> "UserPublic":
        """Build from a row joined with ``user_*`` columns (see models.db list helpers)."""
        keys = set(row.keys())
        return cls(
            id=row["user_id"],
            name=row["user_name"],
            avatar=row["user_avatar"],
            skills=_list_column(row, "user_skills") if "user_skills" in keys else [],
            bio=row["user_bio"] if "user_bio" in keys else None,
        )


class Event(CamelModel):
    id: int
    organizer_id: int
    title: str
    description: str = ""
    type: EventType
    status: EventStatus
    start_date: str
    end_date: str
    location: str = ""
    capacity: int
    price: float = 0
    currency: str = "USD"
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.price > 0

    @classmethod
    def from_row(cls, row) -> "Event":
        return cls(
            id=row["id"],
            organizer_id=row["organizer_id"],
            title=row["title"],
            description=row["description"] or "",
            type=row["type"],
            status=row["status"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            location=row["location"] or "",
            capacity=row["capacity"],
            price=row["price"] or 0,
            currency=row["currency"] or "USD",
            image_url=row["image_url"],
            tags=_list_column(row, "tags"),
            requirements=_list_column(row, "requirements"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class Registration(CamelModel):
    id: int
    user_id: int
    event_id: int
    status: RegistrationStatus
    team_preference: Optional[str] = None
    motivation: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    special_requests: Optional[str] = None
    payment_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Registration":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            event_id=row["event_id"],
            status=row["status"],
            team_preference=row["team_preference"],
            motivation=row["motivation"],
            skills=_list_column(row, "skills"),
            special_requests=row["special_requests"],
            payment_id=row["payment_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class Prize(CamelModel):
    id: int
    event_id: int
    rank: int
    title: str
    description: str = ""
    value: float = 0
    currency: str = "USD"

    @classmethod
    def from_row(cls, row) -> "Prize":
        return cls(
            id=row["id"],
            event_id=row["event_id"],
            rank=row["rank"],
            title=row["title"],
            description=row["description"] or "",
            value=row["value"] or 0,
            currency=row["currency"] or "USD",
        )


class ScheduleItem(CamelModel):
    id: int
    event_id: int
    title: str
    description: str = ""
    start_time: str
    end_time: str
    location: str = ""
    speaker: str = ""
    order: int = 0

    @classmethod
    def from_row(cls, row) -> "ScheduleItem":
        return cls(
            id=row["id"],
            event_id=row["event_id"],
            title=row["title"],
            description=row["description"] or "",
            start_time=row["start_time"],
            end_time=row["end_time"],
            location=row["location"] or "",
            speaker=row["speaker"] or "",
            order=row["sort_order"],
        )


class TeamMember(CamelModel):
    user_id: int
    role: str
    user: UserPublic

    @classmethod
    def from_row(cls, row) -> "TeamMember":
        return cls(user_id=row["user_id"], role=row["role"], user=UserPublic.from_joined_row(row))


class Team(CamelModel):
    id: int
    event_id: int
    name: str
    description: str = ""
    status: TeamStatus
    looking_for: List[str] = Field(default_factory=list)
    members: List[TeamMember] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row, members: Optional[List[TeamMember]] = None) -> "Team":
        return cls(
            id=row["id"],
            event_id=row["event_id"],
            name=row["name"],
            description=row["description"] or "",
            status=row["status"],
            looking_for=_list_column(row, "looking_for"),
            members=members or [],
        )


class ChatSession(BaseModel):
    id: int | None = Field(default=None)
    session_id: str
    user_id: Optional[int] = None
    title: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "ChatSession":
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            user_id=row["user_id"],
            title=row["title"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class ChatMessage(BaseModel):
    id: int | None = Field(default=None)
    session_id: str
    role: str  # 'user', 'assistant', 'system'
    content: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "ChatMessage":
        metadata = None
        if row["metadata"]:
            try:
                metadata = json.loads(row["metadata"])
            except (json.JSONDecodeError, TypeError):
                metadata = None
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            role=row["role"],
            content=row["content"],
            metadata=metadata,
            created_at=row["created_at"],
        )


# --- Request bodies ---

class SignupRequest(CamelModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: UserRole


class LoginRequest(CamelModel):
    email: str
    password: str


class EventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    type: EventType
    status: EventStatus = EventStatus.DRAFT
    start_date: datetime
    end_date: datetime
    location: str = ""
    capacity: int = Field(gt=0)
    price: float = Field(default=0, ge=0)
    currency: Currency = Currency.USD
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)

    @field_validator("type", "status", "currency", mode="before")
    @classmethod
    def _upper_enum(cls, v):
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _check_dates(self) -> "EventCreate":
        try:
            backwards = self.end_date < self.start_date
        except TypeError:
            raise ValueError("startDate and endDate must both carry a timezone or neither")
        if backwards:
            raise ValueError("endDate must not be before startDate")
        return self


class EventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[Currency] = None
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    requirements: Optional[List[str]] = None

    @field_validator("type", "status", "currency", mode="before")
    @classmethod
    def _upper_enum(cls, v):
        return v.upper() if isinstance(v, str) else v


class RegistrationRequest(CamelModel):
    team_preference: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    motivation: Optional[str] = None
    special_requests: Optional[str] = None


class RegistrationStatusUpdate(CamelModel):
    status: RegistrationStatus


class PrizeCreate(CamelModel):
    rank: int = Field(ge=1)
    title: str = Field(min_length=1)
    description: str = ""
    value: float = Field(default=0, ge=0)
    currency: Currency = Currency.USD


class ScheduleItemCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    start_time: datetime
    end_time: datetime
    location: str = ""
    speaker: str = ""
    order: int = 0


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    bio: Optional[str] = None
    avatar: Optional[str] = None
    skills: Optional[List[str]] = None
    interests: Optional[List[str]] = None


class TeamCreate(CamelModel):
    name: str = Field(min_length=3, max_length=50)
    description: str = ""
    looking_for: List[str] = Field(default_factory=list)
