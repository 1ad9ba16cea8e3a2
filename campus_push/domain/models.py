"""Domain models for campus events, memberships and push notifications."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field, model_validator


class EventStatus(StrEnum):
    ACTIVE = "active"
    CANCELED = "canceled"


class ActionType(StrEnum):
    JOIN = "join"
    UPDATE = "update"
    CANCEL = "cancel"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models (rows of the external data store)
# ---------------------------------------------------------------------------


class Event(BaseModel):
    id: str = Field(default_factory=_new_id)
    host_id: str
    title: str
    start_time: datetime
    end_time: datetime
    location_text: str = ""
    capacity: int | None = None
    description: str | None = None
    status: EventStatus = EventStatus.ACTIVE
    created_at: datetime = Field(default_factory=_utcnow)
    reminder_sent_at: datetime | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> Event:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.ACTIVE


class Membership(BaseModel):
    event_id: str
    user_id: str
    joined_at: datetime = Field(default_factory=_utcnow)


class Profile(BaseModel):
    id: str
    email: str | None = None
    display_name: str | None = None
    expo_push_token: str | None = None


class MemberProfile(BaseModel):
    """A membership joined with the member's profile."""

    user_id: str
    display_name: str | None = None
    expo_push_token: str | None = None


class PushMessage(BaseModel):
    """A single Expo push message, built per recipient and never stored."""

    to: str
    title: str
    body: str
    sound: str | None = "default"
    data: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SweepResult(BaseModel):
    processed: int = 0
    sent: int = 0


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class SendPushRequest(BaseModel):
    type: str = Field(min_length=1)
    event_id: str = Field(min_length=1)
    actor_id: str = Field(min_length=1)


class SendPushResponse(BaseModel):
    sent: int


class CreateEventRequest(BaseModel):
    host_id: str = Field(min_length=1)
    title: str
    start_time: AwareDatetime
    end_time: AwareDatetime
    location_text: str
    capacity: int | None = None
    description: str | None = None


class UpdateEventRequest(BaseModel):
    actor_id: str = Field(min_length=1)
    start_time: AwareDatetime
    end_time: AwareDatetime
    location_text: str


class MemberActionRequest(BaseModel):
    """Body for join, leave and cancel: who is acting."""

    user_id: str = Field(min_length=1)


class PushTokenRequest(BaseModel):
    expo_push_token: str | None = None


class EventDetail(BaseModel):
    """An event as shown on the detail screen."""

    event: Event
    attendee_count: int
    capacity_label: str
    attendance: str
