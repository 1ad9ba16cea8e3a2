"""Domain events emitted after an event action has been persisted."""

from __future__ import annotations

from pydantic import BaseModel


class MemberJoined(BaseModel):
    """Fired when a user joins an event."""

    event_id: str
    user_id: str


class EventUpdated(BaseModel):
    """Fired when the host changes an event's time or location."""

    event_id: str
    actor_id: str


class EventCanceled(BaseModel):
    """Fired when the host cancels an event."""

    event_id: str
    actor_id: str
