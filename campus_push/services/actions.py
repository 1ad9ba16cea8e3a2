"""Event actions: create, join, leave, update, cancel and push-token registration.

Each action is persisted through the data store first and then published on
the event bus. Notifications hang off the bus (see ``HandlerRegistry``), so
nothing here waits on, or fails because of, push delivery.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from campus_push.domain.bus import EventBus
from campus_push.domain.events import EventCanceled, EventUpdated, MemberJoined
from campus_push.domain.models import (
    CreateEventRequest,
    Event,
    EventDetail,
    EventStatus,
    Membership,
    UpdateEventRequest,
)
from campus_push.errors import (
    EVENT_FULL_MESSAGE,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from campus_push.log import get_logger
from campus_push.repos.base import DataStore
from campus_push.services.presentation import (
    format_attendance,
    resolve_capacity_label,
)

logger = get_logger(__name__)

MAX_RESCHEDULE_AHEAD = timedelta(hours=48)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_schedule(start_time: datetime, end_time: datetime, now: datetime) -> None:
    if end_time <= start_time:
        raise ValidationError("End time must be after start time")
    if start_time < now:
        raise ValidationError("Start time must be in the future")


class EventActions:
    def __init__(
        self,
        store: DataStore,
        bus: EventBus,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.bus = bus
        self.clock = clock

    def _get_event(self, event_id: str) -> Event:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _get_hosted_event(self, event_id: str, actor_id: str) -> Event:
        event = self._get_event(event_id)
        if event.host_id != actor_id:
            raise PermissionDeniedError("Only the host can change this event")
        if not event.is_active:
            raise ValidationError("Event is already canceled")
        return event

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def detail(self, event_id: str) -> EventDetail:
        event = self._get_event(event_id)
        attending = self.store.count_members(event_id)
        return EventDetail(
            event=event,
            attendee_count=attending,
            capacity_label=resolve_capacity_label(event.capacity),
            attendance=format_attendance(event.capacity, attending),
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def create(self, request: CreateEventRequest) -> Event:
        title = request.title.strip()
        location = request.location_text.strip()
        if not title or not location:
            raise ValidationError("Please fill in all required fields")
        if request.capacity is not None and request.capacity <= 0:
            raise ValidationError("Please enter a valid capacity")
        _validate_schedule(request.start_time, request.end_time, self.clock())

        description = (request.description or "").strip() or None
        event = Event(
            host_id=request.host_id,
            title=title,
            start_time=request.start_time,
            end_time=request.end_time,
            location_text=location,
            capacity=request.capacity,
            description=description,
            status=EventStatus.ACTIVE,
            created_at=self.clock(),
        )
        event = self.store.add_event(event)
        logger.info("Event %s created by %s", event.id, event.host_id)
        return event

    def join(self, event_id: str, user_id: str) -> Membership:
        event = self._get_event(event_id)
        if not event.is_active:
            raise ValidationError("Event is canceled")
        if event.capacity is not None:
            if self.store.count_members(event_id) >= event.capacity:
                raise ConflictError(EVENT_FULL_MESSAGE)

        membership = self.store.add_member(
            Membership(event_id=event_id, user_id=user_id, joined_at=self.clock())
        )
        self.bus.publish(MemberJoined(event_id=event_id, user_id=user_id))
        return membership

    def leave(self, event_id: str, user_id: str) -> None:
        self._get_event(event_id)
        if not self.store.remove_member(event_id, user_id):
            raise NotFoundError("You are not a member of this event")

    def update(self, event_id: str, request: UpdateEventRequest) -> Event:
        event = self._get_hosted_event(event_id, request.actor_id)

        location = request.location_text.strip()
        if not location:
            raise ValidationError("Location is required")
        now = self.clock()
        _validate_schedule(request.start_time, request.end_time, now)
        if request.start_time - now > MAX_RESCHEDULE_AHEAD:
            raise ValidationError("Start time must be within 48 hours from now")

        updated = event.model_copy(
            update={
                "start_time": request.start_time,
                "end_time": request.end_time,
                "location_text": location,
            }
        )
        self.store.save_event(updated)
        self.bus.publish(EventUpdated(event_id=event_id, actor_id=request.actor_id))
        return updated

    def cancel(self, event_id: str, actor_id: str) -> Event:
        event = self._get_hosted_event(event_id, actor_id)
        canceled = event.model_copy(update={"status": EventStatus.CANCELED})
        self.store.save_event(canceled)
        logger.info("Event %s canceled by %s", event_id, actor_id)
        self.bus.publish(EventCanceled(event_id=event_id, actor_id=actor_id))
        return canceled

    def register_push_token(self, user_id: str, token: str | None) -> None:
        token = (token or "").strip() or None
        if not self.store.set_push_token(user_id, token):
            raise NotFoundError("Profile not found")
