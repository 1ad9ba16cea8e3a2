"""Periodic sweep that reminds members of events starting soon."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from campus_push.domain.models import Event, MemberProfile, PushMessage, SweepResult
from campus_push.errors import DispatchError, UpstreamFetchError
from campus_push.log import get_logger
from campus_push.repos.base import DataStore
from campus_push.services.gateway import PushGateway

logger = get_logger(__name__)

REMINDER_TITLE = "Starting soon ⏰"

DEFAULT_WINDOW_START_MINUTES = 12
DEFAULT_WINDOW_END_MINUTES = 18
DEFAULT_LEAD_MINUTES = 15


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_reminder_messages(
    event: Event, members: list[MemberProfile], lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> list[PushMessage]:
    """One message per member with a push token; tokenless members are skipped."""
    return [
        PushMessage(
            to=member.expo_push_token,
            title=REMINDER_TITLE,
            body=f"{event.title} starts in {lead_minutes} minutes",
            data={"event_id": event.id},
        )
        for member in members
        if member.expo_push_token
    ]


class ReminderSweep:
    """Finds active events starting inside the reminder window and notifies members.

    ``reminder_sent_at`` is the idempotency flag: it is written for every
    event the sweep gets as far as dispatching, whether or not the gateway
    call succeeded, so an event is reminded at most once. The window is wider
    than the expected cron interval (every few minutes) to absorb scheduler
    jitter; a sweep cadence coarser than the window width will miss events.
    Overlapping sweeps can both pick up an unflagged event and double-send.
    """

    def __init__(
        self,
        store: DataStore,
        gateway: PushGateway,
        clock: Callable[[], datetime] = _utcnow,
        window_start_minutes: int = DEFAULT_WINDOW_START_MINUTES,
        window_end_minutes: int = DEFAULT_WINDOW_END_MINUTES,
        lead_minutes: int = DEFAULT_LEAD_MINUTES,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.clock = clock
        self.window_start = timedelta(minutes=window_start_minutes)
        self.window_end = timedelta(minutes=window_end_minutes)
        self.lead_minutes = lead_minutes

    def run(self) -> SweepResult:
        """Process every due event. Raises UpstreamFetchError if the event query fails."""
        now = self.clock()
        events = self.store.list_events_due_for_reminder(
            now + self.window_start, now + self.window_end
        )
        if not events:
            logger.info("No events need reminders right now")
            return SweepResult()

        logger.info("Processing %d event(s) for reminders", len(events))
        result = SweepResult(processed=len(events))
        for event in events:
            try:
                members = self.store.list_members(event.id)
            except UpstreamFetchError:
                logger.exception("Failed to fetch members for event %s", event.id)
                continue

            result.sent += self._dispatch(event, members)
            self._mark_sent(event)

        logger.info(
            "Reminder sweep done: processed=%d sent=%d", result.processed, result.sent
        )
        return result

    def _dispatch(self, event: Event, members: list[MemberProfile]) -> int:
        messages = build_reminder_messages(event, members, self.lead_minutes)
        if not messages:
            return 0
        try:
            self.gateway.send(messages)
        except DispatchError:
            logger.exception("Failed to send reminders for event %s", event.id)
            return 0
        logger.info("Sent %d reminder(s) for event %s", len(messages), event.id)
        return len(messages)

    def _mark_sent(self, event: Event) -> None:
        try:
            self.store.mark_reminder_sent(event.id, self.clock())
        except UpstreamFetchError:
            logger.exception("Failed to mark reminder_sent_at for event %s", event.id)
