"""The data store interface the notifiers and event actions are written against."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from campus_push.domain.models import Event, MemberProfile, Membership, Profile


class DataStore(Protocol):
    """Reads and writes against the events, event_members and profiles tables.

    Implementations raise ``UpstreamFetchError`` when the backing store
    cannot be reached or rejects a query.
    """

    def list_events_due_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> list[Event]:
        """Active events starting within [window_start, window_end] not yet reminded."""
        ...

    def get_event(self, event_id: str) -> Event | None: ...

    def add_event(self, event: Event) -> Event: ...

    def save_event(self, event: Event) -> Event: ...

    def mark_reminder_sent(self, event_id: str, sent_at: datetime) -> None:
        """Set reminder_sent_at once; an already-set value is left untouched."""
        ...

    def list_members(self, event_id: str) -> list[MemberProfile]: ...

    def count_members(self, event_id: str) -> int: ...

    def add_member(self, membership: Membership) -> Membership:
        """Insert a membership, raising ``ConflictError`` if it already exists."""
        ...

    def remove_member(self, event_id: str, user_id: str) -> bool: ...

    def get_profile(self, user_id: str) -> Profile | None: ...

    def set_push_token(self, user_id: str, token: str | None) -> bool: ...
