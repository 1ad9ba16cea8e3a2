"""In-memory data store for events, memberships and profiles."""

from __future__ import annotations

from datetime import datetime

from campus_push.domain.models import (
    Event,
    EventStatus,
    MemberProfile,
    Membership,
    Profile,
)
from campus_push.errors import ALREADY_JOINED_MESSAGE, ConflictError


class InMemoryDataStore:
    """Dict-backed store mirroring the Supabase tables.

    Used for local runs (``DATA_STORE=memory``) and throughout the tests.
    """

    def __init__(self) -> None:
        self.events: dict[str, Event] = {}
        self.memberships: dict[tuple[str, str], Membership] = {}
        self.profiles: dict[str, Profile] = {}

    # -- events ---------------------------------------------------------

    def list_events_due_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> list[Event]:
        return sorted(
            (
                e
                for e in self.events.values()
                if e.status == EventStatus.ACTIVE
                and e.reminder_sent_at is None
                and window_start <= e.start_time <= window_end
            ),
            key=lambda e: e.start_time,
        )

    def get_event(self, event_id: str) -> Event | None:
        return self.events.get(event_id)

    def add_event(self, event: Event) -> Event:
        self.events[event.id] = event
        return event

    def save_event(self, event: Event) -> Event:
        self.events[event.id] = event
        return event

    def mark_reminder_sent(self, event_id: str, sent_at: datetime) -> None:
        event = self.events.get(event_id)
        if event is not None and event.reminder_sent_at is None:
            event.reminder_sent_at = sent_at

    # -- memberships ----------------------------------------------------

    def list_members(self, event_id: str) -> list[MemberProfile]:
        members = []
        for (eid, user_id), _ in sorted(
            self.memberships.items(), key=lambda item: item[1].joined_at
        ):
            if eid != event_id:
                continue
            profile = self.profiles.get(user_id)
            members.append(
                MemberProfile(
                    user_id=user_id,
                    display_name=profile.display_name if profile else None,
                    expo_push_token=profile.expo_push_token if profile else None,
                )
            )
        return members

    def count_members(self, event_id: str) -> int:
        return sum(1 for eid, _ in self.memberships if eid == event_id)

    def add_member(self, membership: Membership) -> Membership:
        key = (membership.event_id, membership.user_id)
        if key in self.memberships:
            raise ConflictError(ALREADY_JOINED_MESSAGE)
        self.memberships[key] = membership
        return membership

    def remove_member(self, event_id: str, user_id: str) -> bool:
        return self.memberships.pop((event_id, user_id), None) is not None

    # -- profiles -------------------------------------------------------

    def add_profile(self, profile: Profile) -> Profile:
        self.profiles[profile.id] = profile
        return profile

    def get_profile(self, user_id: str) -> Profile | None:
        return self.profiles.get(user_id)

    def set_push_token(self, user_id: str, token: str | None) -> bool:
        profile = self.profiles.get(user_id)
        if profile is None:
            return False
        profile.expo_push_token = token
        return True
