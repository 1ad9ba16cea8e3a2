"""Data store backed by the Supabase (PostgREST) tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError as ModelValidationError
from supabase import Client, PostgrestAPIError, create_client

from campus_push.domain.models import (
    Event,
    EventStatus,
    MemberProfile,
    Membership,
    Profile,
)
from campus_push.errors import (
    ALREADY_JOINED_MESSAGE,
    ConflictError,
    UpstreamFetchError,
)
from campus_push.log import get_logger

logger = get_logger(__name__)

_UNIQUE_VIOLATION = "23505"

_EVENT_COLUMNS = (
    "id, host_id, title, start_time, end_time, location_text, capacity, "
    "description, status, created_at, reminder_sent_at"
)

_EDITABLE_FIELDS = {
    "title",
    "start_time",
    "end_time",
    "location_text",
    "capacity",
    "description",
    "status",
}


def _execute(query: Any, what: str) -> Any:
    """Run a PostgREST query, wrapping client failures in UpstreamFetchError."""
    try:
        return query.execute()
    except PostgrestAPIError as exc:
        raise UpstreamFetchError(f"Failed to {what}: {exc.message}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamFetchError(f"Failed to {what}: {exc}") from exc


def _parse_event(row: dict) -> Event:
    """Validate one events row; a malformed row is an upstream failure."""
    try:
        return Event.model_validate(row)
    except ModelValidationError as exc:
        raise UpstreamFetchError(
            f"Malformed events row {row.get('id')!r}: {exc.error_count()} error(s)"
        ) from exc


class SupabaseDataStore:
    """Reads and writes events, event_members and profiles through supabase-py.

    The client is passed in; use :func:`create_supabase_store` to build one
    from a URL and service-role key.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    # -- events ---------------------------------------------------------

    def list_events_due_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> list[Event]:
        response = _execute(
            self.client.table("events")
            .select(_EVENT_COLUMNS)
            .eq("status", EventStatus.ACTIVE.value)
            .gte("start_time", window_start.isoformat())
            .lte("start_time", window_end.isoformat())
            .is_("reminder_sent_at", "null")
            .order("start_time"),
            "fetch events due for reminder",
        )
        events = []
        for row in response.data or []:
            try:
                events.append(_parse_event(row))
            except UpstreamFetchError:
                logger.exception("Skipping unreadable event row")
        return events

    def get_event(self, event_id: str) -> Event | None:
        response = _execute(
            self.client.table("events")
            .select(_EVENT_COLUMNS)
            .eq("id", event_id)
            .limit(1),
            f"fetch event {event_id}",
        )
        rows = response.data or []
        return _parse_event(rows[0]) if rows else None

    def add_event(self, event: Event) -> Event:
        response = _execute(
            self.client.table("events").insert(event.model_dump(mode="json")),
            "insert event",
        )
        rows = response.data or []
        return _parse_event(rows[0]) if rows else event

    def save_event(self, event: Event) -> Event:
        fields = event.model_dump(mode="json", include=_EDITABLE_FIELDS)
        _execute(
            self.client.table("events").update(fields).eq("id", event.id),
            f"update event {event.id}",
        )
        return event

    def mark_reminder_sent(self, event_id: str, sent_at: datetime) -> None:
        # The is-null guard keeps the flag write-once at the database.
        _execute(
            self.client.table("events")
            .update({"reminder_sent_at": sent_at.isoformat()})
            .eq("id", event_id)
            .is_("reminder_sent_at", "null"),
            f"mark reminder sent for event {event_id}",
        )

    # -- memberships ----------------------------------------------------

    def list_members(self, event_id: str) -> list[MemberProfile]:
        response = _execute(
            self.client.table("event_members")
            .select("user_id, profiles(display_name, expo_push_token)")
            .eq("event_id", event_id),
            f"fetch members for event {event_id}",
        )
        members = []
        for row in response.data or []:
            profile = row.get("profiles") or {}
            members.append(
                MemberProfile(
                    user_id=row["user_id"],
                    display_name=profile.get("display_name"),
                    expo_push_token=profile.get("expo_push_token"),
                )
            )
        return members

    def count_members(self, event_id: str) -> int:
        response = _execute(
            self.client.table("event_members")
            .select("user_id", count="exact")
            .eq("event_id", event_id),
            f"count members for event {event_id}",
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def add_member(self, membership: Membership) -> Membership:
        try:
            self.client.table("event_members").insert(
                membership.model_dump(mode="json")
            ).execute()
        except PostgrestAPIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise ConflictError(ALREADY_JOINED_MESSAGE) from exc
            raise UpstreamFetchError(f"Failed to join event: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"Failed to join event: {exc}") from exc
        return membership

    def remove_member(self, event_id: str, user_id: str) -> bool:
        response = _execute(
            self.client.table("event_members")
            .delete()
            .eq("event_id", event_id)
            .eq("user_id", user_id),
            f"leave event {event_id}",
        )
        return bool(response.data)

    # -- profiles -------------------------------------------------------

    def get_profile(self, user_id: str) -> Profile | None:
        response = _execute(
            self.client.table("profiles")
            .select("id, email, display_name, expo_push_token")
            .eq("id", user_id)
            .limit(1),
            f"fetch profile {user_id}",
        )
        rows = response.data or []
        return Profile.model_validate(rows[0]) if rows else None

    def set_push_token(self, user_id: str, token: str | None) -> bool:
        response = _execute(
            self.client.table("profiles")
            .update({"expo_push_token": token})
            .eq("id", user_id),
            f"save push token for {user_id}",
        )
        return bool(response.data)


def create_supabase_store(url: str, service_role_key: str) -> SupabaseDataStore:
    """Build a store with its own service-role client."""
    logger.info("Connecting data store to %s", url)
    return SupabaseDataStore(create_client(url, service_role_key))
