"""Shared fixtures: a fresh in-memory store, a recording gateway and a fixed clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest

from campus_push.domain.models import Event, Membership, Profile, PushMessage
from campus_push.errors import DispatchError
from campus_push.repos.memory import InMemoryDataStore

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class RecordingGateway:
    """Push gateway fake that keeps every batch it was asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.batches: list[list[PushMessage]] = []

    def send(self, messages: Sequence[PushMessage]) -> None:
        self.batches.append(list(messages))
        if self.fail:
            raise DispatchError("gateway down")

    @property
    def messages(self) -> list[PushMessage]:
        return [m for batch in self.batches for m in batch]


@pytest.fixture()
def store() -> InMemoryDataStore:
    return InMemoryDataStore()


@pytest.fixture()
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture()
def clock():
    return lambda: NOW


def make_event(store: InMemoryDataStore, **overrides) -> Event:
    defaults = dict(
        host_id="host",
        title="Board games",
        start_time=NOW + timedelta(minutes=15),
        end_time=NOW + timedelta(hours=2),
        location_text="Union room 2",
    )
    defaults.update(overrides)
    return store.add_event(Event(**defaults))


def add_user(
    store: InMemoryDataStore,
    user_id: str,
    token: str | None = None,
    display_name: str | None = None,
    email: str | None = None,
) -> Profile:
    return store.add_profile(
        Profile(
            id=user_id,
            email=email or f"{user_id}@osu.edu",
            display_name=display_name,
            expo_push_token=token,
        )
    )


def add_member(store: InMemoryDataStore, event: Event, user_id: str) -> None:
    store.add_member(Membership(event_id=event.id, user_id=user_id))
