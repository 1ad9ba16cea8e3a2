"""Tests for event actions and the fire-and-forget notification hand-off."""

from __future__ import annotations

from datetime import timedelta

import pytest

from campus_push.domain.bus import EventBus
from campus_push.domain.events import EventCanceled, EventUpdated, MemberJoined
from campus_push.domain.handlers import HandlerRegistry
from campus_push.domain.models import CreateEventRequest, EventStatus, UpdateEventRequest
from campus_push.errors import (
    ALREADY_JOINED_MESSAGE,
    EVENT_FULL_MESSAGE,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from campus_push.services.actions import EventActions
from campus_push.services.dispatch import BackgroundDispatcher
from campus_push.services.notifier import ActionNotifier

from conftest import NOW, add_member, add_user, make_event


@pytest.fixture()
def bus():
    return EventBus()


@pytest.fixture()
def published(bus):
    """Every domain event published during the test, in order."""
    seen = []
    for event_type in (MemberJoined, EventUpdated, EventCanceled):
        bus.subscribe(event_type, seen.append)
    return seen


@pytest.fixture()
def actions(store, bus, clock):
    return EventActions(store=store, bus=bus, clock=clock)


def _create_request(**overrides) -> CreateEventRequest:
    defaults = dict(
        host_id="host",
        title="Open mic",
        start_time=NOW + timedelta(hours=1),
        end_time=NOW + timedelta(hours=2),
        location_text="Sloopy's Diner",
        capacity=6,
    )
    defaults.update(overrides)
    return CreateEventRequest(**defaults)


def _update_request(**overrides) -> UpdateEventRequest:
    defaults = dict(
        actor_id="host",
        start_time=NOW + timedelta(hours=3),
        end_time=NOW + timedelta(hours=4),
        location_text="Thompson Library",
    )
    defaults.update(overrides)
    return UpdateEventRequest(**defaults)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def test_create_persists_active_event(store, actions):
    event = actions.create(_create_request(description="   "))

    assert store.get_event(event.id) is event
    assert event.status == EventStatus.ACTIVE
    assert event.description is None
    assert event.created_at == NOW


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"title": "   "}, "Please fill in all required fields"),
        ({"location_text": ""}, "Please fill in all required fields"),
        ({"capacity": 0}, "Please enter a valid capacity"),
        ({"end_time": NOW + timedelta(hours=1)}, "End time must be after start time"),
        (
            {"start_time": NOW - timedelta(minutes=1), "end_time": NOW + timedelta(hours=1)},
            "Start time must be in the future",
        ),
    ],
)
def test_create_validation(actions, overrides, message):
    with pytest.raises(ValidationError, match=message):
        actions.create(_create_request(**overrides))


def test_create_allows_unlimited_capacity(actions):
    event = actions.create(_create_request(capacity=None))

    assert event.capacity is None
    assert actions.detail(event.id).capacity_label == "unlimited"


# ---------------------------------------------------------------------------
# join / leave
# ---------------------------------------------------------------------------


def test_join_publishes_member_joined(store, actions, published):
    event = make_event(store)

    actions.join(event.id, "a")

    assert store.count_members(event.id) == 1
    assert published == [MemberJoined(event_id=event.id, user_id="a")]


def test_join_full_event_is_rejected(store, actions, published):
    event = make_event(store, capacity=1)
    actions.join(event.id, "a")

    with pytest.raises(ConflictError) as excinfo:
        actions.join(event.id, "b")
    assert str(excinfo.value) == EVENT_FULL_MESSAGE
    assert len(published) == 1


def test_join_twice_is_rejected(store, actions, published):
    event = make_event(store)
    actions.join(event.id, "a")

    with pytest.raises(ConflictError) as excinfo:
        actions.join(event.id, "a")
    assert str(excinfo.value) == ALREADY_JOINED_MESSAGE
    assert len(published) == 1


def test_join_canceled_event_is_rejected(store, actions):
    event = make_event(store, status=EventStatus.CANCELED)

    with pytest.raises(ValidationError):
        actions.join(event.id, "a")


def test_join_missing_event(actions):
    with pytest.raises(NotFoundError):
        actions.join("missing", "a")


def test_leave(store, actions, published):
    event = make_event(store)
    add_member(store, event, "a")

    actions.leave(event.id, "a")

    assert store.count_members(event.id) == 0
    assert published == []


def test_leave_when_not_a_member(store, actions):
    event = make_event(store)

    with pytest.raises(NotFoundError):
        actions.leave(event.id, "a")


# ---------------------------------------------------------------------------
# update / cancel
# ---------------------------------------------------------------------------


def test_update_saves_and_publishes(store, actions, published):
    event = make_event(store)

    updated = actions.update(event.id, _update_request(location_text="  Thompson Library "))

    assert store.get_event(event.id).location_text == "Thompson Library"
    assert updated.start_time == NOW + timedelta(hours=3)
    assert published == [EventUpdated(event_id=event.id, actor_id="host")]


def test_update_requires_host(store, actions):
    event = make_event(store)

    with pytest.raises(PermissionDeniedError):
        actions.update(event.id, _update_request(actor_id="someone-else"))


def test_update_must_start_within_48_hours(store, actions):
    event = make_event(store)

    with pytest.raises(ValidationError, match="48 hours"):
        actions.update(
            event.id,
            _update_request(
                start_time=NOW + timedelta(hours=49), end_time=NOW + timedelta(hours=50)
            ),
        )


def test_update_requires_location(store, actions):
    event = make_event(store)

    with pytest.raises(ValidationError, match="Location is required"):
        actions.update(event.id, _update_request(location_text=" "))


def test_cancel_is_terminal(store, actions, published):
    event = make_event(store)

    canceled = actions.cancel(event.id, "host")

    assert canceled.status == EventStatus.CANCELED
    assert store.get_event(event.id).status == EventStatus.CANCELED
    assert published == [EventCanceled(event_id=event.id, actor_id="host")]

    with pytest.raises(ValidationError):
        actions.cancel(event.id, "host")
    with pytest.raises(ValidationError):
        actions.update(event.id, _update_request())


def test_cancel_requires_host(store, actions):
    event = make_event(store)

    with pytest.raises(PermissionDeniedError):
        actions.cancel(event.id, "a")


# ---------------------------------------------------------------------------
# push tokens
# ---------------------------------------------------------------------------


def test_register_and_clear_push_token(store, actions):
    add_user(store, "a")

    actions.register_push_token("a", "ExponentPushToken[x]")
    assert store.get_profile("a").expo_push_token == "ExponentPushToken[x]"

    actions.register_push_token("a", None)
    assert store.get_profile("a").expo_push_token is None


def test_register_push_token_unknown_profile(actions):
    with pytest.raises(NotFoundError):
        actions.register_push_token("ghost", "tok")


# ---------------------------------------------------------------------------
# Fire-and-forget notifications
# ---------------------------------------------------------------------------


@pytest.fixture()
def dispatcher():
    dispatcher = BackgroundDispatcher(max_workers=1)
    yield dispatcher
    dispatcher.shutdown()


def test_actions_hand_notifications_to_the_dispatcher(store, gateway, bus, actions, dispatcher):
    HandlerRegistry(
        bus=bus, notifier=ActionNotifier(store=store, gateway=gateway), dispatcher=dispatcher
    )
    event = make_event(store, title="Jam session")
    add_user(store, "host", token="tok-host")
    add_user(store, "a", token="tok-a", display_name="Alex")

    actions.join(event.id, "a")
    actions.cancel(event.id, "host")
    dispatcher.drain(timeout=5)

    assert sorted((m.to, m.body) for m in gateway.messages) == [
        ("tok-a", "Jam session was canceled"),
        ("tok-host", "Alex joined Jam session"),
    ]


def test_notifier_failure_does_not_fail_the_action(store, bus, actions, dispatcher):
    class ExplodingNotifier:
        def notify(self, action_type, event_id, actor_id):
            raise RuntimeError("boom")

    HandlerRegistry(bus=bus, notifier=ExplodingNotifier(), dispatcher=dispatcher)
    event = make_event(store)

    membership = actions.join(event.id, "a")
    dispatcher.drain(timeout=5)

    assert membership.user_id == "a"
    assert store.count_members(event.id) == 1


def test_failing_bus_handler_does_not_fail_the_action(store, bus, actions):
    def broken_handler(event):
        raise RuntimeError("handler bug")

    bus.subscribe(EventCanceled, broken_handler)
    event = make_event(store)

    assert actions.cancel(event.id, "host").status == EventStatus.CANCELED
