"""Domain event handlers — wired up when the service container is built."""

from __future__ import annotations

from campus_push.domain.bus import EventBus
from campus_push.domain.events import EventCanceled, EventUpdated, MemberJoined
from campus_push.domain.models import ActionType
from campus_push.services.dispatch import BackgroundDispatcher
from campus_push.services.notifier import ActionNotifier


class HandlerRegistry:
    """Subscribes the action notifier to the bus.

    Notifications run on the background dispatcher: publishing returns as soon
    as the work is queued.
    """

    def __init__(
        self,
        bus: EventBus,
        notifier: ActionNotifier,
        dispatcher: BackgroundDispatcher,
    ) -> None:
        self.bus = bus
        self.notifier = notifier
        self.dispatcher = dispatcher
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(MemberJoined, self.on_member_joined)
        self.bus.subscribe(EventUpdated, self.on_event_updated)
        self.bus.subscribe(EventCanceled, self.on_event_canceled)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _notify(self, action: ActionType, event_id: str, actor_id: str) -> None:
        self.dispatcher.submit(
            self.notifier.notify,
            action.value,
            event_id,
            actor_id,
            label=f"{action.value} notification for event {event_id}",
        )

    def on_member_joined(self, event: MemberJoined) -> None:
        self._notify(ActionType.JOIN, event.event_id, event.user_id)

    def on_event_updated(self, event: EventUpdated) -> None:
        self._notify(ActionType.UPDATE, event.event_id, event.actor_id)

    def on_event_canceled(self, event: EventCanceled) -> None:
        self._notify(ActionType.CANCEL, event.event_id, event.actor_id)
