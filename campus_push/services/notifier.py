"""Notifications fired after a join, update or cancel action."""

from __future__ import annotations

from pydantic import BaseModel

from campus_push.domain.models import ActionType, Event, MemberProfile, PushMessage
from campus_push.errors import DispatchError, NotFoundError, ValidationError
from campus_push.log import get_logger
from campus_push.repos.base import DataStore
from campus_push.services.gateway import PushGateway
from campus_push.services.presentation import resolve_display_name

logger = get_logger(__name__)


class Notification(BaseModel):
    recipient_ids: list[str]
    title: str
    body: str


def parse_action_type(value: str) -> ActionType:
    try:
        return ActionType(value)
    except ValueError:
        raise ValidationError(f"Invalid type: {value!r}") from None


class ActionNotifier:
    """Resolves who hears about an action on an event, and tells them.

    * join   -> the host only, never the joiner
    * update -> every member except the actor
    * cancel -> every member except the actor

    The triggering action has already been persisted, so gateway failures
    are logged and swallowed here.
    """

    def __init__(self, store: DataStore, gateway: PushGateway) -> None:
        self.store = store
        self.gateway = gateway

    def notify(self, action_type: str, event_id: str, actor_id: str) -> int:
        """Send the notifications for one action and return how many were sent."""
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")

        members = self.store.list_members(event_id)
        action = parse_action_type(action_type)
        notification = self._resolve(action, event, members, actor_id)

        if not notification.recipient_ids:
            logger.info("No recipients for type=%s event=%s", action, event_id)
            return 0

        tokens = {m.user_id: m.expo_push_token for m in members if m.expo_push_token}
        if action == ActionType.JOIN and event.host_id not in tokens:
            # The host is not necessarily a member of their own event.
            host = self.store.get_profile(event.host_id)
            if host is not None and host.expo_push_token:
                tokens[event.host_id] = host.expo_push_token

        messages = []
        for user_id in notification.recipient_ids:
            token = tokens.get(user_id)
            if not token:
                logger.debug("No push token for user %s, skipping", user_id)
                continue
            messages.append(
                PushMessage(
                    to=token,
                    title=notification.title,
                    body=notification.body,
                    data={"event_id": event_id},
                )
            )

        if not messages:
            logger.info("No push tokens found for recipients of event %s", event_id)
            return 0

        try:
            self.gateway.send(messages)
        except DispatchError:
            logger.exception(
                "Failed to send notifications for type=%s event=%s", action, event_id
            )
            return 0

        logger.info(
            "Sent %d notification(s) for type=%s event=%s",
            len(messages),
            action,
            event_id,
        )
        return len(messages)

    def _resolve(
        self,
        action: ActionType,
        event: Event,
        members: list[MemberProfile],
        actor_id: str,
    ) -> Notification:
        if action == ActionType.JOIN:
            actor_name = resolve_display_name(self.store.get_profile(actor_id))
            return Notification(
                recipient_ids=[event.host_id] if event.host_id != actor_id else [],
                title="Someone joined your event 🎉",
                body=f"{actor_name} joined {event.title}",
            )

        others = [m.user_id for m in members if m.user_id != actor_id]
        if action == ActionType.UPDATE:
            return Notification(
                recipient_ids=others,
                title="Event updated",
                body=f"{event.title} has new details",
            )
        return Notification(
            recipient_ids=others,
            title="Event canceled",
            body=f"{event.title} was canceled",
        )
