"""Construction of the service graph.

Every collaborator is built once here and handed to the app explicitly;
nothing is created at import time.
"""

from __future__ import annotations

import httpx

from campus_push.config import Settings
from campus_push.domain.bus import EventBus
from campus_push.domain.handlers import HandlerRegistry
from campus_push.repos.base import DataStore
from campus_push.repos.memory import InMemoryDataStore
from campus_push.repos.supabase_store import create_supabase_store
from campus_push.services.actions import EventActions
from campus_push.services.dispatch import BackgroundDispatcher
from campus_push.services.gateway import ExpoPushGateway, PushGateway
from campus_push.services.notifier import ActionNotifier
from campus_push.services.reminders import ReminderSweep


class ServiceContainer:
    """Holds the store, gateway and services used by one app instance."""

    def __init__(
        self,
        store: DataStore,
        gateway: PushGateway,
        dispatcher: BackgroundDispatcher | None = None,
        sweep: ReminderSweep | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.dispatcher = dispatcher or BackgroundDispatcher()
        self.bus = EventBus()
        self.notifier = ActionNotifier(store=store, gateway=gateway)
        self.sweep = sweep or ReminderSweep(store=store, gateway=gateway)
        self.actions = EventActions(store=store, bus=self.bus)
        self.handler_registry = HandlerRegistry(
            bus=self.bus, notifier=self.notifier, dispatcher=self.dispatcher
        )

    def close(self) -> None:
        self.dispatcher.shutdown()
        close = getattr(self.gateway, "close", None)
        if close is not None:
            close()


def build_container(settings: Settings) -> ServiceContainer:
    """Build the production graph described by *settings*."""
    if settings.DATA_STORE == "memory":
        store: DataStore = InMemoryDataStore()
    else:
        store = create_supabase_store(
            settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
        )

    gateway = ExpoPushGateway(
        client=httpx.Client(timeout=settings.PUSH_TIMEOUT_SECONDS),
        url=settings.EXPO_PUSH_URL,
        access_token=settings.EXPO_ACCESS_TOKEN,
    )
    sweep = ReminderSweep(
        store=store,
        gateway=gateway,
        window_start_minutes=settings.REMINDER_WINDOW_START_MINUTES,
        window_end_minutes=settings.REMINDER_WINDOW_END_MINUTES,
        lead_minutes=settings.REMINDER_LEAD_MINUTES,
    )
    return ServiceContainer(
        store=store,
        gateway=gateway,
        dispatcher=BackgroundDispatcher(max_workers=settings.NOTIFIER_MAX_WORKERS),
        sweep=sweep,
    )
