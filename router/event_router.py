"""
Event router — connects push events to store updates.

    printer_status_update ──> PrinterStore.update_printer
    job_progress_update   ──> JobStore.update_job
    system_metrics        ──> SystemStore.update_metrics
    notification          ──> SystemStore.add_notification
    channel state changes ──> SystemStore.set_connection_state

One router exists per dashboard session. Views (screens, the CLI, a test)
don't subscribe to the channel themselves; they take a lease:

    async with router.view():
        ...   # live updates flow into the stores

Leases are reference counted. The first lease subscribes the handlers and
connects the channel; the last release unsubscribes all of them and
disconnects. However many views come and go, each event is routed exactly
once.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from pydantic import ValidationError

from api.schemas.events import EventMessage
from models.enums import EventType
from router.registry import decode_payload
from stores.job_store import JobStore
from stores.printer_store import PrinterStore
from stores.system_store import SystemStore
from transport.channel import EventChannel

logger = logging.getLogger(__name__)


class ViewLease:
    """Handle returned by EventRouter.attach(). Releasing twice is a no-op."""

    def __init__(self, router: "EventRouter"):
        self._router = router
        self.released = False

    async def release(self) -> None:
        if self.released:
            return
        self.released = True
        await self._router._release()


class EventRouter:

    def __init__(
        self,
        channel: EventChannel,
        printers: PrinterStore,
        jobs: JobStore,
        system: SystemStore,
    ):
        self._channel = channel
        self._system = system
        self._routes: dict[EventType, Callable] = {
            EventType.PRINTER_STATUS_UPDATE: printers.update_printer,
            EventType.JOB_PROGRESS_UPDATE: jobs.update_job,
            EventType.SYSTEM_METRICS: system.update_metrics,
            EventType.NOTIFICATION: system.add_notification,
        }
        self._leases = 0
        self._unsubscribers: list[Callable[[], None]] = []
        self._unsubscribe_state: Callable[[], None] | None = None

    @property
    def active_views(self) -> int:
        return self._leases

    @property
    def channel(self) -> EventChannel:
        return self._channel

    # ── Leases ──────────────────────────────────────────────────

    def attach(self) -> ViewLease:
        """Take a lease. Must be called from a running event loop."""
        self._leases += 1
        if self._leases == 1:
            self._bind()
        return ViewLease(self)

    @asynccontextmanager
    async def view(self) -> AsyncIterator[ViewLease]:
        lease = self.attach()
        try:
            yield lease
        finally:
            await lease.release()

    async def _release(self) -> None:
        self._leases -= 1
        if self._leases == 0:
            await self._unbind()

    def _bind(self) -> None:
        self._unsubscribe_state = self._channel.on_state_change(self._system.set_connection_state)
        self._unsubscribers = [
            self._channel.on(event_type.value, self._handle) for event_type in self._routes
        ]
        self._channel.connect()
        logger.info("Event router attached, live updates on")

    async def _unbind(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self._channel.disconnect()
        if self._unsubscribe_state is not None:
            # after disconnect, so the store sees the final DISCONNECTED state
            self._unsubscribe_state()
            self._unsubscribe_state = None
        logger.info("Event router detached, live updates off")

    # ── Dispatch ────────────────────────────────────────────────

    def _handle(self, message: EventMessage) -> None:
        try:
            event_type = EventType(message.type)
            payload = decode_payload(event_type, message.payload)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Dropping '{message.type}' event with invalid payload: {e}")
            return
        self._routes[event_type](payload)
