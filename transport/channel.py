"""
Push channel — one persistent WebSocket to the backend's event stream.

    connect()        start the receive loop in a background task (idempotent)
    on(type, fn)     register a handler, returns an unsubscribe callable
    send(payload)    send JSON if open, otherwise drop it (no outbound buffer)
    disconnect()     stop the loop, close the socket, clear all handlers

The receive loop:

    ┌───────────┐ open ok  ┌───────────┐ frame   ┌──────────────────┐
    │ CONNECTING│─────────>│ CONNECTED │────────>│ decode {type,    │
    └───────────┘          └─────┬─────┘         │ payload}, fan out│
          ^                      │ close/error   └──────────────────┘
          │ sleep(backoff)       v
    ┌─────┴───────┐  budget  ┌──────┐
    │RECONNECTING │<─────────│ ...  │──(budget spent)──> LOST
    └─────────────┘   left   └──────┘

Frames are dispatched in arrival order, no reordering or dedup. A frame that
is not valid JSON or has no "type" is logged and dropped. A handler that
raises is logged; the other handlers still run.

Everything runs on the event loop that called connect(). No locks needed.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any, Callable

from pydantic import ValidationError

from api.schemas.events import EventMessage
from models.enums import ConnectionState
from transport.backoff import ReconnectPolicy
from transport.connection import CONNECTION_ERRORS, Connection, Connector, websocket_connector

logger = logging.getLogger(__name__)

WILDCARD = "*"

Handler = Callable[[EventMessage], None]
StateListener = Callable[[ConnectionState], None]


class EventChannel:

    def __init__(
        self,
        url: str,
        connector: Connector = websocket_connector,
        policy: ReconnectPolicy | None = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self._url = url
        self._connector = connector
        self._policy = policy or ReconnectPolicy()
        self._sleep = sleep
        # event type → {handler: registration token}; dict keeps insertion order
        self._handlers: dict[str, dict[Handler, object]] = {}
        self._state_listeners: dict[StateListener, None] = {}
        self._state = ConnectionState.DISCONNECTED
        self._conn: Connection | None = None
        self._task: asyncio.Task | None = None

    # ── Introspection ───────────────────────────────────────────

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self._policy.attempts

    def handler_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, ()))
        return sum(len(h) for h in self._handlers.values())

    # ── Lifecycle ───────────────────────────────────────────────

    def connect(self) -> None:
        """Start the receive loop. No-op while connecting, connected or reconnecting."""
        if self._task is not None and not self._task.done():
            return
        self._policy.reset()
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="event-channel"
        )

    async def wait_closed(self) -> None:
        """Wait until the receive loop ends (budget spent or disconnect())."""
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.shield(self._task)

    async def disconnect(self) -> None:
        task, self._task = self._task, None
        conn, self._conn = self._conn, None

        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if conn is not None:
            try:
                await conn.close()
            except CONNECTION_ERRORS as e:
                logger.debug(f"Error while closing push channel: {e!r}")

        self._handlers.clear()
        self._policy.reset()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Push channel closed")

    # ── Subscriptions ───────────────────────────────────────────

    def on(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """
        Register `handler` for `event_type` (or WILDCARD for every frame).

        Registering the same handler twice for a type keeps one registration.
        The returned callable removes it; calling it again, or after
        disconnect() cleared everything, does nothing.
        """
        registered = self._handlers.setdefault(event_type, {})
        token = registered.setdefault(handler, object())

        def unsubscribe() -> None:
            current = self._handlers.get(event_type)
            if current is None or current.get(handler) is not token:
                return
            del current[handler]
            if not current:
                del self._handlers[event_type]

        return unsubscribe

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners[listener] = None

        def unsubscribe() -> None:
            self._state_listeners.pop(listener, None)

        return unsubscribe

    # ── Outbound ────────────────────────────────────────────────

    async def send(self, payload: Any) -> bool:
        """Send `payload` as JSON. Returns False (and logs) if the channel isn't open."""
        conn = self._conn
        if conn is None or not self.is_connected:
            logger.warning(f"Push channel is not connected. Message not sent: {payload!r}")
            return False
        try:
            await conn.send(json.dumps(payload, default=str))
        except CONNECTION_ERRORS as e:
            logger.warning(f"Push channel send failed, message dropped: {e!r}")
            return False
        return True

    # ── Receive loop ────────────────────────────────────────────

    async def _run(self) -> None:
        while True:
            try:
                conn = await self._connector(self._url)
            except CONNECTION_ERRORS as e:
                logger.warning(f"Push channel connect to {self._url} failed: {e!r}")
            else:
                await self._consume(conn)

            delay = self._policy.next_delay()
            if delay is None:
                logger.error(
                    f"Push channel lost: {self._policy.max_attempts} reconnect attempts failed"
                )
                self._set_state(ConnectionState.LOST)
                return

            logger.info(
                f"Reconnecting in {delay:.1f}s "
                f"(attempt {self._policy.attempts}/{self._policy.max_attempts})"
            )
            self._set_state(ConnectionState.RECONNECTING)
            await self._sleep(delay)

    async def _consume(self, conn: Connection) -> None:
        self._conn = conn
        self._policy.reset()
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Push channel connected to {self._url}")
        try:
            async for raw in conn:
                self._dispatch(raw)
        except CONNECTION_ERRORS as e:
            logger.warning(f"Push channel dropped: {e!r}")
        finally:
            self._conn = None
        logger.info("Push channel disconnected")

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            message = EventMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Dropping malformed push frame: {e.error_count()} error(s), raw={raw!r:.200}")
            return

        targets = []
        if message.type != WILDCARD:
            targets.extend(self._handlers.get(message.type, {}))
        targets.extend(self._handlers.get(WILDCARD, {}))

        for handler in targets:
            try:
                handler(message)
            except Exception as e:
                logger.error(f"Handler for '{message.type}' raised: {e}", exc_info=True)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Connection state listener raised: {e}", exc_info=True)
