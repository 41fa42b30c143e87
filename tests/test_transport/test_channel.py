"""
Tests for EventChannel.

The channel runs against FakeConnector / FakeConnection from conftest.py,
and its backoff sleeps are recorded instead of waited out, so a five-step
reconnect sequence finishes in a few event loop turns.
"""

import json

import pytest

from models.enums import ConnectionState
from transport.backoff import ReconnectPolicy
from transport.channel import WILDCARD, EventChannel


def _channel(connector, sleep, max_attempts=5):
    return EventChannel(
        "ws://test/events",
        connector=connector,
        policy=ReconnectPolicy(base_delay=1.0, max_attempts=max_attempts),
        sleep=sleep,
    )


def _frame(event_type, payload=None):
    return {"type": event_type, "payload": payload or {}}


# ── Connection lifecycle ────────────────────────────────────────


@pytest.mark.asyncio
async def test_connect_reaches_connected(channel, connector, wait_until):
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    assert channel.state == ConnectionState.CONNECTED
    assert connector.urls == ["ws://test/events"]


@pytest.mark.asyncio
async def test_connect_is_idempotent(channel, connector, wait_until):
    """Calling connect() again while a loop runs must not open a second socket."""
    channel.connect()
    channel.connect()
    await wait_until(lambda: channel.is_connected)
    channel.connect()

    assert connector.attempts == 1


@pytest.mark.asyncio
async def test_failed_opens_back_off_1_2_4(make_connector, make_connection, recording_sleep, wait_until):
    """Three refused opens in a row wait 1s, 2s, 4s; the fourth open succeeds."""
    conn = make_connection()
    connector = make_connector(OSError("refused"), OSError("refused"), OSError("refused"), conn)
    channel = _channel(connector, recording_sleep)

    channel.connect()
    await wait_until(lambda: channel.is_connected)

    assert recording_sleep.delays == [1.0, 2.0, 4.0]
    assert connector.attempts == 4
    assert channel.reconnect_attempts == 0
    await channel.disconnect()


@pytest.mark.asyncio
async def test_budget_spent_reports_lost(make_connector, recording_sleep, wait_until):
    connector = make_connector()  # refuses everything
    channel = _channel(connector, recording_sleep, max_attempts=3)
    states = []
    channel.on_state_change(states.append)

    channel.connect()
    await wait_until(lambda: channel.state == ConnectionState.LOST)
    await channel.wait_closed()

    assert recording_sleep.delays == [1.0, 2.0, 4.0]
    assert connector.attempts == 4
    assert states == [ConnectionState.CONNECTING, ConnectionState.RECONNECTING, ConnectionState.LOST]


@pytest.mark.asyncio
async def test_successful_open_resets_backoff(make_connector, make_connection, recording_sleep, wait_until):
    """After a good connection drops, the next outage starts again at 1s."""
    first, second = make_connection(), make_connection()
    connector = make_connector(first, OSError("refused"), second)
    channel = _channel(connector, recording_sleep)

    channel.connect()
    await wait_until(lambda: channel.is_connected)
    first.drop()
    await wait_until(lambda: connector.attempts == 3 and channel.is_connected)
    second.drop(OSError("connection reset"))
    await wait_until(lambda: len(recording_sleep.delays) >= 3)

    assert recording_sleep.delays[:3] == [1.0, 2.0, 1.0]
    await channel.disconnect()


@pytest.mark.asyncio
async def test_disconnect_closes_and_clears_handlers(channel, connection, connector, wait_until):
    channel.on("printer_status_update", lambda message: None)
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    await channel.disconnect()

    assert channel.state == ConnectionState.DISCONNECTED
    assert connection.closed
    assert channel.handler_count() == 0
    assert connector.attempts == 1  # no reconnect after an intentional close


@pytest.mark.asyncio
async def test_reconnect_after_disconnect_opens_fresh(make_connector, make_connection, recording_sleep, wait_until):
    first, second = make_connection(), make_connection()
    connector = make_connector(first, second)
    channel = _channel(connector, recording_sleep)

    channel.connect()
    await wait_until(lambda: channel.is_connected)
    await channel.disconnect()
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    assert connector.attempts == 2
    assert recording_sleep.delays == []
    await channel.disconnect()


# ── Dispatch ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_frames_dispatched_by_type(channel, connection, wait_until):
    printers, jobs = [], []
    channel.on("printer_status_update", printers.append)
    channel.on("job_progress_update", jobs.append)
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    connection.push(_frame("printer_status_update", {"id": "p1"}))
    connection.push(_frame("job_progress_update", {"id": "j1"}))
    connection.push(_frame("job_progress_update", {"id": "j2"}))
    await wait_until(lambda: len(jobs) == 2)

    assert [m.payload["id"] for m in printers] == ["p1"]
    assert [m.payload["id"] for m in jobs] == ["j1", "j2"]


@pytest.mark.asyncio
async def test_wildcard_receives_every_frame(channel, connection, wait_until):
    everything = []
    channel.on(WILDCARD, everything.append)
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    connection.push(_frame("system_metrics"))
    connection.push(_frame("something_new"))
    await wait_until(lambda: len(everything) == 2)

    assert [m.type for m in everything] == ["system_metrics", "something_new"]


@pytest.mark.asyncio
async def test_malformed_frames_are_dropped(channel, connection, wait_until):
    """Bad JSON or a frame without "type" is logged and skipped; the channel stays up."""
    received = []
    channel.on(WILDCARD, received.append)
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    connection.push("this is not json")
    connection.push({"payload": {"id": "p1"}})
    connection.push(_frame("notification", {"title": "ok"}))
    await wait_until(lambda: len(received) == 1)

    assert received[0].type == "notification"
    assert channel.is_connected


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others(channel, connection, wait_until):
    received = []

    def broken(message):
        raise RuntimeError("handler bug")

    channel.on("notification", broken)
    channel.on("notification", received.append)
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    connection.push(_frame("notification"))
    await wait_until(lambda: len(received) == 1)

    assert channel.is_connected


# ── Subscriptions ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_same_handler_registered_once(channel, connection, wait_until):
    received = []
    channel.on("notification", received.append)
    channel.on("notification", received.append)
    assert channel.handler_count("notification") == 1

    marker = []
    channel.on("system_metrics", marker.append)

    channel.connect()
    await wait_until(lambda: channel.is_connected)
    connection.push(_frame("notification"))
    connection.push(_frame("system_metrics"))  # dispatched after the notification
    await wait_until(lambda: len(marker) == 1)

    assert len(received) == 1


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent(channel):
    first = channel.on("notification", lambda message: None)
    channel.on("notification", print)

    first()
    first()

    assert channel.handler_count("notification") == 1


@pytest.mark.asyncio
async def test_stale_unsubscribe_does_not_remove_new_registration(channel):
    """An old disposer must not remove the same handler registered again later."""

    def handler(message):
        pass

    old = channel.on("notification", handler)
    old()
    channel.on("notification", handler)

    old()

    assert channel.handler_count("notification") == 1


# ── Outbound ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_send_when_disconnected_returns_false(channel, connection):
    assert await channel.send({"type": "ping"}) is False
    assert connection.sent == []


@pytest.mark.asyncio
async def test_send_when_connected(channel, connection, wait_until):
    channel.connect()
    await wait_until(lambda: channel.is_connected)

    assert await channel.send({"type": "ping"}) is True
    assert [json.loads(m) for m in connection.sent] == [{"type": "ping"}]
