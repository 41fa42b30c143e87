"""
What the channel needs from a WebSocket connection, and the real one.

The channel only uses three things:
- async iteration over incoming text frames (ends or raises when closed)
- send(text)
- close()

`websockets` client connections already look like this, so the default
connector is just websockets.connect. Tests pass a connector that returns
an in-memory fake instead.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Protocol

import websockets
from websockets.exceptions import WebSocketException


class Connection(Protocol):

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        ...

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


Connector = Callable[[str], Awaitable[Connection]]

# Errors that mean "the connection is gone", as opposed to bugs in our code.
CONNECTION_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)


async def websocket_connector(url: str) -> Connection:
    return await websockets.connect(url, open_timeout=10)
