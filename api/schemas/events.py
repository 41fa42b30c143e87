"""
Envelope of every push frame: {"type": ..., "payload": {...}}.

The channel only validates the envelope. The payload is decoded against the
schema registered for its type by the event router, so an unknown or
malformed payload never reaches a store.
"""

from typing import Any

from pydantic import BaseModel


class EventMessage(BaseModel):
    type: str
    payload: Any = None
