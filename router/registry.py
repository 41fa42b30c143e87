"""
Push event registry — maps event types to the schema of their payload.

The channel hands the router an envelope with an untyped payload. This is
the one place that knows what each event type carries:

    printer_status_update → Printer
    job_progress_update   → PrintJob
    system_metrics        → SystemMetrics
    notification          → NotificationIn

Adding an event type means adding a line here and a route in the router.
"""

from typing import Any

from pydantic import BaseModel

from api.schemas.job import PrintJob
from api.schemas.printer import Printer
from api.schemas.system import NotificationIn, SystemMetrics
from models.enums import EventType


_REGISTRY: dict[EventType, type[BaseModel]] = {
    EventType.PRINTER_STATUS_UPDATE: Printer,
    EventType.JOB_PROGRESS_UPDATE: PrintJob,
    EventType.SYSTEM_METRICS: SystemMetrics,
    EventType.NOTIFICATION: NotificationIn,
}


def payload_schema(event_type: str) -> type[BaseModel]:
    """Look up the payload schema for an event type. Raises ValueError if unknown."""
    try:
        return _REGISTRY[EventType(event_type)]
    except ValueError:
        raise ValueError(
            f"Unknown event type: '{event_type}'. Available: {[t.value for t in _REGISTRY]}"
        ) from None


def decode_payload(event_type: str, payload: Any) -> BaseModel:
    """Validate `payload` for `event_type`. Raises ValueError / ValidationError."""
    return payload_schema(event_type).model_validate(payload)
