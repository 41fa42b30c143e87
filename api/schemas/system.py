"""
Pydantic schemas for the /api/system endpoints and the system_metrics /
notification push events.

All of these are point-in-time snapshots: a new one replaces the old one
entirely, there is no field-level merge.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from api.schemas.base import WireModel
from models.enums import SystemHealth, NotificationType


class SystemMetrics(WireModel):
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    active_connections: int = 0
    cache_hit_ratio: float = 0.0
    thread_pool_active: int = 0
    thread_pool_max: int = 0
    requests_per_second: float = 0.0
    average_response_time: float = 0.0


class SystemStatus(WireModel):
    status: SystemHealth = SystemHealth.OFFLINE
    uptime: float = 0.0
    version: str = "unknown"
    cups_connected: bool = False
    database_connected: bool = False

    @classmethod
    def offline(cls) -> "SystemStatus":
        """What the dashboard shows when the status endpoint cannot be reached."""
        return cls()


class DashboardStats(WireModel):
    printers_online: int = 0
    printers_total: int = 0
    jobs_pending: int = 0
    jobs_processing: int = 0
    jobs_completed: int = 0
    jobs_failed: int = 0
    pages_total: int = 0
    pages_today: int = 0
    estimated_cost: float = 0.0


class LogEntry(WireModel):
    timestamp: datetime
    level: str
    message: str


class NotificationIn(WireModel):
    """Payload of a `notification` push event. The store assigns id and read flag."""

    type: NotificationType = NotificationType.INFO
    title: str = ""
    message: str = ""
    timestamp: Optional[datetime] = None


class Notification(WireModel):
    id: str
    type: NotificationType = NotificationType.INFO
    title: str = ""
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
