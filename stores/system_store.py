"""
System store — backend health, metrics, counters, notifications and the
push channel's connection state.

Snapshots (status, metrics, stats) are replaced whole, never merged.
Notifications are a local ring buffer (newest first), never sent anywhere.
"""

import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from api.resources.system import SystemAPI
from api.schemas.system import (
    DashboardStats,
    LogEntry,
    Notification,
    NotificationIn,
    SystemMetrics,
    SystemStatus,
)
from models.enums import ConnectionState, NotificationType
from models.errors import DashboardError
from stores.base import Store, READ_ERRORS

logger = logging.getLogger(__name__)


class SystemStore(Store):

    def __init__(self, api: SystemAPI, notification_limit: int = 50):
        super().__init__()
        self._api = api
        self._notification_limit = notification_limit
        self._notification_seq = itertools.count(1)
        self.metrics: Optional[SystemMetrics] = None
        self.status: Optional[SystemStatus] = None
        self.stats: Optional[DashboardStats] = None
        self.logs: list[LogEntry] = []
        self.settings: dict[str, Any] = {}
        self.notifications: list[Notification] = []
        self.connection_state = ConnectionState.DISCONNECTED

    # ── REST reads ──────────────────────────────────────────────

    async def fetch_metrics(self) -> None:
        """Failure keeps the previous metrics; a gap in a chart is fine."""
        try:
            metrics = await self._api.get_metrics()
        except READ_ERRORS as e:
            logger.error(f"Error fetching metrics: {e}")
            return
        if self._closed:
            return
        self.metrics = metrics
        self._notify()

    async def fetch_status(self) -> None:
        """Failure means the backend is down, so show it as offline."""
        try:
            status = await self._api.get_status()
        except READ_ERRORS as e:
            logger.error(f"Error fetching status: {e}")
            status = SystemStatus.offline()
        if self._closed:
            return
        self.status = status
        self._notify()

    async def fetch_stats(self) -> None:
        if self._closed:
            return
        self.loading = True
        self.error = None
        self._notify()
        try:
            stats = await self._api.get_stats()
        except READ_ERRORS as e:
            if self._closed:
                return
            self.loading = False
            self.error = f"Failed to load statistics: {e}"
            logger.error(self.error)
            self._notify()
            return
        if self._closed:
            return
        self.stats = stats
        self.loading = False
        self._notify()

    async def fetch_logs(self, limit: Optional[int] = None) -> None:
        try:
            logs = await self._api.get_logs(limit)
        except READ_ERRORS as e:
            if not self._closed:
                self.error = f"Failed to load logs: {e}"
                logger.error(self.error)
                self._notify()
            return
        if self._closed:
            return
        self.logs = logs
        self._notify()

    async def fetch_settings(self) -> None:
        try:
            values = await self._api.get_settings()
        except READ_ERRORS as e:
            if not self._closed:
                self.error = f"Failed to load settings: {e}"
                logger.error(self.error)
                self._notify()
            return
        if self._closed:
            return
        self.settings = dict(values or {})
        self._notify()

    async def save_settings(self, values: dict[str, Any]) -> None:
        try:
            await self._api.save_settings(values)
        except DashboardError as e:
            self.error = f"Failed to save settings: {e}"
            logger.error(self.error)
            self._notify()
            raise
        self.settings = dict(values)
        self._notify()

    # ── Push updates ────────────────────────────────────────────

    def update_metrics(self, metrics: SystemMetrics) -> None:
        if self._closed:
            return
        self.metrics = metrics
        self._notify()

    def set_connection_state(self, state: ConnectionState) -> None:
        if self._closed or state == self.connection_state:
            return
        self.connection_state = state
        if state == ConnectionState.LOST:
            self.add_notification(NotificationIn(
                type=NotificationType.ERROR,
                title="Connection lost",
                message="Live updates stopped. Data refreshes only through polling.",
            ))
            return
        self._notify()

    # ── Notifications ───────────────────────────────────────────

    def add_notification(self, notification: NotificationIn) -> Notification:
        """Prepend, keeping only the newest `notification_limit` entries."""
        entry = Notification(
            id=f"{time.time_ns()}-{next(self._notification_seq)}",
            type=notification.type,
            title=notification.title,
            message=notification.message,
            timestamp=notification.timestamp or datetime.now(timezone.utc),
            read=False,
        )
        self.notifications = [entry, *self.notifications][: self._notification_limit]
        self._notify()
        return entry

    def notify(self, type: NotificationType, title: str, message: str = "") -> Notification:
        """Shortcut for local code (upload pipeline, CLI) to raise a notification."""
        return self.add_notification(NotificationIn(type=type, title=title, message=message))

    def mark_notification_read(self, notification_id: str) -> None:
        self.notifications = [
            n.model_copy(update={"read": True}) if n.id == notification_id else n
            for n in self.notifications
        ]
        self._notify()

    def clear_notifications(self) -> None:
        self.notifications = []
        self._notify()

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)
