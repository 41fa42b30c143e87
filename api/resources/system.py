"""
System endpoints.

GET  /system/status    → health snapshot (CUPS / database connectivity, uptime)
GET  /system/metrics   → resource usage snapshot
GET  /system/stats     → dashboard counters
GET  /system/logs      → recent backend log lines (?limit=N)
GET  /system/settings  → backend settings as a free-form dict
POST /system/settings  → save settings
"""

from typing import Any, Optional

from api.client import ApiClient
from api.schemas.system import SystemStatus, SystemMetrics, DashboardStats, LogEntry


class SystemAPI:

    def __init__(self, client: ApiClient):
        self._client = client

    async def get_status(self) -> SystemStatus:
        return SystemStatus.model_validate(await self._client.get_json("/system/status"))

    async def get_metrics(self) -> SystemMetrics:
        return SystemMetrics.model_validate(await self._client.get_json("/system/metrics"))

    async def get_stats(self) -> DashboardStats:
        return DashboardStats.model_validate(await self._client.get_json("/system/stats"))

    async def get_logs(self, limit: Optional[int] = None) -> list[LogEntry]:
        params = {"limit": limit} if limit is not None else None
        data = await self._client.get_json("/system/logs", expect=list, params=params)
        return [LogEntry.model_validate(entry) for entry in data]

    async def get_settings(self) -> dict[str, Any]:
        return await self._client.get_json("/system/settings", expect=dict)

    async def save_settings(self, values: dict[str, Any]) -> None:
        await self._client.post_json("/system/settings", json=values)
