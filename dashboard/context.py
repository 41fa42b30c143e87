"""
Composition root for one dashboard session.

DashboardContext builds every component from a Settings object and owns
them. Nothing in the project is a module-level singleton: tests build a
context with their own transport and connector, the CLI builds one per run.

    httpx.AsyncClient ─> ApiClient ─> PrinterAPI / JobAPI / SystemAPI
                                          │
                     PrinterStore / JobStore / SystemStore
                           │                    │
    EventChannel ─> EventRouter          SubmissionPipeline ─> FileQueue
                           │
                     RefreshPoller (periodic fetch_*)

dashboard_session() is the lifespan: startup before the yield, teardown
after it.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import httpx

from api.client import ApiClient, create_http_client
from api.resources.jobs import JobAPI
from api.resources.printers import PrinterAPI
from api.resources.system import SystemAPI
from config.settings import Settings
from dashboard.poller import RefreshPoller
from models.enums import ConnectionState, JobStatus, PrinterStatus
from router.event_router import EventRouter, ViewLease
from stores.job_store import JobStore
from stores.printer_store import PrinterStore
from stores.system_store import SystemStore
from transport.backoff import ReconnectPolicy
from transport.channel import EventChannel
from transport.connection import Connector, websocket_connector
from upload.files import FileQueue
from upload.pipeline import BatchResult, SubmissionPipeline

logger = logging.getLogger(__name__)


class DashboardContext:

    def __init__(
        self,
        settings: Settings,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        connector: Connector = websocket_connector,
        on_batch_complete: Optional[Callable[[BatchResult], None]] = None,
    ):
        self.settings = settings

        self.http = create_http_client(
            settings.api_prefix, settings.REQUEST_TIMEOUT, transport=http_transport
        )
        self.api = ApiClient(self.http)
        self.printer_api = PrinterAPI(self.api)
        self.job_api = JobAPI(self.api, upload_timeout=settings.UPLOAD_TIMEOUT)
        self.system_api = SystemAPI(self.api)

        self.printers = PrinterStore(self.printer_api)
        self.jobs = JobStore(self.job_api)
        self.system = SystemStore(self.system_api, settings.NOTIFICATION_LIMIT)

        self.channel = EventChannel(
            settings.WS_URL,
            connector=connector,
            policy=ReconnectPolicy(
                base_delay=settings.RECONNECT_BASE_DELAY,
                max_attempts=settings.RECONNECT_MAX_ATTEMPTS,
            ),
        )
        self.router = EventRouter(self.channel, self.printers, self.jobs, self.system)

        self.files = FileQueue()
        self.pipeline = SubmissionPipeline(
            self.files,
            self.job_api,
            self.printers,
            self.jobs,
            self.system,
            redirect_delay=settings.REDIRECT_DELAY,
            on_complete=on_batch_complete,
        )

        self.poller = RefreshPoller(
            [
                self.printers.fetch_printers,
                self.jobs.fetch_jobs,
                self.system.fetch_status,
                self.system.fetch_metrics,
            ],
            interval=settings.POLL_INTERVAL,
        )
        self._lease: Optional[ViewLease] = None

    async def start(self, live: bool = True, poll: bool = True) -> None:
        """Initial refresh, then live updates and periodic polling."""
        await self.poller.refresh_once()
        if live and self._lease is None:
            self._lease = self.router.attach()
        if poll:
            self.poller.start()
        logger.info("Dashboard session started")

    async def close(self) -> None:
        self.pipeline.cancel_pending_finish()
        await self.poller.stop()
        if self._lease is not None:
            await self._lease.release()
            self._lease = None
        for store in (self.printers, self.jobs, self.system):
            store.close()
        await self.api.aclose()
        logger.info("Dashboard session closed")

    def snapshot(self) -> dict:
        """
        Counts across stores, read one after another.

        There is no cross-store transaction: the printer and job numbers may
        reflect two different instants.
        """
        printers = self.printers.printers
        jobs = self.jobs.jobs
        return {
            "printers_total": len(printers),
            "printers_online": sum(1 for p in printers if p.status == PrinterStatus.ONLINE),
            "jobs_pending": sum(1 for j in jobs if j.status == JobStatus.PENDING),
            "jobs_processing": sum(1 for j in jobs if j.status == JobStatus.PROCESSING),
            "jobs_completed": sum(1 for j in jobs if j.status == JobStatus.COMPLETED),
            "jobs_failed": sum(1 for j in jobs if j.status == JobStatus.FAILED),
            "live": self.system.connection_state == ConnectionState.CONNECTED,
            "unread_notifications": self.system.unread_count,
        }


@asynccontextmanager
async def dashboard_session(
    settings: Settings,
    live: bool = True,
    poll: bool = True,
    **kwargs,
) -> AsyncIterator[DashboardContext]:
    """
    Runs on enter (before yield) and exit (after yield).

    Enter: initial REST refresh, attach a router lease (connects the push
    channel), start the poller.
    Exit: stop the poller, release the lease (disconnects), close stores so
    late responses are dropped, close the HTTP client.
    """
    ctx = DashboardContext(settings, **kwargs)
    try:
        await ctx.start(live=live, poll=poll)
        yield ctx
    finally:
        await ctx.close()
