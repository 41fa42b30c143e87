"""
Shared test fixtures.

These replace real infrastructure with lightweight in-memory alternatives:
- Print backend → a small FastAPI app holding printers/jobs in dicts
- HTTP → httpx.AsyncClient with ASGI transport (no network)
- WebSocket → FakeConnection fed by the test, opened by FakeConnector
- Backoff sleeps → RecordingSleep (records the delay, waits zero seconds)

This means tests:
- Run without a backend, CUPS or a WebSocket server
- Run in milliseconds (no network, no real waiting)
- Are fully isolated (each test gets a fresh backend)
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from api.client import ApiClient, create_http_client
from api.resources.jobs import JobAPI
from api.resources.printers import PrinterAPI
from api.resources.system import SystemAPI
from stores.job_store import JobStore
from stores.printer_store import PrinterStore
from stores.system_store import SystemStore
from transport.backoff import ReconnectPolicy
from transport.channel import EventChannel

TEST_API_URL = "http://test/api"


# ── Fake print backend ──────────────────────────────────────────


class FakeBackend:
    """
    In-memory stand-in for the print server's REST API.

    Records are kept as camelCase dicts, exactly what the real backend
    sends. Tests arrange state with add_printer / add_job and inject
    failures with fail(method, path, status).
    """

    def __init__(self):
        self.printers: dict[str, dict] = {}
        self.jobs: dict[str, dict] = {}
        self.settings: dict[str, Any] = {"autoDiscover": True, "defaultPaperSize": "A4"}
        self.status: dict[str, Any] = {
            "status": "online",
            "uptime": 3600.0,
            "version": "2.1.0",
            "cupsConnected": True,
            "databaseConnected": True,
        }
        self.metrics: dict[str, Any] = {"cpuUsage": 12.5, "memoryUsage": 40.0, "activeConnections": 3}
        self.discoverable: list[dict] = []
        self.uploads: list[dict] = []
        self.calls: list[tuple[str, str]] = []
        self.initial_job_status = "pending"
        self.retry_returns_job = True
        self._failures: dict[tuple[str, str], tuple[int, dict]] = {}
        self._garbled: dict[tuple[str, str], str] = {}
        self._rejected_files: set[str] = set()
        self.app = self._build_app()

    # ── Arrange ─────────────────────────────────────────────────

    def add_printer(self, printer_id: str, status: str = "online", **fields) -> dict:
        record = {
            "id": printer_id,
            "name": fields.pop("name", f"Printer {printer_id}"),
            "status": status,
            "type": fields.pop("type", "laser"),
            "uri": fields.pop("uri", f"ipp://{printer_id}.local/ipp/print"),
            "capabilities": fields.pop("capabilities", {"supportedFormats": ["pdf", "png", "jpg"]}),
            **fields,
        }
        self.printers[printer_id] = record
        return record

    def add_job(self, job_id: str, printer_id: str = "p1", status: str = "pending", **fields) -> dict:
        record = {
            "id": job_id,
            "fileName": fields.pop("fileName", f"{job_id}.pdf"),
            "fileSize": fields.pop("fileSize", 1024),
            "status": status,
            "printerId": printer_id,
            "progress": fields.pop("progress", 0),
            "createdAt": fields.pop("createdAt", datetime.now(timezone.utc).isoformat()),
            **fields,
        }
        self.jobs[job_id] = record
        return record

    def fail(self, method: str, path: str, status_code: int = 500, body: Optional[dict] = None) -> None:
        """Answer every `method path` call with an error from now on."""
        self._failures[(method, path)] = (status_code, body or {"error": "Internal server error"})

    def garble(self, method: str, path: str, text: str = "<html>proxy error</html>") -> None:
        """Answer `method path` with 200 and a body that is not JSON, like a misconfigured proxy."""
        self._garbled[(method, path)] = text

    def reject_upload(self, file_name: str) -> None:
        """POST /api/jobs fails for this file name only."""
        self._rejected_files.add(file_name)

    def called(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))

    # ── App ─────────────────────────────────────────────────────

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.middleware("http")
        async def record_and_fail(request: Request, call_next):
            key = (request.method, request.url.path)
            self.calls.append(key)
            if key in self._failures:
                status_code, body = self._failures[key]
                return JSONResponse(body, status_code=status_code)
            if key in self._garbled:
                return Response(self._garbled[key], status_code=200, media_type="text/html")
            return await call_next(request)

        # Printers

        @app.get("/api/printers")
        async def list_printers():
            return list(self.printers.values())

        @app.post("/api/printers/discover")
        async def discover_printers():
            for record in self.discoverable:
                self.printers[record["id"]] = record
            return list(self.printers.values())

        @app.get("/api/printers/{printer_id}")
        async def get_printer(printer_id: str):
            return self._printer_or_404(printer_id)

        @app.post("/api/printers", status_code=201)
        async def create_printer(body: dict):
            printer_id = f"printer-{len(self.printers) + 1}"
            return self.add_printer(printer_id, name=body.get("name") or body["uri"], uri=body["uri"])

        @app.delete("/api/printers/{printer_id}")
        async def delete_printer(printer_id: str):
            self._printer_or_404(printer_id)
            del self.printers[printer_id]
            return Response(status_code=204)

        @app.post("/api/printers/{printer_id}/pause")
        async def pause_printer(printer_id: str):
            self._printer_or_404(printer_id)["status"] = "offline"
            return {"success": True}

        @app.post("/api/printers/{printer_id}/resume")
        async def resume_printer(printer_id: str):
            self._printer_or_404(printer_id)["status"] = "online"
            return {"success": True}

        # Jobs

        @app.get("/api/jobs")
        async def list_jobs():
            return list(self.jobs.values())

        @app.post("/api/jobs", status_code=201)
        async def create_job(
            file: UploadFile = File(...),
            printer_id: str = Form(...),
            options: str = Form("{}"),
        ):
            content = await file.read()
            if file.filename in self._rejected_files:
                return JSONResponse({"error": f"Spooler rejected {file.filename}"}, status_code=500)
            parsed_options = json.loads(options)
            self.uploads.append({
                "file_name": file.filename,
                "content": content,
                "content_type": file.content_type,
                "printer_id": printer_id,
                "options": parsed_options,
            })
            printer = self.printers.get(printer_id, {})
            return self.add_job(
                f"job-{uuid.uuid4().hex[:8]}",
                printer_id=printer_id,
                status=self.initial_job_status,
                fileName=file.filename,
                fileSize=len(content),
                fileType=file.content_type,
                printerName=printer.get("name", ""),
                options=parsed_options,
            )

        @app.post("/api/jobs/cancel-multiple")
        async def cancel_multiple(body: dict):
            for job_id in body["job_ids"]:
                self._job_or_404(job_id)["status"] = "cancelled"
            return {"success": True}

        @app.get("/api/jobs/{job_id}")
        async def get_job(job_id: str):
            return self._job_or_404(job_id)

        @app.post("/api/jobs/{job_id}/cancel")
        async def cancel_job(job_id: str):
            self._job_or_404(job_id)["status"] = "cancelled"
            return {"success": True}

        @app.post("/api/jobs/{job_id}/retry")
        async def retry_job(job_id: str):
            job = self._job_or_404(job_id)
            job.update(status="pending", progress=0, errorMessage=None)
            return job if self.retry_returns_job else {"success": True}

        # System

        @app.get("/api/system/status")
        async def system_status():
            return self.status

        @app.get("/api/system/metrics")
        async def system_metrics():
            return self.metrics

        @app.get("/api/system/stats")
        async def system_stats():
            jobs = list(self.jobs.values())
            return {
                "printersOnline": sum(1 for p in self.printers.values() if p["status"] == "online"),
                "printersTotal": len(self.printers),
                "jobsPending": sum(1 for j in jobs if j["status"] == "pending"),
                "jobsCompleted": sum(1 for j in jobs if j["status"] == "completed"),
                "pagesToday": 12,
            }

        @app.get("/api/system/logs")
        async def system_logs(limit: int = 100):
            now = datetime.now(timezone.utc).isoformat()
            entries = [
                {"timestamp": now, "level": "INFO", "message": f"log line {i}"}
                for i in range(200)
            ]
            return entries[:limit]

        @app.get("/api/system/settings")
        async def get_settings():
            return self.settings

        @app.post("/api/system/settings")
        async def save_settings(body: dict):
            self.settings = body
            return {"success": True}

        return app

    def _printer_or_404(self, printer_id: str) -> dict:
        if printer_id not in self.printers:
            raise HTTPException(status_code=404, detail=f"Printer {printer_id} not found")
        return self.printers[printer_id]

    def _job_or_404(self, job_id: str) -> dict:
        if job_id not in self.jobs:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        return self.jobs[job_id]


@pytest.fixture
def backend():
    """A fresh fake backend for each test."""
    return FakeBackend()


@pytest.fixture
def http_transport(backend):
    """Requests go directly to the fake backend in-process, no network."""
    return httpx.ASGITransport(app=backend.app)


@pytest_asyncio.fixture
async def api_client(http_transport):
    client = ApiClient(create_http_client(TEST_API_URL, transport=http_transport))
    yield client
    await client.aclose()


@pytest.fixture
def printer_api(api_client):
    return PrinterAPI(api_client)


@pytest.fixture
def job_api(api_client):
    return JobAPI(api_client)


@pytest.fixture
def system_api(api_client):
    return SystemAPI(api_client)


@pytest.fixture
def printer_store(printer_api):
    return PrinterStore(printer_api)


@pytest.fixture
def job_store(job_api):
    return JobStore(job_api)


@pytest.fixture
def system_store(system_api):
    return SystemStore(system_api, notification_limit=50)


# ── Fake push channel ───────────────────────────────────────────

_CLOSED = object()


class FakeConnection:
    """
    In-memory WebSocket connection.

    push() queues an incoming frame, drop() ends the stream (optionally
    with an error), close() is what the channel calls on disconnect.
    """

    def __init__(self):
        self._frames: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False

    def push(self, frame: Any) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._frames.put_nowait(frame)

    def drop(self, error: Optional[Exception] = None) -> None:
        self._frames.put_nowait(error if error is not None else _CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._frames.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._frames.put_nowait(_CLOSED)


class FakeConnector:
    """
    Plays back scripted outcomes, one per connect attempt: a FakeConnection
    is returned, an exception is raised. Once the script runs out every
    attempt is refused.
    """

    def __init__(self, outcomes=()):
        self._outcomes = list(outcomes)
        self.urls: list[str] = []

    @property
    def attempts(self) -> int:
        return len(self.urls)

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        outcome = self._outcomes.pop(0) if self._outcomes else OSError("connection refused")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    """Replaces asyncio.sleep in the channel: records the delay, yields once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def connector(connection):
    """Connects once successfully (to `connection`), refuses afterwards."""
    return FakeConnector([connection])


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest_asyncio.fixture
async def channel(connector, recording_sleep):
    ch = EventChannel(
        "ws://test/events",
        connector=connector,
        policy=ReconnectPolicy(base_delay=1.0, max_attempts=5),
        sleep=recording_sleep,
    )
    yield ch
    await ch.disconnect()


@pytest.fixture
def make_connector():
    """Build a FakeConnector with a custom script: make_connector(OSError(), conn, ...)."""
    return lambda *outcomes: FakeConnector(outcomes)


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def wait_until():
    """
    Let background tasks run until `predicate()` holds.

    Spins the loop first, then backs off to short real sleeps (in-process
    HTTP calls take a few turns). Gives up after about two seconds so a
    broken test fails instead of hanging.
    """

    async def _wait(predicate, turns: int = 500) -> None:
        for turn in range(turns):
            if predicate():
                return
            await asyncio.sleep(0 if turn < 100 else 0.005)
        assert predicate(), "condition not reached"

    return _wait
