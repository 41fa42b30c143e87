"""
Debug script — talks to a running backend with real data, no mocks.

Usage:
    python -m scripts.debug_print status              # backend health
    python -m scripts.debug_print printers            # list printers
    python -m scripts.debug_print formats             # formats of the first printer
    python -m scripts.debug_print test report.pdf     # submit a file and follow the job
    python -m scripts.debug_print full                # all of the above with a generated file

Options:
    --base-url http://localhost:8000   backend to talk to (default: API_BASE_URL setting)
    test --printer ID --copies N       target printer (default: first online) and copies

Exit status is 0 on success, 1 when a step failed or anything unexpected
was raised.
"""

import argparse
import asyncio
import logging
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from api.client import ApiClient, create_http_client
from api.resources.jobs import JobAPI
from api.resources.printers import PrinterAPI
from api.resources.system import SystemAPI
from api.schemas.job import PrintJob, PrintOptions
from api.schemas.printer import Printer
from config.settings import Settings
from models.enums import JobStatus
from models.errors import DashboardError
from upload.files import guess_content_type

logger = logging.getLogger("debug_print")

FORMAT_GROUPS = {
    "Documents": ["pdf", "docx", "doc", "xlsx", "xls", "pptx", "ppt"],
    "Design/CAD": ["dwg", "dxf", "svg", "ai", "psd", "cdr", "eps"],
    "Images": ["jpg", "jpeg", "png"],
}

MONITOR_ATTEMPTS = 30
MONITOR_INTERVAL = 2.0  # seconds


class DebugSession:

    def __init__(self, api: ApiClient, upload_timeout: float = 30.0):
        self.printers = PrinterAPI(api)
        self.jobs = JobAPI(api, upload_timeout=upload_timeout)
        self.system = SystemAPI(api)

    async def check_status(self) -> bool:
        print("Checking system status...")
        try:
            status = await self.system.get_status()
        except DashboardError as e:
            print(f"  ✗ Backend not reachable: {e}")
            return False
        print(f"  ✓ System: {status.status.value} | Version: {status.version}")
        print(f"    CUPS: {'connected' if status.cups_connected else 'disconnected'}"
              f" | Database: {'connected' if status.database_connected else 'disconnected'}")
        return True

    async def list_printers(self) -> list[Printer]:
        print("Listing printers...")
        try:
            printers = await self.printers.get_all()
        except DashboardError as e:
            print(f"  ✗ Failed to list printers: {e}")
            return []
        if not printers:
            print("  ! No printers found")
            return []

        print(f"  Found {len(printers)} printer(s):")
        for i, printer in enumerate(printers, start=1):
            marker = "ONLINE" if printer.is_online else printer.status.value.upper()
            print(f"  {i}. {printer.name} ({printer.id}) - {marker}")
            print(f"     URI: {printer.uri or 'N/A'}")
        return printers

    async def list_formats(self) -> list[str]:
        print("Checking supported formats...")
        try:
            printers = await self.printers.get_all()
        except DashboardError as e:
            print(f"  ✗ Failed to read formats: {e}")
            return []
        if not printers:
            print("  ! No printers, no formats")
            return []

        formats = [f.lower() for f in printers[0].capabilities.supported_formats]
        print(f"  {len(formats)} supported format(s):")
        for category, group in FORMAT_GROUPS.items():
            print(f"  {category}:")
            supported = [f for f in group if f in formats]
            if supported:
                for fmt in supported:
                    print(f"    ✓ .{fmt.upper()}")
            else:
                print("    ✗ none in this category")
        return formats

    async def test_print(self, path: Path, printer_id: Optional[str], copies: int = 1) -> Optional[PrintJob]:
        if not path.exists():
            print(f"  ✗ File not found: {path}")
            return None

        if printer_id is None:
            online = [p for p in await self.printers.get_all() if p.is_online]
            if not online:
                print("  ! No online printer, cannot test")
                return None
            printer_id = online[0].id

        print(f"Test print: {path.name} → {printer_id} ({copies} copies)")
        try:
            with path.open("rb") as content:
                job = await self.jobs.create(
                    printer_id, path.name, content,
                    PrintOptions(copies=copies), guess_content_type(path.name),
                )
        except DashboardError as e:
            print(f"  ✗ Job creation failed: {e}")
            return None

        print(f"  ✓ Job {job.id} created, status {job.status.value}")
        return await self.monitor_job(job.id)

    async def monitor_job(self, job_id: str) -> Optional[PrintJob]:
        print(f"Monitoring job {job_id}...")
        for _ in range(MONITOR_ATTEMPTS):
            try:
                job = await self.jobs.get_by_id(job_id)
            except DashboardError as e:
                print(f"  ! Status check failed: {e}")
            else:
                print(f"  {job.status.value.upper()} ({job.progress}%)")
                if job.status == JobStatus.COMPLETED:
                    print(f"  ✓ Job {job_id} completed")
                    return job
                if job.is_terminal:
                    print(f"  ✗ Job {job_id} {job.status.value}: {job.error_message or 'unknown error'}")
                    return job
            await asyncio.sleep(MONITOR_INTERVAL)

        print(f"  ! Timed out monitoring job {job_id}")
        return None

    async def full(self, work_dir: Path) -> bool:
        print("=" * 60)
        if not await self.check_status():
            print("Backend unreachable, stopping.")
            return False

        printers = await self.list_printers()
        online = [p for p in printers if p.is_online]
        if not online:
            print("No online printer, stopping.")
            return False

        await self.list_formats()

        test_file = create_test_file(work_dir)
        print(f"Generated test file {test_file} ({test_file.stat().st_size} bytes)")

        job = await self.test_print(test_file, online[0].id)
        print("=" * 60)
        ok = job is not None and job.status == JobStatus.COMPLETED
        print("Full test passed" if ok else "Full test did not complete")
        return ok


def create_test_file(directory: Path) -> Path:
    stamp = datetime.now()
    path = directory / f"test_{stamp:%Y%m%d_%H%M%S}.html"
    path.write_text(
        "<!DOCTYPE html>\n"
        "<html><head><title>Print test</title></head>\n"
        "<body>\n"
        "  <h1>Print test</h1>\n"
        f"  <p>Generated {stamp.isoformat(timespec='seconds')} by the debug script.</p>\n"
        "  <ul><li>Text rendering</li><li>CSS formatting</li><li>Backend integration</li></ul>\n"
        "</body></html>\n",
        encoding="utf-8",
    )
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print backend debug script")
    parser.add_argument(
        "--base-url", type=str, default=None,
        help="Backend base URL (default: API_BASE_URL setting)",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Check backend health")
    sub.add_parser("printers", help="List printers")
    sub.add_parser("formats", help="List supported formats")
    test = sub.add_parser("test", help="Submit a file and follow the job")
    test.add_argument("file", type=Path)
    test.add_argument("--printer", type=str, default=None)
    test.add_argument("--copies", type=int, default=1)
    sub.add_parser("full", help="Run every check with a generated file")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> bool:
    base_url = f"{args.base_url.rstrip('/')}/api" if args.base_url else settings.api_prefix
    api = ApiClient(create_http_client(base_url, settings.REQUEST_TIMEOUT))
    session = DebugSession(api, settings.UPLOAD_TIMEOUT)
    try:
        if args.command == "status":
            return await session.check_status()
        if args.command == "printers":
            return bool(await session.list_printers())
        if args.command == "formats":
            return bool(await session.list_formats())
        if args.command == "test":
            job = await session.test_print(args.file, args.printer, args.copies)
            return job is not None and job.status == JobStatus.COMPLETED
        with tempfile.TemporaryDirectory(prefix="print-debug-") as work_dir:
            return await session.full(Path(work_dir))
    finally:
        await api.aclose()


def main(argv: Optional[list[str]] = None) -> int:
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        ok = asyncio.run(run(args, settings))
    except Exception as e:
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
