"""
Submission pipeline — turns the file queue into print jobs.

    submit(printer_id, options)
      │
      ├─ preconditions (raise SubmissionValidationError, nothing is sent)
      │    queue not empty · printer selected · printer known · printer online
      │
      ├─ for each file, in queue order, one at a time:
      │    placeholder job in JobStore
      │    READY → UPLOADING ──POST /api/jobs──> PROCESSING  (placeholder → real job)
      │                      └──── failure ────> ERROR       (placeholder dropped)
      │    a failure is recorded and the batch moves on
      │
      └─ after the batch
           JobStore.fetch_jobs() · summary notification
           if anything succeeded: after `redirect_delay` clear the queue and
           call `on_complete` (the UI navigates to the job list there)

Every file in a batch gets the same frozen PrintOptions instance.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from api.resources.jobs import JobAPI
from api.schemas.job import PrintJob, PrintOptions
from models.enums import NotificationType, PrinterStatus, UploadStatus
from models.errors import DashboardError, SubmissionValidationError
from stores.job_store import JobStore
from stores.printer_store import PrinterStore
from stores.system_store import SystemStore
from upload.files import FileQueue, UploadedFile
from upload.progress import ProgressReader

logger = logging.getLogger(__name__)


@dataclass
class SubmissionFailure:
    file_id: str
    file_name: str
    error: str


@dataclass
class BatchResult:
    jobs: list[PrintJob] = field(default_factory=list)
    failures: list[SubmissionFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.jobs)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


class SubmissionPipeline:

    def __init__(
        self,
        queue: FileQueue,
        api: JobAPI,
        printers: PrinterStore,
        jobs: JobStore,
        system: SystemStore,
        redirect_delay: float = 0.0,
        on_complete: Optional[Callable[[BatchResult], None]] = None,
    ):
        self._queue = queue
        self._api = api
        self._printers = printers
        self._jobs = jobs
        self._system = system
        self._redirect_delay = redirect_delay
        self._on_complete = on_complete
        self._pending_finish: Optional[asyncio.TimerHandle] = None
        self.is_processing = False

    @property
    def queue(self) -> FileQueue:
        return self._queue

    async def submit(
        self,
        printer_id: Optional[str] = None,
        options: Optional[PrintOptions] = None,
    ) -> BatchResult:
        """
        Submit every queued file to `printer_id` (defaults to the printer
        selected in the PrinterStore).
        """
        files = self._queue.files
        printer_id = printer_id or self._printers.selected_printer_id
        options = options or PrintOptions()

        self._check_preconditions(files, printer_id)
        printer = self._printers.get(printer_id)

        self.is_processing = True
        result = BatchResult()
        try:
            logger.info(f"Submitting {len(files)} file(s) to printer {printer_id}")
            for uploaded in files:
                job = await self._submit_one(uploaded, printer_id, printer.name, options, result)
                if job is not None:
                    result.jobs.append(job)

            await self._jobs.fetch_jobs()
            self._report(result)
        finally:
            self.is_processing = False

        if result.success_count > 0:
            self._schedule_finish(result)
        return result

    def cancel_pending_finish(self) -> None:
        """Drop a scheduled queue-clear / on_complete (the view went away)."""
        if self._pending_finish is not None:
            self._pending_finish.cancel()
            self._pending_finish = None

    # ── Steps ───────────────────────────────────────────────────

    def _check_preconditions(self, files: list[UploadedFile], printer_id: Optional[str]) -> None:
        if self.is_processing:
            raise SubmissionValidationError("A batch is already being submitted")
        if not files:
            raise SubmissionValidationError("No files selected")
        if not printer_id:
            raise SubmissionValidationError("Select a printer")

        printer = self._printers.get(printer_id)
        if printer is None:
            raise SubmissionValidationError(
                f"Printer {printer_id} not found", {"printer_id": printer_id}
            )
        if printer.status != PrinterStatus.ONLINE:
            raise SubmissionValidationError(
                f"Printer {printer.name or printer_id} is not online",
                {"printer_id": printer_id, "status": printer.status.value},
            )

    async def _submit_one(
        self,
        uploaded: UploadedFile,
        printer_id: str,
        printer_name: str,
        options: PrintOptions,
        result: BatchResult,
    ) -> Optional[PrintJob]:
        uploaded.status = UploadStatus.UPLOADING
        uploaded.progress = 0
        uploaded.error = None
        placeholder = self._jobs.add_placeholder(
            uploaded.name, uploaded.size, printer_id, options, printer_name
        )

        def on_progress(percent: int) -> None:
            uploaded.progress = percent

        try:
            content = ProgressReader(uploaded.read(), on_progress)
            job = await self._api.create(
                printer_id, uploaded.name, content, options, uploaded.content_type
            )
        except (DashboardError, OSError, ValueError) as e:
            uploaded.status = UploadStatus.ERROR
            uploaded.error = str(e)
            self._jobs.discard_placeholder(placeholder.id)
            result.failures.append(SubmissionFailure(uploaded.id, uploaded.name, str(e)))
            logger.error(f"Submitting {uploaded.name} failed: {e}")
            self._system.notify(NotificationType.ERROR, f"{uploaded.name} failed", str(e))
            return None

        uploaded.status = UploadStatus.PROCESSING
        uploaded.progress = 100
        uploaded.job_id = job.id
        self._jobs.confirm_placeholder(placeholder.id, job)
        logger.info(f"Submitted {uploaded.name} as job {job.id} ({job.status.value})")
        return job

    def _report(self, result: BatchResult) -> None:
        logger.info(
            f"Batch finished: {result.success_count} submitted, {result.failure_count} failed"
        )
        if result.failure_count == 0:
            self._system.notify(
                NotificationType.SUCCESS,
                "Files submitted",
                f"{result.success_count} file(s) sent to the printer",
            )
        elif result.success_count == 0:
            self._system.notify(
                NotificationType.ERROR,
                "Submission failed",
                f"None of the {result.failure_count} file(s) could be submitted",
            )
        else:
            self._system.notify(
                NotificationType.WARNING,
                "Some files failed",
                f"{result.success_count} submitted, {result.failure_count} failed",
            )

    def _schedule_finish(self, result: BatchResult) -> None:
        if self._redirect_delay <= 0:
            self._finish(result)
            return
        self.cancel_pending_finish()
        self._pending_finish = asyncio.get_running_loop().call_later(
            self._redirect_delay, self._finish, result
        )

    def _finish(self, result: BatchResult) -> None:
        self._pending_finish = None
        self._queue.clear()
        if self._on_complete is not None:
            self._on_complete(result)
