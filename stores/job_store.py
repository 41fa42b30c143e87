"""
Job store — the dashboard's list of print jobs.

Sources of truth, applied in arrival order:
- fetch_jobs(): full list from REST (periodic refresh)
- update_job(): job_progress_update push events (via the event router)
- cancel / retry: optimistic patch, rolled back if the call fails
- placeholders: the upload pipeline inserts a local job per file while the
  multipart request is in flight, then swaps in the backend's record

Invariants kept on every merge (_reconcile):
- options are a submission-time snapshot: an update never replaces them
- progress never goes down while the job stays `processing`
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from api.resources.jobs import JobAPI
from api.schemas.job import PrintJob, PrintOptions
from models.enums import JobStatus
from stores.base import CollectionStore, READ_ERRORS
from stores.filters import JobFilters, filter_jobs

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "local-"


class JobStore(CollectionStore[PrintJob]):

    entity_name = "jobs"

    def __init__(self, api: JobAPI):
        super().__init__()
        self._api = api
        self.selected_job_ids: list[str] = []
        self.filters = JobFilters()

    @property
    def jobs(self) -> list[PrintJob]:
        return self.items

    def _reconcile(self, existing: PrintJob, incoming: PrintJob) -> Optional[PrintJob]:
        merged = super()._reconcile(existing, incoming)
        if merged is None:
            return None

        changes = {}
        if merged.options != existing.options:
            changes["options"] = existing.options
        if (
            existing.status == JobStatus.PROCESSING
            and merged.status == JobStatus.PROCESSING
            and merged.progress < existing.progress
        ):
            logger.debug(
                f"Job {existing.id}: ignoring progress drop {existing.progress} → {merged.progress}"
            )
            changes["progress"] = existing.progress
        return merged.model_copy(update=changes) if changes else merged

    def _replace_all(self, items: list[PrintJob]) -> None:
        # The backend doesn't know about placeholders yet; a refresh mid-upload keeps them
        pending = [j for j in self._items if j.id.startswith(PLACEHOLDER_PREFIX)]
        super()._replace_all(items)
        self._items.extend(pending)

    # ── REST reads ──────────────────────────────────────────────

    async def fetch_jobs(self) -> bool:
        return await self._load(self._api.get_all)

    async def fetch_job(self, job_id: str) -> Optional[PrintJob]:
        try:
            job = await self._api.get_by_id(job_id)
        except READ_ERRORS as e:
            if not self._closed:
                self.error = f"Failed to load job {job_id}: {e}"
                logger.error(self.error)
                self._notify()
            return None
        if self._closed:
            return None
        self._upsert(job)
        self._notify()
        return job

    # ── Actions ─────────────────────────────────────────────────

    async def cancel_job(self, job_id: str) -> None:
        await self._run_optimistic(
            "Cancel job", [job_id],
            lambda: self._api.cancel(job_id),
            status=JobStatus.CANCELLED,
        )

    async def retry_job(self, job_id: str) -> Optional[PrintJob]:
        """
        Resubmit a job. The local record goes back to pending/0% right away.

        The backend may answer with the resubmitted job under a new id; in
        that case the original record is restored and the new one added.
        """
        before = self.get(job_id)
        returned = await self._run_optimistic(
            "Retry job", [job_id],
            lambda: self._api.retry(job_id),
            status=JobStatus.PENDING, progress=0, error_message=None,
        )
        if returned is not None:
            if returned.id != job_id and before is not None:
                index = self._index(job_id)
                if index is not None:
                    self._items[index] = before
            self._upsert(returned)
        self._notify()
        return returned

    async def cancel_multiple_jobs(self, job_ids: list[str]) -> None:
        await self._run_optimistic(
            "Cancel jobs", list(job_ids),
            lambda: self._api.cancel_multiple(list(job_ids)),
            status=JobStatus.CANCELLED,
        )
        self.selected_job_ids = []
        self._notify()

    # ── Push updates ────────────────────────────────────────────

    def update_job(self, job: PrintJob) -> None:
        if self._closed:
            return
        if self._upsert(job):
            self._notify()

    # ── Upload placeholders ─────────────────────────────────────

    def add_placeholder(
        self,
        file_name: str,
        file_size: int,
        printer_id: str,
        options: PrintOptions,
        printer_name: str = "",
    ) -> PrintJob:
        placeholder = PrintJob(
            id=f"{PLACEHOLDER_PREFIX}{uuid.uuid4().hex[:12]}",
            file_name=file_name,
            file_size=file_size,
            printer_id=printer_id,
            printer_name=printer_name,
            status=JobStatus.PENDING,
            options=options,
            created_at=datetime.now(timezone.utc),
        )
        self._items.append(placeholder)
        self._notify()
        return placeholder

    def confirm_placeholder(self, placeholder_id: str, job: PrintJob) -> None:
        """Swap the local placeholder for the backend's record."""
        index = self._index(placeholder_id)
        if index is not None and self._index(job.id) is None:
            self._items[index] = job
        else:
            self._remove(placeholder_id)
            self._upsert(job)
        self._notify()

    def discard_placeholder(self, placeholder_id: str) -> None:
        if self._remove(placeholder_id) is not None:
            self._notify()

    # ── Selection & filters ─────────────────────────────────────

    def select_job(self, job_id: str) -> None:
        if job_id not in self.selected_job_ids:
            self.selected_job_ids = [*self.selected_job_ids, job_id]
            self._notify()

    def deselect_job(self, job_id: str) -> None:
        self.selected_job_ids = [i for i in self.selected_job_ids if i != job_id]
        self._notify()

    def select_all_jobs(self) -> None:
        self.selected_job_ids = [j.id for j in self._items]
        self._notify()

    def clear_selection(self) -> None:
        self.selected_job_ids = []
        self._notify()

    def set_filters(self, filters: JobFilters) -> None:
        self.filters = filters
        self._notify()

    def filtered(self) -> list[PrintJob]:
        return filter_jobs(self._items, self.filters)
