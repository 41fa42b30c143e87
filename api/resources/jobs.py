"""
Job endpoints.

GET  /jobs                   → all jobs
GET  /jobs/{id}              → one job
POST /jobs                   → multipart: file + printer_id + options (JSON string)
POST /jobs/{id}/cancel       → cancel
POST /jobs/{id}/retry        → resubmit; the backend may answer with a new job record
POST /jobs/cancel-multiple   → {"job_ids": [...]}
"""

import logging
from typing import IO, Optional

from pydantic import ValidationError

from api.client import ApiClient
from api.schemas.job import PrintJob, PrintOptions, CancelMultipleRequest

logger = logging.getLogger(__name__)


class JobAPI:

    def __init__(self, client: ApiClient, upload_timeout: float = 30.0):
        self._client = client
        self._upload_timeout = upload_timeout

    async def get_all(self) -> list[PrintJob]:
        data = await self._client.get_json("/jobs", expect=list)
        return [PrintJob.model_validate(j) for j in data]

    async def get_by_id(self, job_id: str) -> PrintJob:
        data = await self._client.get_json(f"/jobs/{job_id}", expect=dict)
        return PrintJob.model_validate(data)

    async def create(
        self,
        printer_id: str,
        file_name: str,
        content: IO[bytes],
        options: PrintOptions,
        content_type: str = "application/octet-stream",
    ) -> PrintJob:
        """
        Submit one file as a print job.

        `content` is read by httpx while it streams the multipart body, so a
        file-like object that reports its reads (upload/progress.py) gives
        upload progress for free.
        """
        data = await self._client.post_json(
            "/jobs",
            files={"file": (file_name, content, content_type)},
            data={"printer_id": printer_id, "options": options.to_form_value()},
            timeout=self._upload_timeout,
        )
        return PrintJob.model_validate(data)

    async def cancel(self, job_id: str) -> None:
        await self._client.post_json(f"/jobs/{job_id}/cancel")

    async def retry(self, job_id: str) -> Optional[PrintJob]:
        """Returns the job record if the backend sent one back, else None."""
        data = await self._client.post_json(f"/jobs/{job_id}/retry")
        if not isinstance(data, dict):
            return None
        try:
            return PrintJob.model_validate(data)
        except ValidationError:
            logger.debug(f"Retry of {job_id} answered with a non-job body, ignoring it")
            return None

    async def cancel_multiple(self, job_ids: list[str]) -> None:
        body = CancelMultipleRequest(job_ids=job_ids)
        await self._client.post_json("/jobs/cancel-multiple", json=body.model_dump())
