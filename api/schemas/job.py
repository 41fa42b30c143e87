"""
Pydantic schemas for print jobs.

- PrintOptions: the settings chosen on the upload screen. Frozen, because a
  job's options are a snapshot taken at submission time and never change.
- PrintJob: a job record as returned by /api/jobs and pushed by
  job_progress_update events.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.base import WireModel
from models.enums import JobStatus, Orientation, ColorMode, Duplex, Quality


class PrintOptions(WireModel):
    model_config = ConfigDict(frozen=True)

    copies: int = Field(default=1, ge=1, le=999)
    paper_size: str = "A4"
    orientation: Orientation = Orientation.PORTRAIT
    color_mode: ColorMode = ColorMode.AUTO
    duplex: Duplex = Duplex.NONE
    quality: Quality = Quality.NORMAL
    page_range: Optional[str] = None
    fit_to_page: Optional[bool] = None

    def to_form_value(self) -> str:
        """JSON string sent in the `options` field of the multipart request."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class PrintJob(WireModel):
    id: str
    file_name: str = ""
    file_size: int = 0
    file_type: str = ""
    status: JobStatus = JobStatus.PENDING
    printer_id: str = ""
    printer_name: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    options: PrintOptions = Field(default_factory=PrintOptions)
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    user: Optional[str] = None
    estimated_time: Optional[float] = None
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
    error_message: Optional[str] = None
    version: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class CancelMultipleRequest(BaseModel):
    """Request body for POST /api/jobs/cancel-multiple. Keys stay snake_case on the wire."""

    job_ids: list[str]
