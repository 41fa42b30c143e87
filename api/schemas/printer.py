"""
Pydantic schemas for printers.

Printer is what GET /api/printers returns and what printer_status_update
push events carry. Status is server-authoritative: the client only ever
copies it from a backend record or applies the expected result of its own
pause/resume action.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from api.schemas.base import WireModel
from models.enums import PrinterStatus


class PrinterCapabilities(WireModel):
    supported_formats: list[str] = Field(default_factory=list)
    color_supported: bool = False
    duplex_supported: bool = False
    max_paper_size: str = "A4"
    resolutions: list[int] = Field(default_factory=list)
    paper_sizes: list[str] = Field(default_factory=list)


class Printer(WireModel):
    id: str
    name: str = ""
    status: PrinterStatus = PrinterStatus.OFFLINE
    type: str = ""
    manufacturer: str = ""
    model: str = ""
    location: Optional[str] = None
    ip_address: Optional[str] = None
    uri: str = ""
    capabilities: PrinterCapabilities = Field(default_factory=PrinterCapabilities)
    current_jobs: int = 0
    total_jobs_processed: int = 0
    last_activity: Optional[datetime] = None

    # Optional sequence number. When both the local and the incoming record
    # carry one, the store discards the incoming record if it is older.
    version: Optional[int] = None

    @property
    def is_online(self) -> bool:
        return self.status == PrinterStatus.ONLINE


class PrinterCreate(WireModel):
    """Request body for POST /api/printers."""

    uri: str = Field(..., min_length=1)
    name: Optional[str] = None
