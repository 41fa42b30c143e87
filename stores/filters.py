"""
Filter predicates for the job and printer lists.

Pure functions: they take the current collection and a filter value and
return a new list. Nothing here touches store state, so the same filters
can be re-applied every time a store notifies.

Every criterion is optional and they combine with AND:
    JobFilters(status={"failed"}, search="report")
    → failed jobs whose file name, printer name or user contains "report"
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from api.schemas.job import PrintJob
from api.schemas.printer import Printer
from models.enums import JobStatus, PrinterStatus


@dataclass(frozen=True)
class JobFilters:
    status: frozenset[JobStatus] = field(default_factory=frozenset)
    printer: frozenset[str] = field(default_factory=frozenset)     # printer ids
    date_range: Optional[tuple[datetime, datetime]] = None         # inclusive, on created_at
    search: str = ""

    def __post_init__(self):
        # Accept plain lists/strings from callers, store normalized sets
        object.__setattr__(self, "status", frozenset(JobStatus(s) for s in _values(self.status)))
        object.__setattr__(self, "printer", frozenset(_values(self.printer)))


@dataclass(frozen=True)
class PrinterFilters:
    status: frozenset[PrinterStatus] = field(default_factory=frozenset)
    type: frozenset[str] = field(default_factory=frozenset)
    search: str = ""

    def __post_init__(self):
        object.__setattr__(self, "status", frozenset(PrinterStatus(s) for s in _values(self.status)))
        object.__setattr__(self, "type", frozenset(_values(self.type)))


def filter_jobs(jobs: Iterable[PrintJob], filters: JobFilters) -> list[PrintJob]:
    result = list(jobs)

    if filters.status:
        result = [j for j in result if j.status in filters.status]

    if filters.printer:
        result = [j for j in result if j.printer_id in filters.printer]

    if filters.date_range is not None:
        start, end = (_as_utc(d) for d in filters.date_range)
        result = [
            j for j in result
            if j.created_at is not None and start <= _as_utc(j.created_at) <= end
        ]

    if filters.search:
        needle = filters.search.lower()
        result = [
            j for j in result
            if _contains(needle, j.file_name, j.printer_name, j.user)
        ]

    return result


def filter_printers(printers: Iterable[Printer], filters: PrinterFilters) -> list[Printer]:
    result = list(printers)

    if filters.status:
        result = [p for p in result if p.status in filters.status]

    if filters.type:
        result = [p for p in result if p.type in filters.type]

    if filters.search:
        needle = filters.search.lower()
        result = [
            p for p in result
            if _contains(needle, p.name, p.model, p.manufacturer, p.location)
        ]

    return result


def _values(value) -> Iterable:
    """A bare string is one value, not a sequence of characters."""
    return (value,) if isinstance(value, str) else value


def _contains(needle: str, *fields: Optional[str]) -> bool:
    return any(needle in f.lower() for f in fields if f)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
