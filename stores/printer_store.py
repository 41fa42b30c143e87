"""
Printer store — the dashboard's list of printers.

Sources of truth, applied in arrival order:
- fetch_printers() / discover_printers(): full list from REST
- update_printer(): printer_status_update push events (via the event router)
- pause/resume: optimistic status patch, rolled back if the call fails

Printers are only removed locally after the backend acknowledged the DELETE.
"""

import logging
from typing import Optional

from api.resources.printers import PrinterAPI
from api.schemas.printer import Printer
from models.enums import PrinterStatus
from models.errors import DashboardError
from stores.base import CollectionStore, READ_ERRORS
from stores.filters import PrinterFilters, filter_printers

logger = logging.getLogger(__name__)


class PrinterStore(CollectionStore[Printer]):

    entity_name = "printers"

    def __init__(self, api: PrinterAPI):
        super().__init__()
        self._api = api
        self.discovering = False
        self.selected_printer_id: Optional[str] = None
        self.filters = PrinterFilters()

    @property
    def printers(self) -> list[Printer]:
        return self.items

    @property
    def selected_printer(self) -> Optional[Printer]:
        if self.selected_printer_id is None:
            return None
        return self.get(self.selected_printer_id)

    def online_printers(self) -> list[Printer]:
        return [p for p in self._items if p.status == PrinterStatus.ONLINE]

    # ── REST reads ──────────────────────────────────────────────

    async def fetch_printers(self) -> bool:
        return await self._load(self._api.get_all)

    async def fetch_printer(self, printer_id: str) -> Optional[Printer]:
        """Refresh a single printer in place."""
        try:
            printer = await self._api.get_by_id(printer_id)
        except READ_ERRORS as e:
            if not self._closed:
                self.error = f"Failed to load printer {printer_id}: {e}"
                logger.error(self.error)
                self._notify()
            return None
        if self._closed:
            return None
        self._upsert(printer)
        self._notify()
        return printer

    async def discover_printers(self) -> bool:
        """Ask the backend to scan the network. The answer replaces the list."""
        if self._closed:
            return False
        self.discovering = True
        self.error = None
        self._notify()
        try:
            printers = await self._api.discover()
        except READ_ERRORS as e:
            if self._closed:
                return False
            self.discovering = False
            self.error = f"Printer discovery failed: {e}"
            logger.error(self.error)
            self._notify()
            return False
        if self._closed:
            return False
        self._replace_all(printers)
        self.discovering = False
        logger.info(f"Discovery returned {len(printers)} printers")
        self._notify()
        return True

    # ── Actions ─────────────────────────────────────────────────

    async def add_printer(self, uri: str, name: Optional[str] = None) -> Printer:
        try:
            printer = await self._api.add(uri, name)
        except DashboardError as e:
            self.error = f"Failed to add printer {uri}: {e}"
            logger.error(self.error)
            self._notify()
            raise
        self._upsert(printer)
        self._notify()
        return printer

    async def remove_printer(self, printer_id: str) -> None:
        """Delete on the backend, then locally. Nothing changes if the DELETE fails."""
        try:
            await self._api.remove(printer_id)
        except DashboardError as e:
            self.error = f"Failed to remove printer {printer_id}: {e}"
            logger.error(self.error)
            self._notify()
            raise
        self._remove(printer_id)
        if self.selected_printer_id == printer_id:
            self.selected_printer_id = None
        self._notify()

    async def pause_printer(self, printer_id: str) -> None:
        await self._run_optimistic(
            "Pause printer", [printer_id],
            lambda: self._api.pause(printer_id),
            status=PrinterStatus.OFFLINE,
        )

    async def resume_printer(self, printer_id: str) -> None:
        await self._run_optimistic(
            "Resume printer", [printer_id],
            lambda: self._api.resume(printer_id),
            status=PrinterStatus.ONLINE,
        )

    # ── Push updates ────────────────────────────────────────────

    def update_printer(self, printer: Printer) -> None:
        if self._closed:
            return
        if self._upsert(printer):
            self._notify()

    # ── Selection & filters ─────────────────────────────────────

    def select_printer(self, printer_id: Optional[str]) -> None:
        self.selected_printer_id = printer_id
        self._notify()

    def set_filters(self, filters: PrinterFilters) -> None:
        self.filters = filters
        self._notify()

    def filtered(self) -> list[Printer]:
        return filter_printers(self._items, self.filters)
