"""
Printer endpoints.

GET    /printers              → all printers
GET    /printers/{id}         → one printer
POST   /printers/discover     → run discovery, returns the full list
POST   /printers              → register a printer by URI
DELETE /printers/{id}         → remove a printer
POST   /printers/{id}/pause   → stop sending jobs to it
POST   /printers/{id}/resume  → start again
"""

from api.client import ApiClient
from api.schemas.printer import Printer, PrinterCreate


class PrinterAPI:

    def __init__(self, client: ApiClient):
        self._client = client

    async def get_all(self) -> list[Printer]:
        data = await self._client.get_json("/printers", expect=list)
        return [Printer.model_validate(p) for p in data]

    async def get_by_id(self, printer_id: str) -> Printer:
        data = await self._client.get_json(f"/printers/{printer_id}", expect=dict)
        return Printer.model_validate(data)

    async def discover(self) -> list[Printer]:
        data = await self._client.post_json("/printers/discover", expect=list)
        return [Printer.model_validate(p) for p in data or []]

    async def add(self, uri: str, name: str | None = None) -> Printer:
        body = PrinterCreate(uri=uri, name=name)
        data = await self._client.post_json(
            "/printers", json=body.model_dump(exclude_none=True)
        )
        return Printer.model_validate(data)

    async def remove(self, printer_id: str) -> None:
        await self._client.delete(f"/printers/{printer_id}")

    async def pause(self, printer_id: str) -> None:
        await self._client.post_json(f"/printers/{printer_id}/pause")

    async def resume(self, printer_id: str) -> None:
        await self._client.post_json(f"/printers/{printer_id}/resume")
