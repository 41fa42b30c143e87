"""
Upload progress for multipart requests.

httpx streams a file part by calling read() on the object we give it, chunk
by chunk. ProgressReader is an in-memory file that counts those reads and
reports a 0-100 percentage. httpx sizes the part with seek/tell, which
BytesIO supports, so the request still gets a Content-Length.
"""

import io
from typing import Callable


class ProgressReader(io.BytesIO):

    def __init__(self, data: bytes, on_progress: Callable[[int], None]):
        super().__init__(data)
        self._total = len(data)
        self._on_progress = on_progress
        self._last_reported = -1

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if self._total == 0:
            percent = 100
        else:
            percent = min(100, self.tell() * 100 // self._total)
        if percent != self._last_reported:
            self._last_reported = percent
            self._on_progress(percent)
        return chunk
