"""
Local file queue for the upload screen.

UploadedFile is client-only: it never goes to the backend as a whole, only
its bytes do (as the `file` part of POST /api/jobs). Its id is a random
local token, unrelated to any job id.

Per-file state machine:
    READY → UPLOADING → PROCESSING     (backend created the job)
    READY → UPLOADING → ERROR          (submission failed)
"""

import logging
import mimetypes
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from models.enums import UploadStatus

logger = logging.getLogger(__name__)

# What the drop zone accepts
ACCEPTED_EXTENSIONS = frozenset({".pdf", ".png", ".jpg", ".jpeg", ".doc", ".docx"})


def _local_token() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class UploadedFile:
    name: str
    size: int
    content_type: str
    path: Optional[Path] = None        # file on disk, read at submission time
    data: Optional[bytes] = None       # or bytes already in memory
    id: str = field(default_factory=_local_token)
    status: UploadStatus = UploadStatus.READY
    progress: int = 0
    error: Optional[str] = None
    job_id: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path | str) -> "UploadedFile":
        path = Path(path)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            content_type=guess_content_type(path.name),
            path=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: Optional[str] = None) -> "UploadedFile":
        return cls(
            name=name,
            size=len(data),
            content_type=content_type or guess_content_type(name),
            data=data,
        )

    def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"{self.name} has neither a path nor in-memory data")
        return self.path.read_bytes()


def guess_content_type(file_name: str) -> str:
    content_type, _ = mimetypes.guess_type(file_name)
    return content_type or "application/octet-stream"


def is_accepted(file_name: str) -> bool:
    return Path(file_name).suffix.lower() in ACCEPTED_EXTENSIONS


class FileQueue:
    """Ordered list of files waiting to be submitted, in the order they were added."""

    def __init__(self):
        self._files: list[UploadedFile] = []

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self):
        return iter(list(self._files))

    @property
    def files(self) -> list[UploadedFile]:
        return list(self._files)

    def add(self, uploaded: UploadedFile) -> Optional[UploadedFile]:
        """Queue a file. Unsupported extensions are skipped (returns None)."""
        if not is_accepted(uploaded.name):
            logger.warning(f"Skipping {uploaded.name}: unsupported file type")
            return None
        self._files.append(uploaded)
        return uploaded

    def add_paths(self, paths: Iterable[Path | str]) -> list[UploadedFile]:
        added = []
        for path in paths:
            uploaded = self.add(UploadedFile.from_path(path))
            if uploaded is not None:
                added.append(uploaded)
        return added

    def get(self, file_id: str) -> Optional[UploadedFile]:
        return next((f for f in self._files if f.id == file_id), None)

    def remove(self, file_id: str) -> None:
        self._files = [f for f in self._files if f.id != file_id]

    def clear(self) -> None:
        self._files = []
