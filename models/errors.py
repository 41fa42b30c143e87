"""
Exceptions raised by the dashboard core.

Hierarchy:
    DashboardError (base)
    ├── BackendUnavailableError   - backend unreachable / timed out
    ├── APIResponseError          - backend answered with a non-2xx status
    ├── SubmissionValidationError - upload preconditions failed, nothing was sent
    └── MutationError             - optimistic action failed and was rolled back

Nothing here is fatal to the process. Stores turn read failures into an
`error` string; callers of actions and submissions catch these to show a
message.
"""

from typing import Any, Optional


class DashboardError(Exception):
    """Base exception. `details` carries extra context for logs."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class BackendUnavailableError(DashboardError):
    """Connection refused, DNS failure, timeout — the request never got an answer."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Backend not reachable at {url}: {reason}", {"url": url})
        self.url = url
        self.reason = reason


class APIResponseError(DashboardError):
    """The backend answered, but with an error status."""

    def __init__(self, method: str, path: str, status_code: int, detail: Optional[str] = None):
        message = f"{method} {path} failed with HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, {"status_code": status_code, "path": path})
        self.status_code = status_code
        self.detail = detail


class SubmissionValidationError(DashboardError):
    """A batch was rejected before any HTTP call was made."""


class MutationError(DashboardError):
    """
    An optimistic store action failed.

    The store has already restored the entities it patched; `cause` is the
    underlying API error.
    """

    def __init__(self, action: str, entity_ids: list[str], cause: Exception):
        super().__init__(
            f"{action} failed: {cause}",
            {"action": action, "ids": entity_ids},
        )
        self.action = action
        self.entity_ids = entity_ids
        self.cause = cause
