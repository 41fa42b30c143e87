"""
Thin async wrapper around httpx for the backend's /api routes.

Every REST call in the project goes through ApiClient.request(), which:
1. Logs the call ("[API] GET /printers")
2. Turns transport failures (refused, DNS, timeout) into BackendUnavailableError
3. Turns non-2xx answers into APIResponseError, with the backend's error text
4. Turns a 2xx with a body that is not the expected JSON into APIResponseError

The resources in api/resources/ build on this and return typed schemas.
They never catch these errors — stores and the upload pipeline decide what
a failure means for the user.
"""

import logging
from typing import Any, Optional

import httpx

from models.errors import APIResponseError, BackendUnavailableError

logger = logging.getLogger(__name__)


def create_http_client(
    base_url: str,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the shared AsyncClient.

    `transport` lets tests plug in httpx.ASGITransport (in-process fake
    backend) or httpx.MockTransport instead of the network.
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )


class ApiClient:

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @property
    def base_url(self) -> str:
        return str(self._http.base_url)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"[API] {method} {path}")
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"[API] {method} {path} unreachable: {e!r}")
            raise BackendUnavailableError(self.base_url, str(e) or type(e).__name__) from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(f"[API] {method} {path} → {response.status_code} {detail or ''}")
            raise APIResponseError(method, path, response.status_code, detail)
        return response

    async def get_json(self, path: str, expect: Optional[type] = None, **kwargs: Any) -> Any:
        """
        GET and decode the body.

        `expect` (list or dict) rejects a body of another shape, e.g. a
        proxy's `null` where the backend sends a list.
        """
        response = await self.request("GET", path, **kwargs)
        return _decode(response, "GET", path, expect)

    async def post_json(self, path: str, expect: Optional[type] = None, **kwargs: Any) -> Any:
        """POST and decode the body. Empty bodies (204, or 200 with nothing) give None."""
        response = await self.request("POST", path, **kwargs)
        if not response.content:
            return None
        return _decode(response, "POST", path, expect)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)

    async def aclose(self) -> None:
        await self._http.aclose()


def _decode(response: httpx.Response, method: str, path: str, expect: Optional[type]) -> Any:
    """A 2xx answer that isn't the JSON we asked for is still a failed call."""
    try:
        body = response.json()
    except ValueError as e:
        logger.warning(f"[API] {method} {path} → {response.status_code} with a non-JSON body")
        raise APIResponseError(method, path, response.status_code, "invalid JSON body") from e
    if expect is not None and not isinstance(body, expect):
        detail = f"expected a JSON {'array' if expect is list else 'object'}, got {type(body).__name__}"
        logger.warning(f"[API] {method} {path} → {detail}")
        raise APIResponseError(method, path, response.status_code, detail)
    return body


def _error_detail(response: httpx.Response) -> Optional[str]:
    """Backend errors come as {"error": ...} or, from FastAPI-style servers, {"detail": ...}."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("detail")
        return str(detail) if detail is not None else None
    return None
