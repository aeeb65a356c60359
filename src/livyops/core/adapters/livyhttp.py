"""requests-based SubmissionTransport."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

import requests

from livyops.core.errors import TransientTransportError
from livyops.core.transport import HttpResponse

LOGGER = logging.getLogger(__name__)


class LivyHttpTransport:
    """
    Transport issuing Livy/RM REST calls through a requests Session.

    Blocking calls run in a worker thread so the event loop keeps serving
    other jobs while a request is in flight.
    """

    def __init__(self, session_factory: Callable[[], requests.Session], timeout: float = 30):
        self._session_factory = session_factory
        self.timeout = timeout

    def _request(self, method: str, url: str, payload: Mapping[str, Any] | None) -> HttpResponse:
        LOGGER.debug("%s %s", method, url)
        with self._session_factory() as session:
            try:
                resp = session.request(
                    method,
                    url,
                    json=dict(payload) if payload is not None else None,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise TransientTransportError(f"{method} {url} failed: {exc}") from exc
        return HttpResponse(
            url=url,
            code=resp.status_code,
            body=resp.text,
            content_type=resp.headers.get("Content-Type"),
        )

    async def get(self, url: str) -> HttpResponse:
        return await asyncio.to_thread(self._request, "GET", url, None)

    async def post(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:
        return await asyncio.to_thread(self._request, "POST", url, payload)

    async def delete(self, url: str) -> HttpResponse:
        return await asyncio.to_thread(self._request, "DELETE", url, None)
