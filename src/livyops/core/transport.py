"""Transport interface used by the core controllers.

The core never talks HTTP directly; it goes through a SubmissionTransport
(see livyops.core.adapters.livyhttp for the requests-based implementation).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from livyops.core.errors import MalformedResponse


@dataclass(frozen=True)
class HttpResponse:
    """
    Structured HTTP response.

    Attributes:
        url: Requested URL.
        code: HTTP status code.
        body: Decoded response body.
        content_type: Value of the Content-Type header, if any.
    """

    url: str
    code: int
    body: str = ""
    content_type: str | None = None

    @property
    def ok(self) -> bool:
        """Return True for 2xx responses."""
        return 200 <= self.code < 300

    def json(self) -> Any:
        """Decode the body as JSON, raising MalformedResponse on failure."""
        try:
            return json.loads(self.body)
        except (TypeError, ValueError) as exc:
            raise MalformedResponse("Response is not valid JSON", url=self.url, body=self.body) from exc


class SubmissionTransport(Protocol):
    """Interface for issuing requests against Livy and the RM REST API."""

    async def get(self, url: str) -> HttpResponse:
        """Issue a GET request."""
        ...

    async def post(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:
        """Issue a POST request with a JSON payload."""
        ...

    async def delete(self, url: str) -> HttpResponse:
        """Issue a DELETE request."""
        ...
