"""Statement submission against an interactive Livy session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from livyops.core.clock import Clock, SystemClock
from livyops.core.errors import MalformedResponse, RequestFailed, StatementExecutionError
from livyops.core.transport import HttpResponse, SubmissionTransport

LOGGER = logging.getLogger(__name__)

STATEMENT_POLL_SECONDS = 1

# "cancelling" is transient and keeps being polled
_STATEMENT_FAILED_STATES = {"error", "cancelled"}


@dataclass(frozen=True)
class Statement:
    """A unit of code to run in a session; ``kind`` overrides the session's."""

    code: str
    kind: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code}
        if self.kind:
            payload["kind"] = self.kind
        return payload


@dataclass(frozen=True)
class StatementResult:
    """Terminal output of a statement."""

    status: str
    data: Mapping[str, Any] = field(default_factory=dict)
    execution_count: int | None = None
    ename: str | None = None
    evalue: str | None = None
    traceback: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status.lower() == "ok"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], response: HttpResponse) -> "StatementResult":
        status = payload.get("status")
        if not isinstance(status, str):
            raise MalformedResponse("Statement output has no status", url=response.url, body=response.body)
        return cls(
            status=status,
            data=payload.get("data") or {},
            execution_count=payload.get("execution_count"),
            ename=payload.get("ename"),
            evalue=payload.get("evalue"),
            traceback=tuple(payload.get("traceback") or ()),
        )


class StatementExecutor:
    """
    Submit one statement to a session and wait for its output.

    Livy answers the POST with a statement record whose ``output`` stays
    empty until the code has run; the record is then re-read until it is.
    """

    def __init__(
        self,
        session_url: str,
        transport: SubmissionTransport,
        clock: Clock | None = None,
        poll_seconds: float = STATEMENT_POLL_SECONDS,
    ):
        self.statements_url = f"{session_url.rstrip('/')}/statements"
        self.transport = transport
        self.clock = clock or SystemClock()
        self.poll_seconds = poll_seconds

    def _payload(self, response: HttpResponse) -> Mapping[str, Any]:
        if not response.ok:
            raise RequestFailed(
                "Statement request failed",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        payload = response.json()
        if not isinstance(payload, Mapping):
            raise MalformedResponse("Bad statement response", url=response.url, body=response.body)
        return payload

    async def execute(self, statement: Statement) -> StatementResult:
        response = await self.transport.post(self.statements_url, statement.to_payload())
        payload = self._payload(response)

        if "status" in payload:
            return StatementResult.from_payload(payload, response)

        statement_id = payload.get("id")
        if statement_id is None:
            raise MalformedResponse("Statement response has no id", url=response.url, body=response.body)
        LOGGER.debug("Statement %s submitted to %s", statement_id, self.statements_url)

        while True:
            output = payload.get("output")
            if isinstance(output, Mapping):
                return StatementResult.from_payload(output, response)

            state = str(payload.get("state") or "").lower()
            if state in _STATEMENT_FAILED_STATES:
                raise StatementExecutionError(
                    "StatementFailed", f"Statement {statement_id} ended in state {state}"
                )

            await self.clock.sleep(self.poll_seconds)
            response = await self.transport.get(f"{self.statements_url}/{statement_id}")
            payload = self._payload(response)
