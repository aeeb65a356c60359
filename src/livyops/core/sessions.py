"""Interactive Livy sessions.

A session's identity is either ``Uncreated`` or ``Created(id)``; everything
else it knows about the remote side lives in an immutable SessionSnapshot that
``create``, ``get`` and ``kill`` replace as a whole.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from livyops.core.clock import Clock, SystemClock
from livyops.core.errors import (
    ApplicationNotStarted,
    KillFailed,
    LivyOpsError,
    MalformedResponse,
    RequestFailed,
    SessionNotStarted,
    StatementExecutionError,
    SubmissionRejected,
)
from livyops.core.statements import Statement, StatementExecutor
from livyops.core.transport import HttpResponse, SubmissionTransport

LOGGER = logging.getLogger(__name__)

APP_ID_TIMEOUT_SECONDS = 180
READY_POLL_SECONDS = 1


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    IDLE = "idle"
    BUSY = "busy"
    SHUTTING_DOWN = "shutting_down"
    ERROR = "error"
    DEAD = "dead"
    KILLED = "killed"
    SUCCESS = "success"
    RECOVERING = "recovering"

    @classmethod
    def parse(cls, value: Any) -> "SessionState":
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise MalformedResponse(f"Unknown session state {value!r}") from exc


# Final states not covered by is_stop()
_END_OF_LIFE_STATES = frozenset({SessionState.ERROR, SessionState.KILLED, SessionState.SUCCESS})


class SessionKind(str, Enum):
    """Interpreter dialect of a session."""

    SPARK = "spark"
    PYSPARK = "pyspark"
    SPARKR = "sparkr"
    SQL = "sql"


@dataclass(frozen=True)
class Uncreated:
    """Identity of a session that has not been created on the server."""


@dataclass(frozen=True)
class Created:
    id: int


SessionIdentity = Uncreated | Created


@dataclass(frozen=True)
class SessionSnapshot:
    """Last known remote view of a session."""

    identity: SessionIdentity = field(default_factory=Uncreated)
    app_id: str | None = None
    state: SessionState = SessionState.NOT_STARTED
    logs: tuple[str, ...] = ()

    @classmethod
    def from_response(cls, response: HttpResponse) -> "SessionSnapshot":
        payload = response.json()
        if not isinstance(payload, Mapping):
            raise MalformedResponse("Bad session response", url=response.url, body=response.body)
        session_id = payload.get("id")
        if isinstance(session_id, bool) or not isinstance(session_id, int):
            raise MalformedResponse("Session response has no numeric id", url=response.url, body=response.body)
        return cls(
            identity=Created(session_id),
            app_id=payload.get("appId") or None,
            state=SessionState.parse(payload.get("state")),
            logs=tuple(payload.get("log") or ()),
        )


class InteractiveSession:
    """
    Controller for one interactive Livy session.

    Use it as an async context manager so the remote session is killed on
    every exit path::

        async with InteractiveSession("probe", base_uri, transport) as session:
            await session.create()
            data = await session.run_code("1 + 1")

    Args:
        name: Session name sent on creation.
        base_uri: Livy root URI, e.g. ``http://livy:8998``.
        transport: Transport used for every request.
        kind: Interpreter dialect.
        clock: Clock for polling cadence and the application id deadline.
    """

    def __init__(
        self,
        name: str,
        base_uri: str,
        transport: SubmissionTransport,
        kind: SessionKind = SessionKind.SPARK,
        *,
        clock: Clock | None = None,
        app_id_timeout: float = APP_ID_TIMEOUT_SECONDS,
        poll_seconds: float = READY_POLL_SECONDS,
    ):
        self.name = name
        self.base_uri = base_uri.rstrip("/")
        self.transport = transport
        self.kind = kind
        self.clock = clock or SystemClock()
        self.app_id_timeout = app_id_timeout
        self.poll_seconds = poll_seconds
        self.snapshot = SessionSnapshot()
        self._closed = False

    @classmethod
    def attach(cls, session_id: int, base_uri: str, transport: SubmissionTransport, **kwargs) -> "InteractiveSession":
        """Return a controller for an existing remote session."""
        session = cls(f"session-{session_id}", base_uri, transport, **kwargs)
        session.snapshot = SessionSnapshot(identity=Created(session_id), state=SessionState.STARTING)
        return session

    @property
    def sessions_url(self) -> str:
        return f"{self.base_uri}/sessions"

    @property
    def id(self) -> int:
        identity = self.snapshot.identity
        if isinstance(identity, Created):
            return identity.id
        raise SessionNotStarted(f"{self.name} isn't created. Call create() before getting its ID.")

    @property
    def uri(self) -> str:
        return f"{self.sessions_url}/{self.id}"

    @property
    def app_id(self) -> str | None:
        return self.snapshot.app_id

    @property
    def last_state(self) -> SessionState:
        return self.snapshot.state

    @property
    def last_logs(self) -> tuple[str, ...]:
        return self.snapshot.logs

    def is_started(self) -> bool:
        return self.last_state not in (SessionState.STARTING, SessionState.NOT_STARTED)

    def is_stop(self) -> bool:
        return self.last_state in (
            SessionState.SHUTTING_DOWN,
            SessionState.NOT_STARTED,
            SessionState.DEAD,
        )

    def is_statement_runnable(self) -> bool:
        return self.last_state in (SessionState.IDLE, SessionState.BUSY)

    async def create(self) -> "InteractiveSession":
        """Create the session on the server."""
        payload = {"name": self.name, "kind": self.kind.value}
        response = await self.transport.post(self.sessions_url, payload)
        if not response.ok:
            raise SubmissionRejected(
                f"Failed to create session {self.name}",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        self.snapshot = SessionSnapshot.from_response(response)
        LOGGER.info("Created session %s (id=%d, state=%s)", self.name, self.id, self.last_state.value)
        return self

    async def get(self) -> "InteractiveSession":
        """Refresh the snapshot; a session that was never created is returned unchanged."""
        if not isinstance(self.snapshot.identity, Created):
            return self
        response = await self.transport.get(self.uri)
        if not response.ok:
            raise RequestFailed(
                f"Failed to get session {self.name}",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        self.snapshot = SessionSnapshot.from_response(response)
        return self

    async def kill(self) -> "InteractiveSession":
        """Delete the session if it was created; otherwise do nothing."""
        if not isinstance(self.snapshot.identity, Created):
            return self
        response = await self.transport.delete(self.uri)
        if response.code > 300:
            raise KillFailed(
                f"Failed to kill session {self.name}",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        self.snapshot = SessionSnapshot(
            identity=self.snapshot.identity,
            app_id=self.snapshot.app_id,
            state=SessionState.DEAD,
            logs=self.snapshot.logs,
        )
        LOGGER.info("Killed session %s", self.name)
        return self

    async def close(self) -> None:
        """Kill the session; subsequent calls do nothing."""
        if self._closed:
            return
        self._closed = True
        await self.kill()

    async def __aenter__(self) -> "InteractiveSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            await self.close()
            return
        try:
            await self.close()
        except LivyOpsError as kill_exc:
            # Keep the body's exception as the one that propagates
            LOGGER.warning("Failed to close session %s: %s", self.name, kill_exc)

    async def await_application_id(self) -> str:
        """
        Return the YARN application id, polling until it is allocated.

        Raises:
            ApplicationNotStarted: If no id shows up within ``app_id_timeout``.
        """
        if self.app_id:
            return self.app_id

        deadline = self.clock.monotonic() + self.app_id_timeout
        while True:
            await self.get()
            if self.app_id:
                return self.app_id
            if self.clock.monotonic() >= deadline:
                raise ApplicationNotStarted(
                    f"{self.name} application isn't started in {self.app_id_timeout:g} seconds."
                )
            await self.clock.sleep(self.poll_seconds)

    async def await_ready(self) -> "InteractiveSession":
        """
        Poll the session until it accepts statements.

        Raises:
            SessionNotStarted: If the session has stopped or reached a final state.
        """
        while True:
            await self.get()
            if self.is_stop() or self.last_state in _END_OF_LIFE_STATES:
                raise SessionNotStarted(
                    f"Session {self.name} is {self.last_state.value}. " + "\n".join(self.last_logs),
                    logs=self.last_logs,
                )
            if self.is_statement_runnable():
                return self
            await self.clock.sleep(self.poll_seconds)

    async def run_statement(self, statement: Statement) -> dict[str, Any]:
        """
        Run a statement once the session is ready and return its data.

        Raises:
            StatementExecutionError: If the interpreter reports a failure.
        """
        await self.await_ready()
        executor = StatementExecutor(self.uri, self.transport, self.clock, self.poll_seconds)
        result = await executor.execute(statement)
        if not result.ok:
            raise StatementExecutionError(result.ename, result.evalue, list(result.traceback))
        return dict(result.data)

    async def run_code(self, code: str) -> dict[str, Any]:
        return await self.run_statement(Statement(code))
