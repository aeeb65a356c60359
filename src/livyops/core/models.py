"""Wire models for Livy batches and the YARN resource manager.

Every model is a frozen snapshot built from one response payload; nothing
here is mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from livyops.core.errors import MalformedResponse
from livyops.core.transport import HttpResponse

_FINISHED_APP_STATES = {"FINISHED", "FAILED", "KILLED"}


def _mapping(value: Any, response: HttpResponse, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedResponse(f"Bad {what} response", url=response.url, body=response.body)
    return value


@dataclass(frozen=True)
class BatchSubmission:
    """
    Parameters of a Livy batch submission.

    Only ``file`` is required; unset fields are left out of the payload so
    the cluster defaults apply.
    """

    file: str
    class_name: str | None = None
    args: tuple[str, ...] = ()
    jars: tuple[str, ...] = ()
    py_files: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    archives: tuple[str, ...] = ()
    driver_memory: str | None = None
    driver_cores: int | None = None
    executor_memory: str | None = None
    executor_cores: int | None = None
    num_executors: int | None = None
    queue: str | None = None
    name: str | None = None
    proxy_user: str | None = None
    conf: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.file.strip():
            raise ValueError("file must be a non-empty string")

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body expected by ``POST /batches``."""
        payload: dict[str, Any] = {
            "file": self.file,
            "className": self.class_name,
            "args": list(self.args),
            "jars": list(self.jars),
            "pyFiles": list(self.py_files),
            "files": list(self.files),
            "archives": list(self.archives),
            "driverMemory": self.driver_memory,
            "driverCores": self.driver_cores,
            "executorMemory": self.executor_memory,
            "executorCores": self.executor_cores,
            "numExecutors": self.num_executors,
            "queue": self.queue,
            "name": self.name,
            "proxyUser": self.proxy_user,
            "conf": dict(self.conf),
        }
        return {k: v for k, v in payload.items() if v not in (None, [], {})}


@dataclass(frozen=True)
class BatchResponse:
    """Snapshot of a Livy batch as returned by submit and status calls."""

    id: int
    state: str | None = None
    app_id: str | None = None
    app_info: Mapping[str, Any] = field(default_factory=dict)
    log: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any, response: HttpResponse) -> "BatchResponse":
        """Build a batch snapshot, raising MalformedResponse on a bad shape."""
        data = _mapping(payload, response, "batch")
        batch_id = data.get("id")
        if isinstance(batch_id, bool) or not isinstance(batch_id, int):
            raise MalformedResponse("Batch response has no numeric id", url=response.url, body=response.body)
        state = data.get("state")
        return cls(
            id=batch_id,
            state=str(state) if state is not None else None,
            app_id=data.get("appId") or None,
            app_info=data.get("appInfo") or {},
            log=tuple(data.get("log") or ()),
        )

    @classmethod
    def from_response(cls, response: HttpResponse) -> "BatchResponse":
        return cls.from_payload(response.json(), response)


@dataclass(frozen=True)
class BatchLog:
    """One page of a batch log."""

    offset: int
    lines: tuple[str, ...]
    total: int | None = None

    @classmethod
    def from_response(cls, response: HttpResponse) -> "BatchLog":
        data = _mapping(response.json(), response, "log")
        lines = data.get("log")
        if lines is None:
            lines = []
        if not isinstance(lines, list):
            raise MalformedResponse("Bad log response", url=response.url, body=response.body)
        return cls(
            offset=int(data.get("from") or 0),
            lines=tuple(str(line) for line in lines),
            total=data.get("total"),
        )


@dataclass(frozen=True)
class YarnApplication:
    """
    Resource-manager view of an application.

    Attributes:
        app_id: YARN application id.
        am_host_http_address: ``host:port`` of the application master.
        diagnostics: Diagnostics text reported by the RM.
        log_aggregation_status: Log aggregation status (SUCCEEDED, RUNNING, ...).
        finished: Whether the application has finished.
    """

    app_id: str
    am_host_http_address: str | None
    diagnostics: str
    log_aggregation_status: str
    finished: bool

    @classmethod
    def from_response(cls, response: HttpResponse) -> "YarnApplication":
        data = _mapping(response.json(), response, "application")
        app = _mapping(data.get("app"), response, "application")
        finished = app.get("finished")
        if finished is None:
            finished = str(app.get("state") or "").upper() in _FINISHED_APP_STATES
        return cls(
            app_id=str(app.get("id") or ""),
            am_host_http_address=app.get("amHostHttpAddress"),
            diagnostics=str(app.get("diagnostics") or ""),
            log_aggregation_status=str(app.get("logAggregationStatus") or ""),
            finished=bool(finished),
        )


@dataclass(frozen=True)
class AppAttempt:
    """One attempt of a YARN application."""

    id: int
    app_attempt_id: str
    logs_link: str | None = None
    container_id: str | None = None
    node_http_address: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AppAttempt":
        return cls(
            id=int(payload["id"]),
            app_attempt_id=str(payload["appAttemptId"]),
            logs_link=payload.get("logsLink"),
            container_id=payload.get("containerId"),
            node_http_address=payload.get("nodeHttpAddress"),
        )


def parse_app_attempts(response: HttpResponse) -> list[AppAttempt]:
    """Return all attempts listed in an ``/appattempts`` response."""
    data = _mapping(response.json(), response, "application attempts")
    attempts = data.get("appAttempts") or {}
    if not isinstance(attempts, Mapping):
        raise MalformedResponse("Bad application attempts response", url=response.url, body=response.body)
    try:
        return [AppAttempt.from_payload(item) for item in attempts.get("appAttempt") or []]
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponse(
            "Bad application attempt entry", url=response.url, body=response.body
        ) from exc


def parse_batch_list(response: HttpResponse) -> list[BatchResponse]:
    """Return the batches listed in a ``GET /batches`` response."""
    data = _mapping(response.json(), response, "batch list")
    return [BatchResponse.from_payload(item, response) for item in data.get("sessions") or []]
