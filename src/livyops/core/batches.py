"""Livy batch job lifecycle: submit, poll, kill, tail logs, await completion.

A BatchJob holds only the identity of a remote batch. Its state is never
cached: every accessor goes back to Livy, through the job's RetryPolicy
where the call is a poll.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import AsyncIterator

from livyops.core.errors import (
    ApplicationFinished,
    JobNotSubmitted,
    KillFailed,
    MalformedResponse,
    SubmissionRejected,
    TransientTransportError,
)
from livyops.core.models import BatchLog, BatchResponse, BatchSubmission, parse_batch_list
from livyops.core.retry import RetryPolicy
from livyops.core.transport import SubmissionTransport
from livyops.core.yarn import YarnAttemptResolver

LOGGER = logging.getLogger(__name__)

LOG_PAGE_SIZE = 128
COMPLETION_POLL_SECONDS = 1
# Livy reads the log page size as a 32-bit int
FULL_LOG_SIZE = 2**31 - 1

_HOST_PORT_RE = re.compile(r"(?P<host>[^:]+):(?P<port>\d+)")
_LOG_AGGREGATION_DONE = {"SUCCEEDED", "FAILED"}


class BatchJobState(str, Enum):
    """
    States a Livy batch can report.

    Values are matched case-insensitively against the remote state string.
    """

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    SUCCESS = "success"
    DEAD = "dead"
    KILLED = "killed"
    RECOVERING = "recovering"
    BUSY = "busy"
    IDLE = "idle"
    ERROR = "error"
    SHUTTING_DOWN = "shutting_down"

    @classmethod
    def parse(cls, value: str) -> "BatchJobState":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise MalformedResponse(f"Unknown batch state {value!r}") from exc

    @property
    def is_job_done(self) -> bool:
        return self in _JOB_DONE_STATES

    @property
    def is_pre_run(self) -> bool:
        return self in (BatchJobState.NOT_STARTED, BatchJobState.STARTING)


_JOB_DONE_STATES = {
    BatchJobState.SUCCESS,
    BatchJobState.DEAD,
    BatchJobState.KILLED,
    BatchJobState.ERROR,
}


class LogSeverity(str, Enum):
    """Severity tag attached to each line of a tailed log."""

    LOG = "log"
    ERROR = "error"


def parse_host(address: str | None) -> str | None:
    """Return the host of a ``host:port`` address, or None if it doesn't match."""
    if not address:
        return None
    match = _HOST_PORT_RE.fullmatch(address.strip())
    return match.group("host") if match else None


async def list_batches(transport: SubmissionTransport, connect_uri: str) -> list[BatchResponse]:
    """Return all batches known to the Livy server at ``connect_uri``."""
    url = connect_uri.rstrip("/")
    response = await transport.get(url)
    if not response.ok:
        raise MalformedResponse(f"Failed to list batches (code {response.code})", url=url, body=response.body)
    return parse_batch_list(response)


class BatchJob:
    """
    Controller for one Livy batch.

    Args:
        connect_uri: Livy batches URI, e.g. ``http://livy:8998/batches``.
        submission: Workload to submit.
        transport: Transport used for every request.
        resolver: Resolver for the YARN side; required for driver host,
            completion and container discovery.
        retry: Polling policy (retries_max / delay_seconds).
    """

    def __init__(
        self,
        connect_uri: str,
        submission: BatchSubmission | None,
        transport: SubmissionTransport,
        *,
        resolver: YarnAttemptResolver | None = None,
        retry: RetryPolicy | None = None,
    ):
        self.connect_uri = connect_uri.rstrip("/")
        self.submission = submission
        self.transport = transport
        self.resolver = resolver
        self.retry = retry or RetryPolicy()
        self._batch_id: int | None = None

    @classmethod
    def attach(
        cls,
        connect_uri: str,
        batch_id: int,
        transport: SubmissionTransport,
        *,
        resolver: YarnAttemptResolver | None = None,
        retry: RetryPolicy | None = None,
    ) -> "BatchJob":
        """Return a controller for a batch that was submitted elsewhere."""
        job = cls(connect_uri, None, transport, resolver=resolver, retry=retry)
        job._batch_id = batch_id
        return job

    @property
    def batch_id(self) -> int:
        if self._batch_id is None:
            raise JobNotSubmitted("Batch job has not been submitted yet")
        return self._batch_id

    @property
    def retries_max(self) -> int:
        return self.retry.retries_max

    @retries_max.setter
    def retries_max(self, value: int) -> None:
        self.retry.retries_max = value

    @property
    def delay_seconds(self) -> float:
        return self.retry.delay_seconds

    @delay_seconds.setter
    def delay_seconds(self, value: float) -> None:
        self.retry.delay_seconds = value

    @property
    def batch_url(self) -> str:
        return f"{self.connect_uri}/{self.batch_id}"

    def _require_resolver(self) -> YarnAttemptResolver:
        if self.resolver is None:
            raise RuntimeError("This operation needs a YarnAttemptResolver")
        return self.resolver

    async def submit(self) -> "BatchJob":
        """
        Submit the workload and remember the batch id.

        Submission is not retried: a blind retry could start the workload twice.

        Raises:
            SubmissionRejected: On a non-2xx answer or an unparseable body.
        """
        if self._batch_id is not None:
            raise ValueError(f"Batch job {self._batch_id} is already submitted")
        if self.submission is None:
            raise ValueError("No submission parameters to submit")

        response = await self.transport.post(self.connect_uri, self.submission.to_payload())
        if not response.ok:
            raise SubmissionRejected(
                "Failed to submit batch job",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        try:
            batch = BatchResponse.from_response(response)
        except MalformedResponse as exc:
            raise SubmissionRejected(
                "Bad batch job response",
                url=response.url,
                code=response.code,
                body=response.body,
            ) from exc

        self._batch_id = batch.id
        LOGGER.info("Submitted batch %d (state=%s)", batch.id, batch.state)
        return self

    async def kill(self) -> "BatchJob":
        """Delete the batch; codes up to 300 count as success."""
        response = await self.transport.delete(self.batch_url)
        if response.code > 300:
            raise KillFailed(
                f"Failed to kill batch {self.batch_id}",
                url=response.url,
                code=response.code,
                body=response.body,
            )
        LOGGER.info("Killed batch %d", self.batch_id)
        return self

    async def _fetch_status(self) -> BatchResponse | None:
        response = await self.transport.get(self.batch_url)
        if not response.ok:
            LOGGER.debug("GET %s returned %d", response.url, response.code)
            return None
        return BatchResponse.from_response(response)

    async def _poll_status(self, what: str) -> BatchResponse:
        async def attempt() -> BatchResponse | None:
            batch = await self._fetch_status()
            if batch is None or batch.state is None:
                return None
            return batch

        return await self.retry.execute(attempt, what=what)

    async def poll_state(self) -> str:
        """Return the remote state string of the batch."""
        batch = await self._poll_status("get job state")
        return batch.state

    async def resolve_application_id(self) -> str:
        """Return the YARN application id, retrying while it isn't allocated."""

        async def attempt() -> str | None:
            batch = await self._fetch_status()
            return batch.app_id if batch is not None else None

        return await self.retry.execute(attempt, what="get job application id")

    async def is_alive(self) -> bool:
        batch = await self._poll_status("detect job activity")
        return not BatchJobState.parse(batch.state).is_job_done

    async def get_driver_host(self) -> str:
        """
        Return the host running the driver (application master).

        Raises:
            ApplicationFinished: If the YARN application has already finished.
            MalformedResponse: If the AM address is not ``host:port``.
        """
        resolver = self._require_resolver()
        app_id = await self.resolve_application_id()
        app = await resolver.resolve_application(app_id)

        if app.finished:
            raise ApplicationFinished(f"The Livy batch {self.batch_id} on YARN is not running")

        host = parse_host(app.am_host_http_address)
        if host is None:
            raise MalformedResponse(
                f"Bad amHostHttpAddress {app.am_host_http_address!r}",
                url=resolver.application_url(app_id),
            )
        return host

    async def driver_log_url(self) -> str | None:
        """Return the driver log URL of the current attempt, under the RM UI prefix."""
        resolver = self._require_resolver()
        app_id = await self.resolve_application_id()
        attempt = await resolver.resolve_current_attempt(app_id)
        return resolver.driver_log_url(attempt)

    async def containers(self) -> AsyncIterator[tuple[str, str]]:
        """Yield ``(host, container_id)`` of the current attempt's containers."""
        resolver = self._require_resolver()
        app_id = await self.resolve_application_id()
        attempt = await resolver.resolve_current_attempt(app_id)
        async for container in resolver.resolve_containers(attempt):
            yield container

    def _log_url(self, start: int, size: int) -> str:
        return f"{self.batch_url}/log?from={start}&size={size}"

    async def full_log(self) -> list[str]:
        """Return the whole batch log in one request."""
        response = await self.transport.get(self._log_url(0, FULL_LOG_SIZE))
        if not response.ok:
            raise MalformedResponse(f"Failed to get log (code {response.code})", url=response.url, body=response.body)
        return list(BatchLog.from_response(response).lines)

    async def _still_submitting(self) -> bool:
        batch = await self._fetch_status()
        if batch is None or batch.state is None:
            return False
        return BatchJobState.parse(batch.state).is_pre_run and batch.app_id is None

    async def tail_log(self) -> AsyncIterator[tuple[LogSeverity, str]]:
        """
        Yield the batch log line by line, starting at offset 0.

        Pages of LOG_PAGE_SIZE lines are requested until an empty page comes
        back. An empty page only means "wait" while the batch is still being
        scheduled (pre-run state and no application id yet); otherwise the
        sequence ends. Transport failures are yielded as one ERROR entry.
        """
        start = 0

        while True:
            try:
                response = await self.transport.get(self._log_url(start, LOG_PAGE_SIZE))
            except TransientTransportError as exc:
                yield LogSeverity.ERROR, str(exc)
                return

            if not response.ok:
                yield LogSeverity.ERROR, f"Failed to get log from {response.url} (code {response.code})"
                return

            page = BatchLog.from_response(response)
            for line in page.lines:
                yield LogSeverity.LOG, line
            start += len(page.lines)

            if page.lines:
                continue

            try:
                submitting = await self._still_submitting()
            except TransientTransportError as exc:
                yield LogSeverity.ERROR, str(exc)
                return

            if not submitting:
                return
            await self.retry.clock.sleep(self.retry.delay_seconds)

    async def await_completion(self) -> tuple[BatchJobState, str]:
        """
        Wait until the batch is done and its logs are aggregated.

        The job is first polled until it reaches a terminal state, then the
        RM application is polled until log aggregation reports SUCCEEDED or
        FAILED. Both phases tick every COMPLETION_POLL_SECONDS.

        Returns:
            The terminal state and the RM diagnostics text.
        """
        clock = self.retry.clock

        while True:
            batch = await self._poll_status("get job state")
            state = BatchJobState.parse(batch.state)
            if state.is_job_done:
                break
            await clock.sleep(COMPLETION_POLL_SECONDS)

        LOGGER.info("Batch %d finished with state %s", self.batch_id, state.value)
        if batch.app_id is None:
            return state, ""

        resolver = self._require_resolver()
        while True:
            app = await resolver.resolve_application(batch.app_id)
            if app.log_aggregation_status.upper() in _LOG_AGGREGATION_DONE:
                return state, app.diagnostics
            LOGGER.debug("Log aggregation of %s is %s", batch.app_id, app.log_aggregation_status)
            await clock.sleep(COMPLETION_POLL_SECONDS)
