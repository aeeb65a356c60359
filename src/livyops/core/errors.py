"""Error taxonomy for Livy and YARN interactions.

Transient transport failures are absorbed by retry loops; every other error
propagates to the caller immediately. Cancellation is plain
``asyncio.CancelledError`` and is never wrapped in any of these types.
"""

from __future__ import annotations

_SNIPPET_LEN = 500


def snippet(body: str | None) -> str:
    """Return a response body trimmed for inclusion in error messages."""
    if not body:
        return ""
    body = body.strip()
    if len(body) <= _SNIPPET_LEN:
        return body
    return f"{body[:_SNIPPET_LEN]}..."


class LivyOpsError(RuntimeError):
    """Base class for all livyops errors."""


class TransientTransportError(LivyOpsError):
    """Raised on network-level failures that are worth retrying."""


class ServiceExhausted(LivyOpsError):
    """Raised when a retried operation never produced a value."""

    def __init__(self, what: str, attempts: int, last_error: Exception | None = None):
        self.what = what
        self.attempts = attempts
        self.last_error = last_error
        message = f"Failed to {what}: unknown service error after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message} (last error: {last_error})"
        super().__init__(message)


class RequestFailed(LivyOpsError):
    """Raised when the service answers with an unexpected status code."""

    def __init__(self, message: str, *, url: str, code: int, body: str | None = None):
        self.url = url
        self.code = code
        self.body = body
        super().__init__(f"{message} [{code} {url}] {snippet(body)}".rstrip())


class SubmissionRejected(RequestFailed):
    """Raised when a submission is refused or answered with garbage."""


class KillFailed(RequestFailed):
    """Raised when a DELETE is answered with a code above 300."""


class MalformedResponse(LivyOpsError):
    """Raised when a response body does not have the expected shape."""

    def __init__(self, message: str, *, url: str | None = None, body: str | None = None):
        self.url = url
        self.body = body
        location = f" from {url}" if url else ""
        super().__init__(f"{message}{location}: {snippet(body)}".rstrip(": "))


class JobNotSubmitted(LivyOpsError):
    """Raised when a batch id is read before the job was submitted."""


class ApplicationNotStarted(LivyOpsError):
    """Raised when no YARN application shows up before the deadline."""


class ApplicationFinished(LivyOpsError):
    """Raised when a running application was required but it has finished."""


class SessionNotStarted(LivyOpsError):
    """Raised when a session is used before creation or after it stopped."""

    def __init__(self, message: str, logs: tuple[str, ...] = ()):
        self.logs = logs
        super().__init__(message)


class NoAttemptFound(LivyOpsError):
    """Raised when an application has no attempts."""


class StatementExecutionError(LivyOpsError):
    """Raised when the remote interpreter reports a failed statement."""

    def __init__(self, ename: str | None, evalue: str | None, traceback: list[str] | None = None):
        self.ename = ename
        self.evalue = evalue
        self.traceback = list(traceback or [])
        super().__init__(f"{ename}: {evalue}")
