"""Application context management for the CLI.

The context is the composition root: it builds the configuration, the
transport, the shared page cache and the page fetcher once per invocation
and hands them to the controllers it creates.
"""

from dataclasses import dataclass
from functools import partial

from livyops.cli.common.exits import die
from livyops.core.adapters.livyhttp import LivyHttpTransport
from livyops.core.adapters.yarnpages import YarnPageFetcher
from livyops.core.auth import AuthError, build_http_session, check_config
from livyops.core.batches import BatchJob
from livyops.core.config import LivyConfig
from livyops.core.models import BatchSubmission
from livyops.core.pages import PageCache
from livyops.core.retry import RetryPolicy
from livyops.core.sessions import InteractiveSession, SessionKind
from livyops.core.yarn import YarnAttemptResolver


@dataclass
class LivyAppContext:
    """Application context holding configuration and shared collaborators."""

    config: LivyConfig
    transport: LivyHttpTransport
    pages: YarnPageFetcher

    def _retry(self) -> RetryPolicy:
        return RetryPolicy(
            retries_max=self.config.retries_max,
            delay_seconds=self.config.delay_seconds,
        )

    def _resolver(self, retry: RetryPolicy) -> YarnAttemptResolver:
        return YarnAttemptResolver(
            self.config.batches_url,
            self.transport,
            self.pages,
            retry,
            rm_prefix=self.config.yarn_ui_prefix,
        )

    def new_batch(self, submission: BatchSubmission) -> BatchJob:
        """Return a controller for a batch that is about to be submitted."""
        retry = self._retry()
        return BatchJob(
            self.config.batches_url,
            submission,
            self.transport,
            resolver=self._resolver(retry),
            retry=retry,
        )

    def batch(self, batch_id: int) -> BatchJob:
        """Return a controller for an existing batch."""
        retry = self._retry()
        return BatchJob.attach(
            self.config.batches_url,
            batch_id,
            self.transport,
            resolver=self._resolver(retry),
            retry=retry,
        )

    def session(self, name: str, kind: SessionKind) -> InteractiveSession:
        return InteractiveSession(name, self.config.sessions_base_url, self.transport, kind)

    def existing_session(self, session_id: int) -> InteractiveSession:
        return InteractiveSession.attach(session_id, self.config.sessions_base_url, self.transport)


def build_context(
    *,
    url: str | None = None,
    retries_max: int | None = None,
    delay_seconds: float | None = None,
) -> LivyAppContext:
    """Build the application context from the environment and CLI overrides.

    Args:
        url: Livy URL overriding LIVYOPS_URL.
        retries_max: Polling attempts overriding LIVYOPS_RETRIES_MAX.
        delay_seconds: Polling delay overriding LIVYOPS_DELAY_SECONDS.

    Returns:
        LivyAppContext: Context with configured transport and page fetcher.
    """
    config = LivyConfig.from_env().with_overrides(
        url=url,
        retries_max=retries_max,
        delay_seconds=delay_seconds,
    )
    try:
        config = check_config(config)
    except AuthError as exc:
        die(str(exc), code=1)

    session_factory = partial(build_http_session, config)
    transport = LivyHttpTransport(session_factory, timeout=config.timeout)
    cache = PageCache(ttl_seconds=config.page_cache_ttl)
    pages = YarnPageFetcher(session_factory, cache, timeout=config.timeout)
    return LivyAppContext(config=config, transport=transport, pages=pages)
