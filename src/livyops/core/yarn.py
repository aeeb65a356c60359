"""Resolution of YARN applications, attempts and containers.

Given an application id this module walks the resource manager: the REST
API for the application and its attempts, then the rendered attempt page
for containers whose logs are available.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator
from urllib.parse import urljoin, urlsplit

from livyops.core.errors import NoAttemptFound, TransientTransportError
from livyops.core.models import AppAttempt, YarnApplication, parse_app_attempts
from livyops.core.pages import Page, PageFetcher
from livyops.core.retry import RetryPolicy
from livyops.core.transport import SubmissionTransport

LOGGER = logging.getLogger(__name__)

DEFAULT_RM_PREFIX = "/yarnui"
ATTEMPT_PAGE_SETTLE_SECONDS = 3

_ATTEMPT_STATE_LABEL = "application attempt state:"
_NO_LOGS_MARKER = "no logs available"

# Column layout of the "containers" table on the attempt page
_CONTAINER_ID_COLUMN = 0
_CONTAINER_HOST_COLUMN = 1
_CONTAINER_LOGS_COLUMN = 3


def is_attempt_past_launch(page: Page) -> bool:
    """Return True once the attempt page reports a state other than LAUNCHED."""
    info = page.table("info")
    if info is None:
        return False
    for row in info.rows:
        label = row.cell(0)
        value = row.cell(1)
        if label is None or value is None:
            continue
        if label.text.strip().lower() == _ATTEMPT_STATE_LABEL:
            return value.text.strip().lower() != "launched"
    return False


def is_container_log_available(page: Page) -> bool:
    return _NO_LOGS_MARKER not in page.text.lower()


def select_current_attempt(attempts: list[AppAttempt]) -> AppAttempt | None:
    """Return the attempt with the highest id, or None for an empty list."""
    return max(attempts, key=lambda attempt: attempt.id, default=None)


class YarnAttemptResolver:
    """
    Walk from an application id to its attempts and containers.

    Args:
        connect_uri: Any URI on the cluster gateway (usually the Livy batches
            URI); RM paths are resolved against its root.
        transport: Transport used for the RM REST API.
        pages: Fetcher used for rendered RM UI pages.
        retry: Retry policy shared with the owning job.
        rm_prefix: Path prefix of the RM UI on the gateway.
    """

    def __init__(
        self,
        connect_uri: str,
        transport: SubmissionTransport,
        pages: PageFetcher,
        retry: RetryPolicy,
        *,
        rm_prefix: str = DEFAULT_RM_PREFIX,
        settle_seconds: float = ATTEMPT_PAGE_SETTLE_SECONDS,
    ):
        self.connect_uri = connect_uri
        self.transport = transport
        self.pages = pages
        self.retry = retry
        self.rm_prefix = "/" + rm_prefix.strip("/")
        self.settle_seconds = settle_seconds

    def _url(self, path: str) -> str:
        return urljoin(self.connect_uri, f"{self.rm_prefix}/{path.lstrip('/')}")

    def application_url(self, app_id: str) -> str:
        return self._url(f"ws/v1/cluster/apps/{app_id}")

    def attempts_url(self, app_id: str) -> str:
        return self._url(f"ws/v1/cluster/apps/{app_id}/appattempts")

    def attempt_page_url(self, attempt: AppAttempt) -> str:
        return self._url(f"hn/cluster/appattempt/{attempt.app_attempt_id}")

    async def resolve_application(self, app_id: str) -> YarnApplication:
        """Return the RM application, retrying until a 2xx answer arrives."""
        url = self.application_url(app_id)

        async def attempt() -> YarnApplication | None:
            response = await self.transport.get(url)
            if not response.ok:
                LOGGER.debug("GET %s returned %d", url, response.code)
                return None
            return YarnApplication.from_response(response)

        return await self.retry.execute(attempt, what=f"get YARN application {app_id}")

    async def resolve_current_attempt(self, app_id: str) -> AppAttempt:
        """
        Return the most recent attempt of an application.

        The RM does not flag an active attempt, so the attempt with the
        highest numeric id is taken.

        Raises:
            NoAttemptFound: If the application lists no attempts.
        """
        url = self.attempts_url(app_id)

        async def attempt() -> list[AppAttempt] | None:
            response = await self.transport.get(url)
            if not response.ok:
                LOGGER.debug("GET %s returned %d", url, response.code)
                return None
            return parse_app_attempts(response)

        attempts = await self.retry.execute(attempt, what=f"get attempts of {app_id}")
        current = select_current_attempt(attempts)
        if current is None:
            raise NoAttemptFound(f"No attempt found for application {app_id} at {url}")
        return current

    async def _load_attempt_page(self, attempt: AppAttempt) -> Page:
        url = self.attempt_page_url(attempt)

        async def load() -> Page | None:
            # The page renders before the attempt data is populated
            await self.retry.clock.sleep(self.settle_seconds)
            page = await self.pages.fetch(url, refresh=True)
            if not is_attempt_past_launch(page):
                LOGGER.debug("Attempt %s is not past LAUNCHED yet", attempt.app_attempt_id)
                return None
            return page

        return await self.retry.execute(load, what=f"load attempt page {url}")

    async def resolve_containers(self, attempt: AppAttempt) -> AsyncIterator[tuple[str, str]]:
        """
        Yield ``(host, container_id)`` for every container with available logs.

        Each row of the attempt page's containers table is probed by loading
        the container log page linked from it.
        """
        page = await self._load_attempt_page(attempt)
        containers = page.table("containers")
        if containers is None:
            return

        for row in containers.rows:
            id_cell = row.cell(_CONTAINER_ID_COLUMN)
            host_cell = row.cell(_CONTAINER_HOST_COLUMN)
            logs_cell = row.cell(_CONTAINER_LOGS_COLUMN)
            if id_cell is None or host_cell is None or logs_cell is None or not logs_cell.href:
                continue

            log_url = urljoin(self.connect_uri, logs_cell.href)
            try:
                log_page = await self.pages.fetch(log_url)
            except TransientTransportError as exc:
                LOGGER.debug("Skipping container %s: %s", id_cell.text.strip(), exc)
                continue

            if not is_container_log_available(log_page):
                continue

            host_text = host_cell.text.strip()
            host = urlsplit(host_text).hostname or host_text
            yield host, id_cell.text.strip()

    def driver_log_url(self, attempt: AppAttempt) -> str | None:
        """Rewrite an attempt's logs link so it goes through the RM UI prefix."""
        if not attempt.logs_link:
            return None
        link = urlsplit(attempt.logs_link)
        return self._url(f"{link.hostname}{link.path}")
