import asyncio

import pytest

from livyops.core.errors import NoAttemptFound, ServiceExhausted, TransientTransportError
from livyops.core.models import AppAttempt
from livyops.core.pages import Cell, Page, Row, Table
from livyops.core.retry import RetryPolicy
from livyops.core.yarn import (
    ATTEMPT_PAGE_SETTLE_SECONDS,
    YarnAttemptResolver,
    is_attempt_past_launch,
    select_current_attempt,
)

BATCHES = "http://livy:8998/batches"
APP_ID = "application_1_0001"
ATTEMPTS = f"http://livy:8998/yarnui/ws/v1/cluster/apps/{APP_ID}/appattempts"
ATTEMPT_PAGE = "http://livy:8998/yarnui/hn/cluster/appattempt/appattempt_1_0001_000005"


class _Pages:
    def __init__(self, pages):
        self.pages = {url: list(answers) for url, answers in pages.items()}
        self.calls: list[tuple[str, bool]] = []

    async def fetch(self, url, *, refresh=False):
        self.calls.append((url, refresh))
        answers = self.pages[url]
        answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


def _attempt_page(state: str, containers=()) -> Page:
    info = Table(
        id=None,
        classes=("info",),
        rows=(
            Row((Cell("Application Attempt State:"), Cell(state))),
            Row((Cell("Started:"), Cell("Mon Oct 19 10:00:00 +0000 2026"))),
        ),
    )
    rows = tuple(
        Row(
            (
                Cell(container_id),
                Cell(f"http://{host}:30060", href=f"http://{host}:30060"),
                Cell("RUNNING"),
                Cell("logs", href=f"/yarnui/nm/node/containerlogs/{container_id}/livy"),
            )
        )
        for container_id, host in containers
    )
    return Page(url=ATTEMPT_PAGE, tables=(info, Table(id="containers", classes=(), rows=rows)))


def _log_page(container_id: str, text: str) -> tuple[str, Page]:
    url = f"http://livy:8998/yarnui/nm/node/containerlogs/{container_id}/livy"
    return url, Page(url=url, text=text)


def _attempts_body(*ids):
    return {
        "appAttempts": {
            "appAttempt": [
                {
                    "id": attempt_id,
                    "appAttemptId": f"appattempt_1_0001_{attempt_id:06d}",
                    "containerId": f"container_1_0001_{attempt_id:02d}_000001",
                    "nodeHttpAddress": "wn0.cluster:30060",
                    "logsLink": f"http://wn0.cluster:30060/node/containerlogs/container_{attempt_id}/livy",
                }
                for attempt_id in ids
            ]
        }
    }


def _resolver(transport, pages, clock, retries_max=3):
    retry = RetryPolicy(retries_max=retries_max, delay_seconds=2, clock=clock)
    return YarnAttemptResolver(BATCHES, transport, pages, retry)


def test_urls_resolve_against_gateway_root(make_transport, clock):
    resolver = _resolver(make_transport({}), _Pages({}), clock)

    assert resolver.application_url(APP_ID) == f"http://livy:8998/yarnui/ws/v1/cluster/apps/{APP_ID}"
    assert resolver.attempts_url(APP_ID) == ATTEMPTS


def test_custom_rm_prefix(make_transport, clock):
    resolver = YarnAttemptResolver(
        "https://gw.example.com/livy/batches",
        make_transport({}),
        _Pages({}),
        RetryPolicy(clock=clock),
        rm_prefix="rm/",
    )

    assert resolver.application_url(APP_ID) == f"https://gw.example.com/rm/ws/v1/cluster/apps/{APP_ID}"


def test_current_attempt_is_the_highest_id(make_transport, clock):
    transport = make_transport({("GET", ATTEMPTS): [(200, _attempts_body(3, 1, 5, 2))]})

    attempt = asyncio.run(_resolver(transport, _Pages({}), clock).resolve_current_attempt(APP_ID))

    assert attempt.id == 5
    assert attempt.app_attempt_id == "appattempt_1_0001_000005"


def test_no_attempt_found(make_transport, clock):
    transport = make_transport({("GET", ATTEMPTS): [(200, {"appAttempts": {"appAttempt": []}})]})

    with pytest.raises(NoAttemptFound, match=APP_ID):
        asyncio.run(_resolver(transport, _Pages({}), clock).resolve_current_attempt(APP_ID))


def test_attempts_are_retried_until_2xx(make_transport, clock):
    transport = make_transport({("GET", ATTEMPTS): [(502, "bad gateway"), (200, _attempts_body(1))]})

    attempt = asyncio.run(_resolver(transport, _Pages({}), clock).resolve_current_attempt(APP_ID))

    assert attempt.id == 1
    assert clock.sleeps == [2]


def test_select_current_attempt_of_nothing():
    assert select_current_attempt([]) is None


def test_containers_without_logs_are_skipped(make_transport, clock):
    log_a = _log_page("container_a", "Log Type: stderr ... INFO started")
    log_b = _log_page("container_b", "No logs available for container container_b")
    log_c = _log_page("container_c", "Log Type: stdout")
    pages = _Pages(
        {
            ATTEMPT_PAGE: [
                _attempt_page(
                    "RUNNING",
                    [("container_a", "wn1.cluster"), ("container_b", "wn2.cluster"), ("container_c", "wn3.cluster")],
                )
            ],
            log_a[0]: [log_a[1]],
            log_b[0]: [log_b[1]],
            log_c[0]: [log_c[1]],
        }
    )
    attempt = AppAttempt(id=5, app_attempt_id="appattempt_1_0001_000005")

    async def collect():
        resolver = _resolver(make_transport({}), pages, clock)
        return [container async for container in resolver.resolve_containers(attempt)]

    assert asyncio.run(collect()) == [("wn1.cluster", "container_a"), ("wn3.cluster", "container_c")]
    assert pages.calls[0] == (ATTEMPT_PAGE, True)


def test_container_with_unreachable_log_page_is_skipped(make_transport, clock):
    log_a = _log_page("container_a", "stderr")
    log_b = _log_page("container_b", "stderr")
    pages = _Pages(
        {
            ATTEMPT_PAGE: [_attempt_page("RUNNING", [("container_a", "wn1.cluster"), ("container_b", "wn2.cluster")])],
            log_a[0]: [TransientTransportError("timeout")],
            log_b[0]: [log_b[1]],
        }
    )
    attempt = AppAttempt(id=5, app_attempt_id="appattempt_1_0001_000005")

    async def collect():
        resolver = _resolver(make_transport({}), pages, clock)
        return [container async for container in resolver.resolve_containers(attempt)]

    assert asyncio.run(collect()) == [("wn2.cluster", "container_b")]


def test_attempt_page_is_reloaded_while_launched(make_transport, clock):
    pages = _Pages(
        {
            ATTEMPT_PAGE: [_attempt_page("LAUNCHED"), _attempt_page("RUNNING")],
        }
    )
    attempt = AppAttempt(id=5, app_attempt_id="appattempt_1_0001_000005")

    async def collect():
        resolver = _resolver(make_transport({}), pages, clock)
        return [container async for container in resolver.resolve_containers(attempt)]

    assert asyncio.run(collect()) == []
    assert pages.calls == [(ATTEMPT_PAGE, True), (ATTEMPT_PAGE, True)]
    assert clock.sleeps == [ATTEMPT_PAGE_SETTLE_SECONDS, 2, ATTEMPT_PAGE_SETTLE_SECONDS]


def test_attempt_page_stuck_in_launched_exhausts(make_transport, clock):
    pages = _Pages({ATTEMPT_PAGE: [_attempt_page("LAUNCHED")]})
    attempt = AppAttempt(id=5, app_attempt_id="appattempt_1_0001_000005")

    async def collect():
        resolver = _resolver(make_transport({}), pages, clock, retries_max=2)
        return [container async for container in resolver.resolve_containers(attempt)]

    with pytest.raises(ServiceExhausted, match="after 2 attempt"):
        asyncio.run(collect())


def test_is_attempt_past_launch_without_info_table():
    assert is_attempt_past_launch(Page(url=ATTEMPT_PAGE)) is False


def test_driver_log_url_goes_through_rm_prefix(make_transport, clock):
    resolver = _resolver(make_transport({}), _Pages({}), clock)
    attempt = AppAttempt(
        id=1,
        app_attempt_id="appattempt_1_0001_000001",
        logs_link="http://wn0.cluster:30060/node/containerlogs/container_1/livy",
    )

    assert resolver.driver_log_url(attempt) == (
        "http://livy:8998/yarnui/wn0.cluster/node/containerlogs/container_1/livy"
    )
    assert resolver.driver_log_url(AppAttempt(id=2, app_attempt_id="x")) is None
