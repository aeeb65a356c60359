from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))


class VirtualClock:
    """Clock whose sleeps return at once and only advance a counter."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


class StubTransport:
    """
    Transport answering from canned routes.

    Each route maps ``(method, url)`` to a list of answers served in order;
    the last answer repeats. An answer is ``(code, body)`` or an exception.
    """

    def __init__(self, routes):
        self.routes = {key: list(answers) for key, answers in routes.items()}
        self.calls: list[tuple[str, str]] = []
        self.payloads: list[dict] = []

    def count(self, method: str, url: str) -> int:
        return self.calls.count((method, url))

    def _answer(self, method: str, url: str):
        from livyops.core.transport import HttpResponse

        self.calls.append((method, url))
        answers = self.routes.get((method, url))
        if not answers:
            raise AssertionError(f"unexpected request {method} {url}")
        answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if isinstance(answer, Exception):
            raise answer
        code, body = answer
        if not isinstance(body, str):
            body = json.dumps(body)
        return HttpResponse(url=url, code=code, body=body, content_type="application/json")

    async def get(self, url):
        return self._answer("GET", url)

    async def post(self, url, payload):
        self.payloads.append(dict(payload))
        return self._answer("POST", url)

    async def delete(self, url):
        return self._answer("DELETE", url)


@pytest.fixture
def make_transport():
    return StubTransport
