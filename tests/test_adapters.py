import asyncio
from types import SimpleNamespace

import pytest
import requests

from livyops.core.adapters.livyhttp import LivyHttpTransport
from livyops.core.adapters.yarnpages import YarnPageFetcher
from livyops.core.errors import TransientTransportError
from livyops.core.pages import PageCache


class _FakeSession:
    def __init__(self, answer):
        self.answer = answer
        self.requests = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def _respond(self):
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer

    def request(self, method, url, json=None, timeout=None):
        self.requests.append((method, url, json, timeout))
        return self._respond()

    def get(self, url, timeout=None, headers=None):
        self.requests.append(("GET", url, None, timeout))
        return self._respond()


def _http(code, text, content_type="application/json"):
    return SimpleNamespace(status_code=code, text=text, headers={"Content-Type": content_type})


def test_transport_posts_json_and_closes_session():
    session = _FakeSession(_http(201, '{"id": 1}'))
    transport = LivyHttpTransport(lambda: session, timeout=5)

    response = asyncio.run(transport.post("http://livy:8998/batches", {"file": "a.jar"}))

    assert response.code == 201
    assert response.json() == {"id": 1}
    assert response.content_type == "application/json"
    assert session.requests == [("POST", "http://livy:8998/batches", {"file": "a.jar"}, 5)]
    assert session.closed


def test_transport_keeps_non_2xx_as_response():
    transport = LivyHttpTransport(lambda: _FakeSession(_http(404, "not found", "text/plain")))

    response = asyncio.run(transport.get("http://livy:8998/batches/9"))

    assert not response.ok
    assert response.body == "not found"


def test_transport_wraps_network_errors():
    transport = LivyHttpTransport(lambda: _FakeSession(requests.ConnectionError("refused")))

    with pytest.raises(TransientTransportError, match="DELETE http://livy:8998/batches/9 failed"):
        asyncio.run(transport.delete("http://livy:8998/batches/9"))


def test_page_fetcher_uses_cache_unless_refreshed():
    sessions = []

    def factory():
        session = _FakeSession(_http(200, "<table id='t'><tr><td>x</td></tr></table>", "text/html"))
        sessions.append(session)
        return session

    fetcher = YarnPageFetcher(factory, PageCache())

    async def scenario():
        first = await fetcher.fetch("http://rm/page")
        second = await fetcher.fetch("http://rm/page")
        third = await fetcher.fetch("http://rm/page", refresh=True)
        return first, second, third

    first, second, third = asyncio.run(scenario())

    assert first is second
    assert third is not first
    assert third.table("t").rows[0].cell(0).text == "x"
    assert len(sessions) == 2


def test_page_fetcher_non_2xx_is_transient():
    fetcher = YarnPageFetcher(lambda: _FakeSession(_http(503, "busy", "text/html")), PageCache())

    with pytest.raises(TransientTransportError, match="503"):
        asyncio.run(fetcher.fetch("http://rm/page"))
