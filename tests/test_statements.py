import asyncio

import pytest

from livyops.core.errors import MalformedResponse, RequestFailed, StatementExecutionError
from livyops.core.statements import Statement, StatementExecutor, StatementResult

SESSION = "http://livy:8998/sessions/3"
STATEMENTS = f"{SESSION}/statements"


def test_statement_payload():
    assert Statement("select 1").to_payload() == {"code": "select 1"}
    assert Statement("select 1", kind="sql").to_payload() == {"code": "select 1", "kind": "sql"}


def test_flat_result_is_returned_without_polling(make_transport, clock):
    transport = make_transport(
        {("POST", STATEMENTS): [(200, {"status": "ok", "execution_count": 4, "data": {"text/plain": "42"}})]}
    )

    result = asyncio.run(StatementExecutor(SESSION + "/", transport, clock).execute(Statement("6 * 7")))

    assert result.ok
    assert result.execution_count == 4
    assert result.data == {"text/plain": "42"}
    assert clock.sleeps == []


def test_statement_is_polled_until_output(make_transport, clock):
    transport = make_transport(
        {
            ("POST", STATEMENTS): [(201, {"id": 9, "state": "waiting"})],
            ("GET", f"{STATEMENTS}/9"): [
                (200, {"id": 9, "state": "running", "output": None}),
                (200, {"id": 9, "state": "available", "output": {"status": "ok", "data": {}}}),
            ],
        }
    )

    result = asyncio.run(StatementExecutor(SESSION, transport, clock, poll_seconds=0.5).execute(Statement("x")))

    assert result.ok
    assert clock.sleeps == [0.5, 0.5]
    assert transport.count("GET", f"{STATEMENTS}/9") == 2


def test_cancelled_statement_fails(make_transport, clock):
    transport = make_transport(
        {
            ("POST", STATEMENTS): [(201, {"id": 1, "state": "running"})],
            ("GET", f"{STATEMENTS}/1"): [(200, {"id": 1, "state": "cancelled"})],
        }
    )

    with pytest.raises(StatementExecutionError, match="cancelled") as info:
        asyncio.run(StatementExecutor(SESSION, transport, clock).execute(Statement("x")))

    assert info.value.ename == "StatementFailed"


def test_non_2xx_raises(make_transport, clock):
    transport = make_transport({("POST", STATEMENTS): [(409, "Session is busy")]})

    with pytest.raises(RequestFailed, match="Session is busy"):
        asyncio.run(StatementExecutor(SESSION, transport, clock).execute(Statement("x")))


def test_record_without_id_is_malformed(make_transport, clock):
    transport = make_transport({("POST", STATEMENTS): [(201, {"state": "waiting"})]})

    with pytest.raises(MalformedResponse):
        asyncio.run(StatementExecutor(SESSION, transport, clock).execute(Statement("x")))


def test_result_error_fields():
    from livyops.core.transport import HttpResponse

    response = HttpResponse(url=STATEMENTS, code=200)
    result = StatementResult.from_payload(
        {"status": "error", "ename": "ValueError", "evalue": "bad", "traceback": ["line 1"]}, response
    )

    assert not result.ok
    assert (result.ename, result.evalue, result.traceback) == ("ValueError", "bad", ("line 1",))


def test_cancelling_statement_is_polled_until_cancelled(make_transport, clock):
    transport = make_transport(
        {
            ("POST", STATEMENTS): [(201, {"id": 2, "state": "cancelling"})],
            ("GET", f"{STATEMENTS}/2"): [
                (200, {"id": 2, "state": "cancelling"}),
                (200, {"id": 2, "state": "cancelled"}),
            ],
        }
    )

    with pytest.raises(StatementExecutionError, match="state cancelled"):
        asyncio.run(StatementExecutor(SESSION, transport, clock).execute(Statement("x")))

    assert transport.count("GET", f"{STATEMENTS}/2") == 2
    assert clock.sleeps == [1, 1]
