from livyops.cli.tui import _MAX_STATE_WIDTH, _batch_choice_title
from livyops.core.models import BatchResponse


def test_batch_choice_title_aligns_columns():
    first = _batch_choice_title(BatchResponse(id=7, state="running", app_id="application_1_0001"))
    second = _batch_choice_title(BatchResponse(id=1234, state="dead", app_id="application_1_0002"))

    assert first.index("application_") == second.index("application_")
    assert first.lstrip().startswith("7")


def test_batch_choice_title_without_state_or_app():
    title = _batch_choice_title(BatchResponse(id=3))

    assert title.endswith("-")
    assert "application" not in title


def test_batch_choice_title_caps_state_width():
    title = _batch_choice_title(BatchResponse(id=3, state="x" * (_MAX_STATE_WIDTH + 4)))

    assert "x" * (_MAX_STATE_WIDTH + 1) not in title
