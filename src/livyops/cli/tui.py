"""Terminal UI utilities for livyops."""

from __future__ import annotations

import questionary

from livyops.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from livyops.core.models import BatchResponse

_MAX_STATE_WIDTH = 13


def _batch_choice_title(batch: BatchResponse) -> str:
    """Format one batch choice as `<id>  <state>  <app id>` with aligned columns."""
    state = (batch.state or "-")[:_MAX_STATE_WIDTH]
    return f"{str(batch.id).rjust(6)}  {state.ljust(_MAX_STATE_WIDTH)}  {batch.app_id or ''}".rstrip()


def select_batches(batches: list[BatchResponse]) -> list[BatchResponse]:
    """Display a checkbox prompt to select batches from a list.

    Args:
        batches: Batches to choose from.

    Returns:
        The selected batches, or an empty list if none selected.
    """
    choices = [
        questionary.Choice(title=_batch_choice_title(batch), value=batch)
        for batch in batches
    ]

    return (
        questionary.checkbox(
            "Select batches:",
            choices=choices,
            style=QUESTIONARY_STYLE_SELECT,
        ).ask()
        or []
    )
