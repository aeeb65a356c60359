"""Questionary / prompt_toolkit styles for livyops prompts.

Batch selection uses the accent palette; destructive confirmations (kill)
share the same layout but render in red.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

_MUTED = "ansibrightblack"


def _prompt_style(accent: str, question: str) -> Style:
    return Style.from_dict(
        {
            "qmark": accent,
            "question": question,
            "answer": accent,
            "pointer": accent,
            "highlighted": accent,
            "selected": accent,
            "checkbox": _MUTED,
            "checkbox-selected": accent,
            "separator": _MUTED,
            "instruction": _MUTED,
            "disabled": _MUTED,
            "error": "bold ansired",
        }
    )


QUESTIONARY_STYLE_SELECT = _prompt_style("bold ansibrightgreen", "bold ansibrightcyan")

QUESTIONARY_STYLE_CONFIRM = _prompt_style("bold ansibrightred", "bold ansibrightred")
