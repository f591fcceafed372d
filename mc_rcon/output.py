# mc_rcon/output.py
from __future__ import annotations

import json
import re
import sys
from datetime import datetime, timezone
from typing import Union

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText, to_plain_text
from prompt_toolkit.styles import Style

TEXT, JSON = "text", "json"
FORMATS = (TEXT, JSON)

STYLE = Style.from_dict(
    {
        "number": "#d7af00",
        "players": "#5faf00 bold",
        "error": "#ff5f5f",
        "info": "#5fafd7",
    }
)

_NUMBER = re.compile(r"\b\d+\b")
_PLAYERS = "players online:"

Rendered = Union[str, FormattedText]


class OutputFormatter:
    """Renders responses, errors and info lines as plain/colored text or JSON."""

    def __init__(self, fmt: str = TEXT, use_colors: bool = False):
        if fmt not in FORMATS:
            raise ValueError(f"unknown output format '{fmt}'")
        self.fmt = fmt
        self.use_colors = use_colors and fmt == TEXT

    def response(self, text: str) -> Rendered:
        if self.fmt == JSON:
            return _json("response", text)
        if not self.use_colors:
            return text
        return FormattedText(_highlight(text))

    def error(self, text: str) -> Rendered:
        if self.fmt == JSON:
            return _json("error", text)
        if not self.use_colors:
            return f"Error: {text}"
        return FormattedText([("class:error", f"Error: {text}")])

    def info(self, text: str) -> Rendered:
        if self.fmt == JSON:
            return _json("info", text)
        if not self.use_colors:
            return text
        return FormattedText([("class:info", text)])

    def emit(self, rendered: Rendered, err: bool = False) -> None:
        out = sys.stderr if err else sys.stdout
        if isinstance(rendered, str):
            print(rendered, file=out, flush=True)
        else:
            print_formatted_text(rendered, style=STYLE, file=out)


def plain(rendered: Rendered) -> str:
    return rendered if isinstance(rendered, str) else to_plain_text(rendered)


def use_colors(no_color: bool) -> bool:
    return not no_color and sys.stdout.isatty()


def _json(key: str, text: str) -> str:
    return json.dumps({key: text, "timestamp": datetime.now(timezone.utc).isoformat()})


def _highlight(text: str):
    frags = []
    for i, chunk in enumerate(text.split(_PLAYERS)):
        if i:
            frags.append(("class:players", _PLAYERS))
        pos = 0
        for m in _NUMBER.finditer(chunk):
            if m.start() > pos:
                frags.append(("", chunk[pos:m.start()]))
            frags.append(("class:number", m.group()))
            pos = m.end()
        if pos < len(chunk):
            frags.append(("", chunk[pos:]))
    return frags
