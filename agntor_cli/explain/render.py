"""Output sanitization and markdown-to-terminal rendering for explanations.

sanitize_output() turns raw subprocess stdout into plain text.
render_markdown() maps the small markdown subset reasoning tools emit onto
rich styles. Text with no markup renders unchanged.
"""

from __future__ import annotations

import re

from rich.text import Text

from agntor_cli.constants import USAGE_MARKERS

_ANSI_ESCAPE = re.compile(r"\x1B\[[0-9;]*[a-zA-Z]")
_HEADING = re.compile(r"^#{1,3}\s+")
_INLINE = re.compile(
    r"\*\*(?P<bold>[^*]+)\*\*"
    r"|`(?P<code>[^`]+)`"
    r"|(?<!\*)\*(?P<dim>[^*]+)\*(?!\*)"
)

HEADING_STYLE = "bold white"
BOLD_STYLE = "bold"
CODE_STYLE = "cyan"
DIM_STYLE = "dim"


def sanitize_output(raw: str) -> str:
    """Strip ANSI escapes and carriage returns, cut trailing usage statistics, trim."""
    cleaned = _ANSI_ESCAPE.sub("", raw).replace("\r", "")
    cut = len(cleaned)
    for marker in USAGE_MARKERS:
        idx = cleaned.find(marker)
        if idx != -1 and idx < cut:
            cut = idx
    return cleaned[:cut].strip()


def _render_line(line: str) -> Text:
    if _HEADING.match(line):
        return Text(_HEADING.sub("", line, count=1), style=HEADING_STYLE)

    rendered = Text()
    pos = 0
    for match in _INLINE.finditer(line):
        rendered.append(line[pos:match.start()])
        if match.group("bold") is not None:
            rendered.append(match.group("bold"), style=BOLD_STYLE)
        elif match.group("code") is not None:
            rendered.append(match.group("code"), style=CODE_STYLE)
        else:
            rendered.append(match.group("dim"), style=DIM_STYLE)
        pos = match.end()
    rendered.append(line[pos:])
    return rendered


def render_markdown(text: str) -> Text:
    """Render headings, bold, inline code and italics as terminal emphasis."""
    return Text("\n").join(_render_line(line) for line in text.split("\n"))
