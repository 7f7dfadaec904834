"""
Text layout for preview body content.

Content is laid out one run per non-empty line:

- `- item` becomes a bulleted run (marker stripped, drawn with a bullet glyph)
- `**text**` becomes a bold run (markers stripped)
- anything else is a plain run

Runs are stacked with a fixed line height at a single x origin. There is no
wrapping here; the compositor shortens lines that overflow the text column.
"""

from __future__ import annotations

import re
from typing import Iterator, Tuple

from og_preview.models.preview import TextRun


BULLET_MARKER = "- "
BOLD_MARKER = "**"

DEFAULT_ORIGIN_Y = 200
DEFAULT_LINE_HEIGHT = 44

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _is_bold(line: str) -> bool:
    return (
        len(line) > 2 * len(BOLD_MARKER)
        and line.startswith(BOLD_MARKER)
        and line.endswith(BOLD_MARKER)
    )


def iter_runs(
    content: str,
    origin_x: int,
    origin_y: int = DEFAULT_ORIGIN_Y,
    line_height: int = DEFAULT_LINE_HEIGHT,
) -> Iterator[TextRun]:
    """Lazily yield one `TextRun` per non-empty line of `content`, in input order."""
    line_index = 0
    for raw_line in _LINE_BREAK.split(content):
        line = raw_line.strip()
        if not line:
            continue

        bullet = False
        bold = False
        if line.startswith(BULLET_MARKER):
            bullet = True
            line = line[len(BULLET_MARKER) :].strip()
        elif _is_bold(line):
            bold = True
            line = line[len(BOLD_MARKER) : -len(BOLD_MARKER)].strip()

        if not line:
            continue

        yield TextRun(
            text=line,
            line_index=line_index,
            x=origin_x,
            y=origin_y + line_index * line_height,
            bold=bold,
            bullet=bullet,
        )
        line_index += 1


def layout_text(
    content: str,
    origin_x: int,
    origin_y: int = DEFAULT_ORIGIN_Y,
    line_height: int = DEFAULT_LINE_HEIGHT,
) -> Tuple[TextRun, ...]:
    """Materialized form of `iter_runs`."""
    return tuple(iter_runs(content, origin_x, origin_y=origin_y, line_height=line_height))
