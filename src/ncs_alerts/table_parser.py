"""Tolerant parser for pipe-delimited text tables.

Fallback source for endpoints that can only be reached through CLI output
(``ncli``/``ncc`` style dumps), e.g.::

    | Severity  | Title            | Cluster | Created             |
    |-----------+------------------+---------+---------------------|
    | kCritical | Disk offline     | c1      | 2026-10-01 10:00:00 |
"""

import re
from typing import Any

from .csv_export import header_to_key

_SEPARATOR_RE = re.compile(r"^[\s|+\-=:]*$")


def _split_row(line: str) -> list[str]:
    text = line.strip()
    if text.startswith("|"):
        text = text[1:]
    if text.endswith("|"):
        text = text[:-1]
    return [cell.strip() for cell in text.split("|")]


def parse_pipe_table(text: str) -> list[dict[str, Any]]:
    """
    Parse a loosely formatted ``|`` table into a list of row mappings.

    The first row containing a ``|`` is the header. Separator rows are
    skipped, short rows are padded with empty strings and surplus cells are
    folded back into the last column. Lines without a ``|`` are ignored.
    """
    headers: list[str] | None = None
    rows: list[dict[str, Any]] = []

    for line in text.splitlines():
        if "|" not in line or _SEPARATOR_RE.match(line):
            continue
        cells = _split_row(line)
        if headers is None:
            headers = [header_to_key(c) or f"column_{i}" for i, c in enumerate(cells)]
            continue
        if not any(cells):
            continue
        if len(cells) > len(headers):
            cells = cells[: len(headers) - 1] + [" | ".join(cells[len(headers) - 1 :])]
        cells += [""] * (len(headers) - len(cells))
        rows.append(dict(zip(headers, cells)))

    return rows
