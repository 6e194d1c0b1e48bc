"""CSV companion export for alert reports."""

import csv
import io
import re
from typing import Any

ALERT_CSV_HEADERS = [
    "Group",
    "Endpoint",
    "Cluster",
    "Severity",
    "Title",
    "Message",
    "Category",
    "Entities",
    "Created",
    "Age",
]


def header_to_key(header: str) -> str:
    """Convert a display header to a snake_case dict key.

    >>> header_to_key("Last Updated")
    'last_updated'
    """
    return re.sub(r"\s+", "_", header.strip()).lower()


def _format_value(value: Any) -> str:
    """Normalize a cell value for CSV output."""
    if isinstance(value, list):
        return "; ".join(str(v) for v in value)
    text = str(value) if value is not None else ""
    return text.replace("\n", " ").replace("\r", "")


def render_csv(
    rows: list[dict[str, Any]],
    headers: list[str],
    key_map: dict[str, str] | None = None,
) -> str:
    """Render *rows* (list of dicts) as CSV text.

    Parameters
    ----------
    rows : list[dict]
        Data rows, written in the given order.
    headers : list[str]
        Column headers (display names).
    key_map : dict | None
        Optional ``{header: key}`` overrides.  Headers not present in
        *key_map* are auto-derived via :func:`header_to_key`.
    """
    k_map = dict(key_map) if key_map else {}
    resolved = {h: k_map.get(h, header_to_key(h)) for h in headers}

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_format_value(row.get(resolved[h], "")) for h in headers])
    return buf.getvalue()
