"""Reusable coercion and severity primitives shared across the pipeline."""

import re
from typing import Any, Literal

Severity = Literal["CRITICAL", "WARNING", "INFO", "OTHER"]

SEVERITIES: tuple[Severity, ...] = ("CRITICAL", "WARNING", "INFO", "OTHER")

SEVERITY_RANK: dict[str, int] = {"CRITICAL": 0, "WARNING": 1, "INFO": 2, "OTHER": 3}

SEVERITY_LABELS: dict[str, str] = {
    "CRITICAL": "Critical",
    "WARNING": "Warning",
    "INFO": "Info",
    "OTHER": "Other",
}

_SEVERITY_VOCAB: dict[str, Severity] = {
    "CRITICAL": "CRITICAL",
    "WARNING": "WARNING",
    "WARN": "WARNING",
    "INFO": "INFO",
    "INFORMATIONAL": "INFO",
}

# Leading characters observed glued onto the real token by some API
# versions (e.g. "kCritical"). Only stripped when the remainder is known.
SPURIOUS_SEVERITY_PREFIXES = ("K",)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def safe_list(value: Any) -> list[Any]:
    if isinstance(value, (str, bytes, dict)):
        return []
    try:
        return list(value or [])
    except (TypeError, ValueError):
        return []


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def canonical_severity(value: Any) -> tuple[Severity, bool]:
    """
    Map a free-text severity token onto the canonical vocabulary.

    Returns ``(severity, prefix_stripped)``. Any input, including ``None`` or
    non-strings, yields one of the four canonical values.
    """
    if value is None or isinstance(value, (dict, list)):
        return "OTHER", False
    token = str(value).strip().upper()
    if token in _SEVERITY_VOCAB:
        return _SEVERITY_VOCAB[token], False
    if len(token) > 1 and token[0] in SPURIOUS_SEVERITY_PREFIXES and token[1:] in _SEVERITY_VOCAB:
        return _SEVERITY_VOCAB[token[1:]], True
    return "OTHER", False


def severity_rank(severity: Any) -> int:
    return SEVERITY_RANK.get(str(severity), len(SEVERITY_RANK))


def slugify(value: Any, prefix: str = "group") -> str:
    slug = _SLUG_RE.sub("-", str(value or "").lower()).strip("-")
    return f"{prefix}-{slug}" if slug else prefix


def unique_preserve_order(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out
