"""Reusable timestamp parsing and alert age helpers."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ISO_RE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2}:\d{2})")
_DIGITS_RE = re.compile(r"^\s*-?\d+\s*$")

AGE_UNDER_DAY = "< 24h"
AGE_MONTH = "1-30 days"
AGE_OLDER = "> 30 days"

AGE_CSS_CLASSES = {
    AGE_UNDER_DAY: "age-fresh",
    AGE_MONTH: "age-recent",
    AGE_OLDER: "age-stale",
}


def parse_epoch_usecs(raw: Any) -> datetime | None:
    """
    Interpret an integer (or all-digit string) as microseconds since the epoch.
    Returns an aware UTC datetime or None.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        if not _DIGITS_RE.match(raw):
            return None
        raw = int(raw)
    if not isinstance(raw, int):
        return None
    seconds, usecs = divmod(raw, 1_000_000)
    try:
        return EPOCH + timedelta(seconds=seconds, microseconds=usecs)
    except OverflowError:
        return None


def parse_iso(raw: Any) -> datetime | None:
    """
    Parse an ISO-ish string.
    Supports YYYY-MM-DDTHH:MM:SS, YYYY-MM-DD HH:MM:SS, fractions and offsets.
    Naive values are taken as UTC.
    """
    if not isinstance(raw, str):
        return None

    clean = raw.strip().replace(" ", "T", 1)
    if clean.endswith("Z"):
        clean = clean[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(clean)
    except ValueError:
        match = _ISO_RE.match(clean)
        if not match:
            return None
        try:
            dt = datetime.strptime(f"{match.group(1)} {match.group(2)}", "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(raw: Any) -> datetime | None:
    """Epoch microseconds first, then ISO-8601. Never raises."""
    return parse_epoch_usecs(raw) or parse_iso(raw)


def age_bucket(created_at: datetime | None, now: datetime) -> str | None:
    """
    Classify an alert age for triage.

    Lower bounds are inclusive: exactly 24h is ``1-30 days`` and exactly
    30 days is still ``1-30 days``. Timestamps in the future count as fresh.
    """
    if created_at is None:
        return None
    age = now - created_at
    if age < timedelta(hours=24):
        return AGE_UNDER_DAY
    if age <= timedelta(days=30):
        return AGE_MONTH
    return AGE_OLDER


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
