"""Shared helpers for report rendering and artifact writing."""

from __future__ import annotations

import functools
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

logger = logging.getLogger(__name__)

RUN_STAMP_FORMAT = "%Y_%m_%d__%H_%M_%S"


# ---------------------------------------------------------------------------
# Cached Jinja environment
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_jinja_env() -> Environment:
    """Return a cached Jinja2 Environment configured for alert report templates."""
    template_dir = Path(__file__).parent / "templates"
    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    return env


def render_template(name: str, **context: Any) -> bytes:
    """Render a template fully in memory and return UTF-8 bytes."""
    return get_jinja_env().get_template(name).render(**context).encode("utf-8")


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc).replace(microsecond=0)


def generate_timestamps(now: datetime | None = None) -> dict[str, Any]:
    """Build the set of timestamp strings used by report commands."""
    now = (now or utc_now()).astimezone(timezone.utc)
    return {
        "run_stamp": now.strftime(RUN_STAMP_FORMAT),
        "report_date": now.strftime("%Y-%m-%d %H:%M:%S UTC"),
        "report_id": now.strftime("%Y%m%dT%H%M%SZ"),
    }


# ---------------------------------------------------------------------------
# Report writing
# ---------------------------------------------------------------------------


def write_atomic(path: Path, content: bytes) -> Path:
    """
    Write *content* to *path* via a temp file in the same directory and
    ``os.replace``, so readers never observe a truncated file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    logger.debug("Wrote %s (%d bytes)", path, len(content))
    return path
