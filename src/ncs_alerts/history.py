"""Historical index: scan published run directories and rebuild the master index.

Run directories are named ``<prefix>_YYYY_MM_DD__HH_MM_SS`` (UTC). That name
is the only record of when a run happened; the index is regenerated in full
from the directory listing every time and never patched in place.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from ._report_context import RUN_STAMP_FORMAT, render_template, utc_now, write_atomic
from .errors import UnparseableArtifactName
from .models import IndexEntry
from .view_models.history import build_index_view

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = "history_index.html.j2"

_STAMP_RE = r"(\d{4})_(\d{2})_(\d{2})__(\d{2})_(\d{2})_(\d{2})"


def format_run_dirname(prefix: str, when: datetime) -> str:
    return f"{prefix}_{when.astimezone(timezone.utc).strftime(RUN_STAMP_FORMAT)}"


def parse_run_dirname(name: str, prefix: str) -> datetime:
    """Return the UTC run time embedded in *name*; raise UnparseableArtifactName otherwise."""
    match = re.fullmatch(re.escape(prefix) + "_" + _STAMP_RE, name)
    if not match:
        raise UnparseableArtifactName(f"{name!r} does not match {prefix}_YYYY_MM_DD__HH_MM_SS")
    try:
        return datetime(*(int(g) for g in match.groups()), tzinfo=timezone.utc)
    except ValueError as exc:
        raise UnparseableArtifactName(f"{name!r} embeds an invalid timestamp ({exc})") from exc


def scan_runs(root: Path, *, prefix: str, report_name: str) -> list[IndexEntry]:
    """
    List run artifacts under *root*, most recent first.

    Directories whose name does not parse, or that hold no report file, are
    skipped with a warning. Plain files at the root (the index itself) are ignored.
    """
    if not root.is_dir():
        logger.warning("Artifacts directory not found: %s", root)
        return []

    entries: list[IndexEntry] = []
    for child in sorted(root.iterdir()):
        if not child.is_dir() or child.name.startswith("."):
            continue
        try:
            generated_at = parse_run_dirname(child.name, prefix)
        except UnparseableArtifactName as exc:
            logger.warning("Skipping artifact directory: %s", exc)
            continue
        if not (child / report_name).is_file():
            logger.warning("Skipping %s: no %s inside", child.name, report_name)
            continue
        entries.append(IndexEntry(name=child.name, generated_at=generated_at, href=f"{child.name}/{report_name}"))

    entries.sort(key=lambda e: (e.generated_at, e.name), reverse=True)
    return entries


def rebuild_index(
    root: Path,
    *,
    prefix: str = "alerts",
    report_name: str = "alert_report.html",
    generated_at: datetime | None = None,
) -> bytes:
    """Render the master index for every run currently on disk."""
    runs = scan_runs(root, prefix=prefix, report_name=report_name)
    view = build_index_view(runs, generated_at or utc_now())
    logger.info("Index covers %d run(s) across %d month(s)", len(runs), len(view["months"]))
    return render_template(INDEX_TEMPLATE, index_view=view)


def write_index(
    root: Path,
    *,
    prefix: str = "alerts",
    report_name: str = "alert_report.html",
    index_name: str = "index.html",
    generated_at: datetime | None = None,
) -> Path:
    content = rebuild_index(root, prefix=prefix, report_name=report_name, generated_at=generated_at)
    return write_atomic(root / index_name, content)
