"""Run driver: aggregate → summarize → render → write → rebuild index."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from ._report_context import generate_timestamps, utc_now, write_atomic
from .aggregation import aggregate
from .config import Credential, ReporterConfig, validate_run_config
from .errors import ArtifactExistsError
from .history import format_run_dirname, write_index
from .models import ReportRun
from .rendering import render_alerts_csv, render_run_report
from .summary import summarize

logger = logging.getLogger(__name__)


def run_pipeline(
    config: ReporterConfig,
    credential: Credential | None,
    *,
    now: datetime | None = None,
    transport: httpx.BaseTransport | None = None,
) -> ReportRun:
    """Execute one complete run and return the published ReportRun.

    Configuration problems raise ConfigurationError before any request is
    sent. Per-endpoint failures are carried into the report instead of
    aborting. Artifacts are rendered in memory and written atomically; the
    index is rebuilt only after the new artifact is in place.
    """
    root = validate_run_config(config, credential)
    generated_at = now or utc_now()
    stamps = generate_timestamps(generated_at)

    results = aggregate(config.targets, credential, config, transport=transport)
    groups = summarize(results, strategy=config.grouping)

    html = render_run_report(
        groups,
        generated_at,
        grouping=config.grouping,
        report_id=stamps["report_id"],
        run_stamp=stamps["run_stamp"],
        index_href=f"../{config.index_name}",
    )
    csv_bytes = render_alerts_csv(groups, generated_at) if config.write_csv else None

    run_dir = root / format_run_dirname(config.artifact_prefix, generated_at)
    try:
        run_dir.mkdir(parents=True, exist_ok=False)
    except FileExistsError as exc:
        raise ArtifactExistsError(f"Run directory already exists: {run_dir}") from exc

    csv_path = write_atomic(run_dir / config.csv_name, csv_bytes) if csv_bytes is not None else None
    # Report file last: the index only lists directories that contain it.
    artifact_path = write_atomic(run_dir / config.report_name, html)
    logger.info("Wrote run artifact %s", artifact_path)

    index_path = write_index(
        root,
        prefix=config.artifact_prefix,
        report_name=config.report_name,
        index_name=config.index_name,
    )
    logger.info("Rebuilt index %s", index_path)

    return ReportRun(
        generated_at=generated_at,
        groups=groups,
        artifact_path=artifact_path,
        csv_path=csv_path,
        index_path=index_path,
    )
