"""Fan out alert queries across all configured targets."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx

from .client import fetch_alerts
from .config import Credential, ReporterConfig, TargetConfig
from .models import EndpointResult
from .normalization import normalize_many
from .table_parser import parse_pipe_table

logger = logging.getLogger(__name__)


def load_table_target(target: TargetConfig) -> EndpointResult:
    """Read alerts for a target that only exposes a pipe-delimited text dump."""
    path = Path(str(target.table_file))
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        return EndpointResult(endpoint=target.endpoint, error=f"cannot read {path}: {exc}")
    records = parse_pipe_table(text)
    logger.info("Parsed %d rows for %s from %s", len(records), target.endpoint, path)
    return EndpointResult(
        endpoint=target.endpoint,
        alerts=normalize_many(records, target.endpoint),
        api_version_used="text-table",
    )


def _collect_target(
    target: TargetConfig,
    credential: Credential | None,
    config: ReporterConfig,
    transport: httpx.BaseTransport | None,
) -> EndpointResult:
    if target.table_file is not None:
        return load_table_target(target)
    return fetch_alerts(target.endpoint, credential, config, transport=transport)


def aggregate(
    targets: list[TargetConfig],
    credential: Credential | None,
    config: ReporterConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> list[EndpointResult]:
    """
    Query every target concurrently and return one result per target.

    The output order always mirrors *targets*, whatever order the requests
    complete in. A failure in one worker is recorded on that target only.
    """
    if not targets:
        return []

    workers = min(len(targets), config.max_workers)
    logger.info("Querying %d target(s) with %d worker(s)", len(targets), workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ncs-alerts") as pool:
        futures = [pool.submit(_collect_target, t, credential, config, transport) for t in targets]

        results: list[EndpointResult] = []
        for target, future in zip(targets, futures):
            try:
                result = future.result()
            except Exception as exc:
                logger.error("Failed to collect alerts from %s: %s", target.endpoint, exc)
                result = EndpointResult(endpoint=target.endpoint, error=f"{type(exc).__name__}: {exc}")
            results.append(result)

    for result in results:
        if result.failed:
            logger.warning("  %s: ERROR %s", result.endpoint, result.error)
        else:
            logger.info("  %s: %d alert(s) via %s", result.endpoint, len(result.alerts), result.api_version_used)
    return results
