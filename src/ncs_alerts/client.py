"""Paginated, schema-tolerant alert queries against one management endpoint."""

from __future__ import annotations

import functools
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import ApiVariant, Credential, ReporterConfig
from .errors import EndpointUnreachable, MalformedResponse
from .models import EndpointResult
from .normalization import normalize_many

logger = logging.getLogger(__name__)

COLLECTION_KEYS = ("data", "entities", "alerts")
CURSOR_KEYS = ("nextCursor", "next_cursor")
TOTAL_KEYS = (
    "totalCount",
    "total_matches",
    "totalAvailableResults",
    "total_entities",
    "grand_total_entities",
    "totalEntities",
    "grandTotalEntities",
)


@dataclass
class Page:
    records: list[Any]
    total: int | None = None
    cursor: str | None = None
    has_cursor: bool = False


@dataclass
class FetchOutcome:
    records: list[Any] = field(default_factory=list)
    api_version: str | None = None
    filter_used: str | None = None


# ---------------------------------------------------------------------------
# Transport setup
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def _warn_insecure() -> None:
    logger.warning("TLS certificate validation is disabled; endpoint identities are not verified")


def tls_verify(config: ReporterConfig) -> bool | ssl.SSLContext:
    if not config.verify_tls:
        _warn_insecure()
        return False
    if config.ca_bundle:
        return ssl.create_default_context(cafile=config.ca_bundle)
    return True


def base_url(endpoint: str, port: int) -> str:
    """Build the API base URL; explicit schemes and ports on *endpoint* win."""
    if "://" in endpoint:
        return endpoint.rstrip("/")
    host = endpoint.strip().rstrip("/")
    if host.startswith("["):
        has_port = "]:" in host
    elif host.count(":") > 1:
        host = f"[{host}]"
        has_port = False
    else:
        has_port = host.count(":") == 1
    return f"https://{host}" if has_port else f"https://{host}:{port}"


def open_client(
    endpoint: str,
    credential: Credential | None,
    config: ReporterConfig,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    return httpx.Client(
        base_url=base_url(endpoint, config.port),
        auth=credential.as_auth() if credential is not None else None,
        verify=tls_verify(config),
        timeout=config.timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )


# ---------------------------------------------------------------------------
# Request / response shapes
# ---------------------------------------------------------------------------


def build_request(
    variant: ApiVariant,
    filter_expr: str,
    *,
    page_size: int,
    offset: int,
    page_index: int,
    cursor: str | None,
) -> dict[str, Any]:
    """Return ``httpx.Client.request`` keyword arguments for one page."""
    if variant.method == "POST":
        body: dict[str, Any] = dict(variant.body)
        body["filter"] = filter_expr
        body["length"] = page_size
        body["offset"] = offset
        if cursor is not None:
            body["cursor"] = cursor
        return {"method": "POST", "url": variant.path, "json": body}

    params: dict[str, Any] = {"$filter": filter_expr}
    if variant.paging == "page_limit":
        params["$page"] = page_index
        params["$limit"] = page_size
    else:
        params["$skip"] = offset
        params["$top"] = page_size
    if cursor is not None:
        params["$cursor"] = cursor
    return {"method": "GET", "url": variant.path, "params": params}


def parse_page(body: Any) -> Page:
    """
    Pull records and pagination state out of a response envelope.

    The pagination dialect is detected from the metadata shape: a cursor key
    means cursor paging, a total key means offset paging, neither means the
    response is the only page.
    """
    if not isinstance(body, dict):
        raise ValueError(f"expected a JSON object, got {type(body).__name__}")

    records = None
    for key in COLLECTION_KEYS:
        if isinstance(body.get(key), list):
            records = body[key]
            break
    if records is None:
        raise ValueError(f"no record collection found (looked for {', '.join(COLLECTION_KEYS)})")

    metadata = body.get("metadata")
    if not isinstance(metadata, dict):
        return Page(records=records)

    for key in CURSOR_KEYS:
        if key in metadata:
            cursor = metadata[key]
            return Page(records=records, cursor=str(cursor) if cursor else None, has_cursor=True)

    for key in TOTAL_KEYS:
        if metadata.get(key) is not None:
            try:
                return Page(records=records, total=int(metadata[key]))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"metadata.{key} is not an integer: {metadata[key]!r}") from exc
    return Page(records=records)


def _request_page(client: httpx.Client, request: dict[str, Any]) -> Page:
    response = client.request(**request)
    response.raise_for_status()
    try:
        body = response.json()
    except ValueError as exc:
        raise MalformedResponse(str(client.base_url), f"response body is not JSON ({exc})") from exc
    try:
        return parse_page(body)
    except ValueError as exc:
        raise MalformedResponse(str(client.base_url), str(exc)) from exc


def drain_pages(
    client: httpx.Client,
    variant: ApiVariant,
    filter_expr: str,
    *,
    page_size: int,
    max_pages: int,
) -> list[Any]:
    """Fetch every page for one (variant, filter) combination, strictly in sequence."""
    collected: list[Any] = []
    offset = 0
    page_index = 0
    cursor: str | None = None
    seen_cursors: set[str] = set()

    for _ in range(max_pages):
        request = build_request(
            variant, filter_expr, page_size=page_size, offset=offset, page_index=page_index, cursor=cursor
        )
        page = _request_page(client, request)

        # An empty page ends pagination whatever the metadata claims.
        if not page.records:
            return collected
        collected.extend(page.records)
        offset += len(page.records)
        page_index += 1

        if page.has_cursor:
            if page.cursor is None:
                return collected
            if page.cursor in seen_cursors:
                logger.warning("%s: cursor %r repeated; stopping pagination", client.base_url, page.cursor)
                return collected
            seen_cursors.add(page.cursor)
            cursor = page.cursor
        elif page.total is not None:
            if len(collected) >= page.total:
                return collected
        else:
            if len(page.records) >= page_size:
                logger.warning(
                    "%s: full page of %d records without pagination metadata; later pages may be missing",
                    client.base_url,
                    len(page.records),
                )
            return collected

    logger.warning(
        "%s: stopped after %d pages (%d records); server kept reporting more",
        client.base_url,
        max_pages,
        len(collected),
    )
    return collected


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def fetch_records(
    endpoint: str,
    credential: Credential | None,
    config: ReporterConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> FetchOutcome:
    """
    Try every (api version, filter) combination in priority order.

    Network, auth, HTTP status and parse failures move on to the next
    combination; raises EndpointUnreachable once all are exhausted.
    """
    last_error = "no API variants configured"
    with open_client(endpoint, credential, config, transport) as client:
        for variant in config.api_variants:
            for filter_expr in variant.filters:
                try:
                    records = drain_pages(
                        client,
                        variant,
                        filter_expr,
                        page_size=config.page_size,
                        max_pages=config.max_pages,
                    )
                except MalformedResponse as exc:
                    last_error = f"{variant.name} [{filter_expr}]: malformed response: {exc.message}"
                except httpx.HTTPStatusError as exc:
                    last_error = f"{variant.name} [{filter_expr}]: HTTP {exc.response.status_code}"
                except httpx.HTTPError as exc:
                    last_error = f"{variant.name} [{filter_expr}]: {type(exc).__name__}: {exc}"
                else:
                    logger.debug(
                        "%s: %d records via %s [%s]", endpoint, len(records), variant.name, filter_expr
                    )
                    return FetchOutcome(records=records, api_version=variant.name, filter_used=filter_expr)
                logger.debug("%s: %s", endpoint, last_error)

    raise EndpointUnreachable(endpoint, last_error)


def fetch_alerts(
    endpoint: str,
    credential: Credential | None,
    config: ReporterConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> EndpointResult:
    """Fetch and normalize unresolved alerts; failures land in ``EndpointResult.error``."""
    try:
        outcome = fetch_records(endpoint, credential, config, transport=transport)
    except EndpointUnreachable as exc:
        logger.warning("Endpoint %s unreachable: %s", endpoint, exc.message)
        return EndpointResult(endpoint=endpoint, error=exc.message)

    return EndpointResult(
        endpoint=endpoint,
        alerts=normalize_many(outcome.records, endpoint),
        api_version_used=outcome.api_version,
        filter_used=outcome.filter_used,
    )
