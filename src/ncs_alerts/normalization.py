"""Map heterogeneous raw alert records onto the canonical Alert model.

Every API version names the same logical field differently, so each field is
read through an ordered list of candidate keys; the first present, non-empty
value wins. Dotted candidates reach into nested mappings
(``status.resources.severity`` for v3 records).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .date_utils import parse_timestamp
from .models import Alert
from .primitives import canonical_severity, is_blank, safe_list, unique_preserve_order

logger = logging.getLogger(__name__)

ID_KEYS = ("extId", "id", "alert_id", "uuid", "metadata.uuid")
SEVERITY_KEYS = ("severity", "alert_severity", "impact", "alert_level", "status.resources.severity")
TITLE_KEYS = ("title", "alert_title", "alertTitle", "name", "status.resources.title")
MESSAGE_KEYS = ("message", "default_msg", "description", "alert_message", "status.resources.default_msg")
CATEGORY_KEYS = (
    "category",
    "impactType",
    "impact_type",
    "classifications",
    "impactTypes",
    "impact_types",
    "alert_type",
    "status.resources.classification_list",
)
CLUSTER_KEYS = ("clusterName", "cluster_name", "originatingClusterName", "cluster", "cluster_name_list")
CREATED_KEYS = (
    "creationTime",
    "created_time_stamp_in_usecs",
    "createdTime",
    "created_at",
    "creation_time",
    "created",
    "status.resources.creation_time",
)
UPDATED_KEYS = (
    "lastUpdatedTime",
    "last_occurrence_time_stamp_in_usecs",
    "lastOccurrenceTime",
    "last_updated_time",
    "last_updated",
    "status.resources.last_update_time",
)
ENTITY_NAME_KEYS = ("entity_name", "affected_entity_name", "sourceEntity.name", "entity")
ENTITY_LIST_KEYS = (
    "affectedEntities",
    "affected_entities",
    "affected_entity_list",
    "status.resources.affected_entity_list",
)
CHILD_NAME_KEYS = ("name", "entity_name", "display_name")
CHILD_TYPE_KEYS = ("type", "entity_type", "entityType")

UNTITLED = "Untitled alert"

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z0-9_.\-]+)\}")
# Wrapper keys used by parameter values, e.g. {"string_value": "node-1"}.
_PARAM_VALUE_KEYS = ("value", "string_value", "stringValue", "int_value", "intValue", "bool_value", "double_value")


# ---------------------------------------------------------------------------
# Candidate-key lookup
# ---------------------------------------------------------------------------


def resolve_path(record: Mapping[str, Any], path: str) -> Any:
    """Walk a dot-separated path into nested mappings, returning None on miss."""
    obj: Any = record
    for segment in path.split("."):
        if isinstance(obj, Mapping):
            obj = obj.get(segment)
        else:
            return None
    return obj


def first_value(record: Mapping[str, Any], candidates: tuple[str, ...]) -> Any:
    for key in candidates:
        value = resolve_path(record, key)
        if not is_blank(value):
            return value
    return None


def _as_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(v).strip() for v in value if not is_blank(v)]
        return ", ".join(parts) or None
    return str(value).strip()


# ---------------------------------------------------------------------------
# Per-field extractors
# ---------------------------------------------------------------------------


def extract_severity(record: Mapping[str, Any]) -> tuple[str, str | None]:
    source = first_value(record, SEVERITY_KEYS)
    severity, stripped = canonical_severity(source)
    if stripped:
        logger.info("Stripped spurious prefix from severity %r", source)
    return severity, (str(source) if source is not None else None)


def _param_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        for key in _PARAM_VALUE_KEYS:
            if key in value:
                return _param_value(value[key])
        return None
    return value


def message_parameters(record: Mapping[str, Any]) -> dict[str, str]:
    """
    Collect template parameters from the three known shapes:
    parallel ``context_types``/``context_values`` lists, a ``parameters``
    mapping, or a ``parameters`` list of ``{paramName, paramValue}``.
    """
    params: dict[str, str] = {}

    types = safe_list(record.get("context_types"))
    values = safe_list(record.get("context_values"))
    for name, value in zip(types, values):
        if name is not None and value is not None:
            params[str(name)] = str(value)

    raw_params = record.get("parameters")
    if raw_params is None:
        raw_params = resolve_path(record, "status.resources.parameters")
    if isinstance(raw_params, Mapping):
        for name, value in raw_params.items():
            unwrapped = _param_value(value)
            if unwrapped is not None:
                params[str(name)] = str(unwrapped)
    else:
        for item in safe_list(raw_params):
            if not isinstance(item, Mapping):
                continue
            name = item.get("paramName") or item.get("name")
            unwrapped = _param_value(item.get("paramValue", item.get("value")))
            if name and unwrapped is not None:
                params[str(name)] = str(unwrapped)
    return params


def fill_template(template: str, params: Mapping[str, str]) -> str:
    """Replace ``{name}`` tokens with known parameters; unknown tokens stay verbatim."""
    if not params or "{" not in template:
        return template
    return _PLACEHOLDER_RE.sub(lambda m: params.get(m.group(1), m.group(0)), template)


def extract_message(record: Mapping[str, Any], params: Mapping[str, str]) -> str:
    raw = _as_text(first_value(record, MESSAGE_KEYS))
    return fill_template(raw, params) if raw else ""


def extract_title(record: Mapping[str, Any], message: str, params: Mapping[str, str]) -> str:
    raw = _as_text(first_value(record, TITLE_KEYS))
    if raw:
        return fill_template(raw, params)
    for line in message.splitlines():
        if line.strip():
            return line.strip()
    return UNTITLED


def extract_timestamp(record: Mapping[str, Any], candidates: tuple[str, ...]) -> datetime | None:
    for key in candidates:
        value = resolve_path(record, key)
        if is_blank(value):
            continue
        parsed = parse_timestamp(value)
        if parsed is not None:
            return parsed
    return None


def _child_name(child: Any) -> str | None:
    if isinstance(child, str):
        return child.strip() or None
    if isinstance(child, Mapping):
        return _as_text(first_value(child, CHILD_NAME_KEYS))
    return None


def _child_type(child: Any) -> str:
    if not isinstance(child, Mapping):
        return ""
    return str(first_value(child, CHILD_TYPE_KEYS) or "").lower()


def _entity_children(record: Mapping[str, Any]) -> list[Any]:
    children: list[Any] = []
    for key in ENTITY_LIST_KEYS:
        children.extend(safe_list(resolve_path(record, key)))
    return children


def extract_entities(record: Mapping[str, Any]) -> list[str]:
    single = _as_text(first_value(record, ENTITY_NAME_KEYS))
    if single:
        return [single]
    names = [name for name in (_child_name(c) for c in _entity_children(record)) if name]
    return unique_preserve_order(names)


def extract_cluster_name(record: Mapping[str, Any]) -> str | None:
    direct = first_value(record, CLUSTER_KEYS)
    if isinstance(direct, (list, tuple)):
        direct = next((v for v in direct if not is_blank(v)), None)
    if isinstance(direct, Mapping):
        direct = _child_name(direct)
    text = _as_text(direct)
    if text:
        return text
    for child in _entity_children(record):
        if _child_type(child) == "cluster":
            name = _child_name(child)
            if name:
                return name
    return None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def normalize(raw: Mapping[str, Any], endpoint: str) -> Alert:
    """Build an Alert from one raw API record. Pure apart from the endpoint tag."""
    record: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    params = message_parameters(record)
    message = extract_message(record, params)
    severity, source_severity = extract_severity(record)

    return Alert(
        id=_as_text(first_value(record, ID_KEYS)),
        endpoint=endpoint,
        cluster_name=extract_cluster_name(record),
        severity=severity,
        source_severity=source_severity,
        title=extract_title(record, message, params),
        message=message,
        category=_as_text(first_value(record, CATEGORY_KEYS)),
        entities=extract_entities(record),
        created_at=extract_timestamp(record, CREATED_KEYS),
        last_updated_at=extract_timestamp(record, UPDATED_KEYS),
        raw=dict(record),
    )


def normalize_many(records: list[Any], endpoint: str) -> list[Alert]:
    return [normalize(r, endpoint) for r in records if isinstance(r, Mapping)]
