"""Configuration models and YAML loading for ncs_alerts."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

USERNAME_ENV = "NCS_ALERTS_USERNAME"
PASSWORD_ENV = "NCS_ALERTS_PASSWORD"


# ---------------------------------------------------------------------------
# API schema variants
# ---------------------------------------------------------------------------


class ApiVariant(BaseModel):
    """One known alert API shape, tried in priority order by the client.

    paging:
      skip_top      : GET query string ``$skip`` / ``$top``
      page_limit    : GET query string ``$page`` / ``$limit``
      offset_length : POST JSON body ``offset`` / ``length``
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    method: Literal["GET", "POST"] = "GET"
    path: str
    paging: Literal["skip_top", "page_limit", "offset_length"] = "skip_top"
    # Ordered "unresolved only" filter dialects for this version.
    filters: list[str] = Field(min_length=1)
    # Static JSON body members merged into every POST request.
    body: dict[str, Any] = Field(default_factory=dict)


DEFAULT_API_VARIANTS: list[dict[str, Any]] = [
    {
        "name": "v4.0",
        "method": "GET",
        "path": "/api/monitoring/v4.0/serviceability/alerts",
        "paging": "page_limit",
        "filters": ["isResolved eq false", "resolvedStatus eq 'UNRESOLVED'"],
    },
    {
        "name": "v3",
        "method": "POST",
        "path": "/api/nutanix/v3/alerts/list",
        "paging": "offset_length",
        "filters": ["resolved==false", "resolution_status.is_true==false"],
        "body": {"kind": "alert"},
    },
    {
        "name": "v2.0",
        "method": "GET",
        "path": "/PrismGateway/services/rest/v2.0/alerts",
        "paging": "skip_top",
        "filters": ["resolved eq false", "resolved==false"],
    },
    {
        "name": "v1",
        "method": "GET",
        "path": "/PrismGateway/services/rest/v1/alerts",
        "paging": "skip_top",
        "filters": ["resolved==false"],
    },
]


def default_api_variants() -> list[ApiVariant]:
    return [ApiVariant.model_validate(v) for v in DEFAULT_API_VARIANTS]


# ---------------------------------------------------------------------------
# Targets, credentials, reporter config
# ---------------------------------------------------------------------------


class TargetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str
    # Pipe-delimited text dump used when the endpoint has no structured API.
    table_file: str | None = None


class Credential(BaseModel):
    """Opaque Basic-auth material supplied by the caller."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    username: str
    password: SecretStr

    def as_auth(self) -> tuple[str, str]:
        return self.username, self.password.get_secret_value()


class ReporterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    targets: list[TargetConfig] = Field(default_factory=list)
    grouping: Literal["endpoint", "cluster"] = "endpoint"

    verify_tls: bool = True
    ca_bundle: str | None = None
    port: int = 9440
    timeout: float = 30.0
    page_size: int = Field(default=100, gt=0)
    max_pages: int = Field(default=500, gt=0)
    max_workers: int = Field(default=8, gt=0)

    output_root: str = "reports"
    artifact_prefix: str = "alerts"
    report_name: str = "alert_report.html"
    csv_name: str = "alerts.csv"
    index_name: str = "index.html"
    write_csv: bool = True

    api_variants: list[ApiVariant] = Field(default_factory=default_api_variants)

    @field_validator("targets", mode="before")
    @classmethod
    def _coerce_targets(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [{"endpoint": v} if isinstance(v, str) else v for v in value]

    @field_validator("artifact_prefix")
    @classmethod
    def _prefix_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("artifact_prefix must not be empty")
        return value.strip()


def load_config_yaml(path: str | os.PathLike[str] | None) -> dict[str, Any]:
    """Load an optional YAML config file into a mapping."""
    if not path:
        return {}
    cfg_path = Path(path)
    if not cfg_path.is_file():
        raise ConfigurationError(f"Config file not found: {cfg_path}")
    with open(cfg_path, encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid config file: {cfg_path} ({exc})") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid config file: {cfg_path} (expected YAML mapping)")
    logger.info("Loaded config from %s", cfg_path)
    return raw


def build_config(raw: dict[str, Any], **overrides: Any) -> ReporterConfig:
    """Validate *raw* with non-None *overrides* layered on top."""
    merged = dict(raw)
    for key, value in overrides.items():
        if value is None or value == ():
            continue
        merged[key] = list(value) if isinstance(value, tuple) else value
    try:
        return ReporterConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | os.PathLike[str] | None, **overrides: Any) -> ReporterConfig:
    return build_config(load_config_yaml(path), **overrides)


def resolve_credential(username: str | None, password: str | None) -> Credential | None:
    """Build a credential from explicit values, falling back to the environment."""
    user = username or os.environ.get(USERNAME_ENV)
    pw = password or os.environ.get(PASSWORD_ENV)
    if not user or not pw:
        return None
    return Credential(username=user, password=SecretStr(pw))


def validate_run_config(config: ReporterConfig, credential: Credential | None) -> Path:
    """
    Check everything a run needs before any network activity.
    Returns the output root, created if missing.
    """
    if not config.targets:
        raise ConfigurationError("No targets configured; at least one endpoint is required")
    needs_http = any(t.table_file is None for t in config.targets)
    if needs_http and credential is None:
        raise ConfigurationError(
            f"No credential supplied (use --username/--password or {USERNAME_ENV}/{PASSWORD_ENV})"
        )
    for target in config.targets:
        if target.table_file is not None and not Path(target.table_file).is_file():
            raise ConfigurationError(f"Table file for {target.endpoint} not found: {target.table_file}")
    if config.ca_bundle and not Path(config.ca_bundle).is_file():
        raise ConfigurationError(f"CA bundle not found: {config.ca_bundle}")

    root = Path(config.output_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Cannot create output directory {root}: {exc}") from exc
    if not os.access(root, os.W_OK):
        raise ConfigurationError(f"Output directory is not writable: {root}")
    return root
