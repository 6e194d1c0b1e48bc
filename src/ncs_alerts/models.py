"""Pydantic models for normalized alerts, per-endpoint results and report runs."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .primitives import Severity


class Alert(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    # Origin management endpoint; tagged on the fetch path, never inferred from the record.
    endpoint: str
    cluster_name: str | None = None
    severity: Severity = "OTHER"
    source_severity: str | None = None
    title: str
    message: str = ""
    category: str | None = None
    entities: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    last_updated_at: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class EndpointResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str
    alerts: list[Alert] = Field(default_factory=list)
    api_version_used: str | None = None
    filter_used: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class SeverityCounts(BaseModel):
    model_config = ConfigDict(extra="forbid")

    critical: int = 0
    warning: int = 0
    info: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warning + self.info + self.other

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    @classmethod
    def tally(cls, alerts: list[Alert]) -> SeverityCounts:
        counts = cls()
        for alert in alerts:
            field = alert.severity.lower()
            setattr(counts, field, getattr(counts, field) + 1)
        return counts


class TitleGroup(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    severity: Severity
    alerts: list[Alert] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.alerts)


class ClusterGroup(BaseModel):
    """Alerts for one endpoint (or one resolved cluster), ready for presentation."""

    model_config = ConfigDict(extra="forbid")

    key: str
    anchor: str
    endpoints: list[str] = Field(default_factory=list)
    error: str | None = None
    alerts: list[Alert] = Field(default_factory=list)
    counts: SeverityCounts = Field(default_factory=SeverityCounts)
    title_groups: list[TitleGroup] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.error is not None


class ReportRun(BaseModel):
    model_config = ConfigDict(extra="forbid")

    generated_at: datetime
    groups: list[ClusterGroup] = Field(default_factory=list)
    artifact_path: Path
    csv_path: Path | None = None
    index_path: Path | None = None


class IndexEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    generated_at: datetime
    href: str


class IndexMonth(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str
    label: str
    runs: list[IndexEntry] = Field(default_factory=list)
