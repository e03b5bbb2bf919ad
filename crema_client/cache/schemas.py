"""Snapshot schemas.

Header fields are passed through untyped; snapshot writers disagree on whether
ids and versions are strings or numbers.
"""

from typing import Any

from pydantic import BaseModel


class PeriodRecordSchema(BaseModel):
    """One reporting period inside ``metrics``."""

    date_range: Any = None
    timestamp: Any = None
    metrics: dict[str, Any]
    source_targets: Any = None
    all_metrics_data: Any = None


class SnapshotSchema(BaseModel):
    """Consolidated snapshot file (all periods plus discovery data), after decryption."""

    tenant_id: Any = None
    business_type: Any = None
    cached_at: Any = None
    cache_version: Any = None
    metrics: dict[str, Any] = {}
    crema: dict[str, Any] | None = None
    source_targets: Any = None


class MetricsRecord(BaseModel):
    """Period record joined with the snapshot header."""

    tenant_id: Any = None
    time_range: str
    resolved_range: str
    business_type: Any = None
    date_range: Any = None
    timestamp: Any = None
    cached_at: Any = None
    cache_version: Any = None
    metrics: dict[str, Any]
    source_targets: Any = None
    all_metrics_data: Any = None
