"""Time-range metrics client."""

from crema_client.cache.client import CremaClient, Mode, build_entity_query, parse_mode
from crema_client.cache.memory import CacheEntry, MemoryCache
from crema_client.cache.schemas import (
    MetricsRecord,
    PeriodRecordSchema,
    SnapshotSchema,
)

__all__ = [
    "CremaClient",
    "Mode",
    "parse_mode",
    "build_entity_query",
    "CacheEntry",
    "MemoryCache",
    "SnapshotSchema",
    "PeriodRecordSchema",
    "MetricsRecord",
]
