"""Time-range metrics client.

In ``cache`` mode every read goes through the consolidated snapshot file on the
static host; in ``live`` mode requests go straight to the query API.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from crema_client.base import BaseClient
from crema_client.cache.memory import CREMA_KEY, MemoryCache, metrics_key
from crema_client.cache.schemas import MetricsRecord, PeriodRecordSchema, SnapshotSchema
from crema_client.crypto import decrypt_document, is_encrypted
from crema_client.errors import (
    ConfigurationError,
    CremaDataAbsentError,
    DecryptionError,
    FetchError,
    InvalidSnapshotError,
    PeriodNotFoundError,
)
from crema_client.paths import PathResolver
from crema_client.periods import BROADEST_PERIOD, resolve_period
from crema_client.secret import SecretProvider
from settings import API_URL, CACHE_DIR, CACHE_TTL, MODE, SNAPSHOT_FILE, STATIC_URL

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store", "Pragma": "no-cache"}


class Mode(StrEnum):
    """Where metrics are read from."""

    CACHE = "cache"
    LIVE = "live"


def parse_mode(mode: str | Mode) -> Mode:
    try:
        return Mode(mode)
    except ValueError:
        raise ConfigurationError(f"Invalid mode: {mode!r}. Must be 'cache' or 'live'") from None


def build_entity_query(entity_type: str, filters: Mapping[str, Any] | None = None) -> str:
    """Query string selecting entities of one data type."""
    filters = filters or {}
    query = f"data_type={entity_type}"

    date_range = filters.get("date_range")
    if date_range:
        query += f" AND date >= {date_range['start']} AND date <= {date_range['end']}"
    if filters.get("amount_min"):
        query += f" AND amount >= {filters['amount_min']}"
    if filters.get("amount_max"):
        query += f" AND amount <= {filters['amount_max']}"

    return query


class CremaClient(BaseClient):
    """Metrics and discovery data for one tenant."""

    def __init__(
        self,
        tenant_id: str,
        api_url: str = API_URL,
        static_url: str = STATIC_URL,
        cache_dir: str = CACHE_DIR,
        snapshot_file: str = SNAPSHOT_FILE,
        page_path: str | None = None,
        base_path: str | None = None,
        mode: str | Mode = MODE,
        cache_ttl: float = CACHE_TTL,
        validate_remote: bool = True,
        secret_provider: SecretProvider | None = None,
        fallbacks: Mapping[str, Iterable[str]] | None = None,
        broadest: str = BROADEST_PERIOD,
        clock: Callable[[], float] = time.time,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.tenant_id = tenant_id
        self.api_url = api_url.rstrip("/")
        self.static_url = static_url
        self.page_path = page_path
        self.mode = parse_mode(mode)
        self.validate_remote = validate_remote
        self.secret_provider = secret_provider or SecretProvider()
        self.fallbacks = fallbacks
        self.broadest = broadest
        self._clock = clock
        self._cache = MemoryCache(cache_ttl, clock)
        self._resolver = PathResolver(cache_dir, snapshot_file, base_path, tenant_id)
        logger.info("CremaClient: tenant={}, mode={}", tenant_id, self.mode)

    @property
    def snapshot_url(self) -> str:
        return self._resolver.resolve_url(self.static_url, self.page_path)

    def _headers(self) -> dict[str, str]:
        return {"X-Tenant-ID": self.tenant_id}

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise InvalidSnapshotError(f"Response from {resp.request.url} is not valid JSON") from e

    # ========== Metrics ==========

    async def get_metrics(self, period: str = "this_year") -> dict[str, Any]:
        """Metrics mapping for a reporting period."""
        if self.mode is Mode.CACHE:
            record = await self._get_record_from_cache(period)
            return record.metrics
        return await self._fetch_metrics_live(period)

    async def get_record(self, period: str = "this_year") -> MetricsRecord:
        """Full period record, including the snapshot header."""
        if self.mode is Mode.CACHE:
            return await self._get_record_from_cache(period)
        metrics = await self._fetch_metrics_live(period)
        return MetricsRecord(tenant_id=self.tenant_id, time_range=period, resolved_range=period, metrics=metrics)

    async def _get_record_from_cache(self, period: str) -> MetricsRecord:
        key = metrics_key(period)
        await self._drop_if_remote_newer(key)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        snapshot = await self._load_snapshot()
        record = self._extract_record(snapshot, period)
        # Keyed by the requested period, not the one that satisfied it
        self._cache.set(key, record)
        return record

    def _extract_record(self, snapshot: SnapshotSchema, period: str) -> MetricsRecord:
        resolved = resolve_period(period, snapshot.metrics, self.fallbacks, self.broadest)
        if resolved is None:
            raise PeriodNotFoundError(period, list(snapshot.metrics))

        try:
            record = PeriodRecordSchema.model_validate(snapshot.metrics[resolved])
        except ValidationError as e:
            raise InvalidSnapshotError(f"Cache file missing or invalid for time range: {resolved}") from e

        return MetricsRecord(
            tenant_id=snapshot.tenant_id,
            time_range=period,
            resolved_range=resolved,
            business_type=snapshot.business_type,
            date_range=record.date_range,
            timestamp=record.timestamp,
            cached_at=snapshot.cached_at,
            cache_version=snapshot.cache_version,
            metrics=record.metrics,
            source_targets=record.source_targets if record.source_targets is not None else snapshot.source_targets,
            all_metrics_data=record.all_metrics_data,
        )

    async def _fetch_metrics_live(self, period: str) -> dict[str, Any]:
        """GET /api/metrics?time_range=<period>."""
        resp = await self._get(
            f"{self.api_url}/api/metrics",
            params={"time_range": period},
            headers=self._headers(),
        )
        data = self._json(resp)
        metrics = data.get("metrics") if isinstance(data, dict) else None
        if metrics is None and isinstance(data, dict) and isinstance(data.get("data"), dict):
            metrics = data["data"].get("metrics")
        if metrics is None:
            raise InvalidSnapshotError(f"No metrics in live response for time range: {period}")
        return metrics

    # ========== Snapshot ==========

    async def _load_snapshot(self) -> SnapshotSchema:
        """Fetch, decrypt and validate the consolidated snapshot."""
        url = self.snapshot_url
        resp = await self._get(
            url,
            params={"t": int(self._clock() * 1000)},
            headers=NO_CACHE_HEADERS,
        )
        raw = self._json(resp)
        if not isinstance(raw, dict):
            raise InvalidSnapshotError(f"Snapshot is not a JSON object: {url}")
        logger.debug("Snapshot loaded: {}", url)

        if is_encrypted(raw):
            secret = await self.secret_provider.acquire()
            if not secret:
                raise DecryptionError("Decryption key required but not provided")
            try:
                raw = await decrypt_document(raw, secret)
            except DecryptionError:
                self.secret_provider.forget()
                raise

        try:
            return SnapshotSchema.model_validate(raw)
        except ValidationError as e:
            raise InvalidSnapshotError(f"Snapshot has invalid structure: {url}") from e

    async def _remote_modified(self) -> float | None:
        """Last-Modified of the snapshot as a POSIX timestamp, if known."""
        try:
            resp = await self._head(self.snapshot_url, headers=NO_CACHE_HEADERS)
        except FetchError as e:
            logger.warning("Freshness check failed: {}", e)
            return None

        header = resp.headers.get("Last-Modified")
        if not header:
            logger.debug("No Last-Modified on snapshot")
            return None
        try:
            return parsedate_to_datetime(header).timestamp()
        except (TypeError, ValueError):
            logger.debug("Unparseable Last-Modified: {}", header)
            return None

    async def _drop_if_remote_newer(self, key: str) -> None:
        if not self.validate_remote or key not in self._cache:
            return
        if self._cache.is_stale_against(key, await self._remote_modified()):
            logger.info("Snapshot changed since {} was cached, reloading", key)
            self._cache.discard(key)

    # ========== Crema discovery ==========

    async def get_crema_data(self) -> dict[str, Any] | None:
        """Crema discovery data, or None when the snapshot has none."""
        if self.mode is Mode.LIVE:
            return await self._fetch_crema_live()

        await self._drop_if_remote_newer(CREMA_KEY)
        cached = self._cache.get(CREMA_KEY)
        if cached is not None:
            return cached

        snapshot = await self._load_snapshot()
        try:
            crema = self._extract_crema(snapshot)
        except CremaDataAbsentError as e:
            logger.warning("{}", e)
            return None

        self._cache.set(CREMA_KEY, crema)
        return crema

    @staticmethod
    def _extract_crema(snapshot: SnapshotSchema) -> dict[str, Any]:
        if not snapshot.crema:
            raise CremaDataAbsentError()
        return snapshot.crema

    async def _fetch_crema_live(self) -> dict[str, Any]:
        """GET /api/crema."""
        resp = await self._get(f"{self.api_url}/api/crema", headers=self._headers())
        data = self._json(resp)
        if isinstance(data, dict) and data.get("data"):
            return data["data"]
        return data

    async def get_sources(self) -> list:
        crema = await self.get_crema_data()
        return (crema or {}).get("sources") or []

    async def get_categories(self) -> list:
        crema = await self.get_crema_data()
        return (crema or {}).get("categories") or []

    async def get_data_types(self) -> list:
        crema = await self.get_crema_data()
        return (crema or {}).get("data_types") or []

    async def get_collection_stats(self) -> dict:
        crema = await self.get_crema_data()
        return (crema or {}).get("collectionStats") or {}

    # ========== Query API ==========

    async def get_entity_data(self, entity_type: str, filters: Mapping[str, Any] | None = None) -> list:
        """Entities of one data type (e.g. 'donation', 'invoice')."""
        return await self.search(build_entity_query(entity_type, filters))

    async def search(self, query: str, **options) -> list:
        """POST /api/query - raw query against the live API."""
        resp = await self._post(
            f"{self.api_url}/api/query",
            json={"query": query, **options},
            headers=self._headers(),
        )
        data = self._json(resp)
        if not isinstance(data, dict):
            return []
        if "results" in data:
            return data["results"] or []
        nested = data.get("data")
        if isinstance(nested, dict):
            return nested.get("results") or []
        return []

    # ========== Cache & mode ==========

    def is_cache_valid(self, period: str) -> bool:
        """Fresh in-memory entry exists for the period (cache mode only)."""
        if self.mode is not Mode.CACHE:
            return False
        return self._cache.is_fresh(metrics_key(period))

    def clear_cache(self) -> None:
        self._cache.clear()

    def set_mode(self, mode: str | Mode) -> None:
        """Switch mode; cached entries never carry over."""
        self.mode = parse_mode(mode)
        self.clear_cache()
        logger.info("Mode switched to {}", self.mode)

    def get_mode(self) -> Mode:
        return self.mode
