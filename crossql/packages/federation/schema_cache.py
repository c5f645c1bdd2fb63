from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ValidationError

from crossql.packages.common.crossql_common.errors.application_errors import InvalidRequest
from crossql.packages.federation.models.plans import QuerySource

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 24 * 60 * 60

SchemaMap = dict[str, list[str]]


class SchemaCacheEntry(BaseModel):
    data: SchemaMap
    cached_at: float
    expires_at: float

    @property
    def table_count(self) -> int:
        return sum(len(tables) for tables in self.data.values())


class SchemaCacheInfo(BaseModel):
    exists: bool
    expired: bool = False
    cached_at: str | None = None
    expires_at: str | None = None
    age: str | None = None
    table_count: int | None = None


def format_age(seconds: float) -> str:
    seconds = max(int(seconds), 0)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d {hours % 24}h ago"
    if hours > 0:
        return f"{hours}h {minutes % 60}m ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return f"{seconds}s ago"


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class SchemaCache:
    """File-backed snapshot of each backend's schema -> tables map, one JSON file per source."""

    def __init__(
        self,
        *,
        base_dir: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_dir = Path(base_dir)
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def get(self, source: QuerySource) -> SchemaMap | None:
        entry = self._read(source)
        if entry is None:
            return None
        now = self._clock()
        if now > entry.expires_at:
            logger.info("Schema cache expired for %s (cached at %s)", source.value, _isoformat(entry.cached_at))
            return None
        logger.info(
            "Schema cache hit for %s (tables=%s age=%s)",
            source.value,
            entry.table_count,
            format_age(now - entry.cached_at),
        )
        return entry.data

    def set(self, source: QuerySource, data: SchemaMap) -> None:
        now = self._clock()
        entry = SchemaCacheEntry(data=data, cached_at=now, expires_at=now + self._ttl_seconds)
        path = self._path(source)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to write schema cache for %s: %s", source.value, exc)
            return
        logger.info(
            "Schema cached for %s (tables=%s expires_at=%s)",
            source.value,
            entry.table_count,
            _isoformat(entry.expires_at),
        )

    def clear(self, source: QuerySource) -> bool:
        path = self._path(source)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to clear schema cache for %s: %s", source.value, exc)
            return False
        logger.info("Schema cache cleared for %s", source.value)
        return True

    def clear_all(self) -> dict[str, bool]:
        return {source.value: self.clear(source) for source in (QuerySource.WAREHOUSE, QuerySource.TRANSACTIONAL)}

    def info(self, source: QuerySource) -> SchemaCacheInfo:
        entry = self._read(source)
        if entry is None:
            return SchemaCacheInfo(exists=False)
        now = self._clock()
        return SchemaCacheInfo(
            exists=True,
            expired=now > entry.expires_at,
            cached_at=_isoformat(entry.cached_at),
            expires_at=_isoformat(entry.expires_at),
            age=format_age(now - entry.cached_at),
            table_count=entry.table_count,
        )

    def _read(self, source: QuerySource) -> SchemaCacheEntry | None:
        path = self._path(source)
        if not path.exists():
            return None
        try:
            return SchemaCacheEntry.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to read schema cache for %s: %s", source.value, exc)
            return None

    def _path(self, source: QuerySource) -> Path:
        if source == QuerySource.CROSS:
            raise InvalidRequest("Schema snapshots are kept per backend, not for cross-source queries.")
        return self._base_dir / f"{source.value}-schema.json"
