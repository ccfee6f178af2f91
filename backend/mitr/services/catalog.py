"""In-memory scheme catalog with TTL refresh and atomic snapshot swaps."""

from __future__ import annotations

import asyncio
import json
import math
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mitr.logging import get_logger
from mitr.models import RawScheme, Scheme, SchemeCategory
from mitr.services.context_assembler import CHARS_PER_TOKEN
from mitr.services.ranking import search_schemes
from mitr.services.scheme_processor import process_catalog

logger = get_logger("services.catalog")

CatalogLoader = Callable[[], Awaitable[list[RawScheme]]]


class CatalogLoadError(RuntimeError):
    """The raw catalog could not be read or has the wrong shape."""


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable processed catalog, swapped wholesale on refresh."""

    schemes: tuple[Scheme, ...]
    built_at: float
    _index: dict[str, Scheme] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(cls, schemes: Iterable[Scheme], built_at: float) -> "CatalogSnapshot":
        ordered = tuple(schemes)
        index: dict[str, Scheme] = {}
        for scheme in ordered:
            index.setdefault(scheme.id, scheme)
        return cls(schemes=ordered, built_at=built_at, _index=index)

    def __len__(self) -> int:
        return len(self.schemes)

    def get(self, scheme_id: str) -> Scheme | None:
        return self._index.get(scheme_id)

    def by_category(self, category: SchemeCategory | str) -> list[Scheme]:
        wanted = SchemeCategory(category)
        return [scheme for scheme in self.schemes if scheme.category == wanted]

    def by_audience(self, audience: str) -> list[Scheme]:
        needle = audience.lower()
        return [
            scheme
            for scheme in self.schemes
            if any(needle in entry.lower() for entry in scheme.target_audience)
        ]

    def search(self, query: str) -> list[Scheme]:
        return search_schemes(self.schemes, query)

    def token_estimate(self, schemes: Sequence[Scheme] | None = None, detailed: bool = False) -> int:
        selected = self.schemes if schemes is None else schemes
        chars = sum(
            len(scheme.detailed_context if detailed else scheme.minimal_context)
            for scheme in selected
        )
        return math.ceil(chars / CHARS_PER_TOKEN)


def parse_raw_catalog(payload: Any) -> list[RawScheme]:
    """
    Validate a decoded catalog document.

    Accepts either a list of records or an extraction dump object with a
    ``schemes`` list. Records that fail validation are skipped with a warning.
    """
    if isinstance(payload, dict):
        payload = payload.get("schemes")
    if not isinstance(payload, list):
        raise CatalogLoadError("Catalog must be a list of schemes or an object with a 'schemes' list")

    records: list[RawScheme] = []
    for position, item in enumerate(payload):
        try:
            records.append(RawScheme.model_validate(item))
        except ValidationError as exc:
            logger.warning("[CATALOG] skipping invalid record position=%d errors=%d", position, exc.error_count())
    return records


def _read_catalog_file(path: Path) -> list[RawScheme]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"Catalog file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"Catalog file is not valid JSON: {path}") from exc
    return parse_raw_catalog(payload)


def json_file_loader(path: str | Path) -> CatalogLoader:
    catalog_path = Path(path)

    async def load() -> list[RawScheme]:
        return await asyncio.to_thread(_read_catalog_file, catalog_path)

    return load


def static_loader(records: Iterable[RawScheme | dict[str, Any]]) -> CatalogLoader:
    """Loader over records already in memory."""
    raws = parse_raw_catalog([r.model_dump() if isinstance(r, RawScheme) else r for r in records])

    async def load() -> list[RawScheme]:
        return list(raws)

    return load


class CatalogCache:
    """Owns the processed catalog and rebuilds it when the TTL has elapsed."""

    def __init__(
        self,
        loader: CatalogLoader,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: CatalogSnapshot | None = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    def _is_fresh(self, snapshot: CatalogSnapshot | None) -> bool:
        return snapshot is not None and (self._clock() - snapshot.built_at) < self.ttl_seconds

    async def get(self) -> CatalogSnapshot:
        snapshot = self._snapshot
        if self._is_fresh(snapshot):
            return snapshot
        return await self.refresh()

    async def refresh(self, force: bool = False) -> CatalogSnapshot:
        """
        Rebuild the snapshot from the loader.

        Concurrent callers wait on one lock; whoever finds a fresh snapshot
        after acquiring it returns that instead of rebuilding. If a rebuild
        fails and an older snapshot exists it keeps serving, restamped so the
        next attempt waits a full TTL.
        """
        async with self._lock:
            current = self._snapshot
            if not force and self._is_fresh(current):
                return current

            started = time.perf_counter()
            try:
                raws = await self.loader()
                schemes = process_catalog(raws)
            except Exception:
                if current is None:
                    raise
                logger.exception("[CATALOG] refresh failed; keeping %d cached schemes", len(current))
                current = replace(current, built_at=self._clock())
                self._snapshot = current
                return current

            snapshot = CatalogSnapshot.build(schemes, built_at=self._clock())
            self._snapshot = snapshot
            logger.info(
                "[CATALOG] rebuilt count=%d duration_ms=%.1f",
                len(snapshot),
                (time.perf_counter() - started) * 1000,
            )
            return snapshot
