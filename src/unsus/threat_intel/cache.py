# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Reputation database cache with TTL and a local JSON backing file.

Lookup order is memory, then disk, then the remote feed. A feed that
returns nothing is held in memory for the rest of the TTL but never written
to disk, so a transient outage does not poison later runs.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles

from unsus.threat_intel.urlhaus import FeedEntry

logger = logging.getLogger("unsus.threat_intel.cache")

FeedFetcher = Callable[[], Awaitable[list[FeedEntry]]]


@dataclass
class ThreatDatabase:
    """Known-malicious hosts and URLs, lowercased."""

    domains: set[str] = field(default_factory=set)
    urls: set[str] = field(default_factory=set)
    fetched_at: float = 0.0

    @classmethod
    def from_entries(cls, entries: list[FeedEntry], fetched_at: float) -> ThreatDatabase:
        db = cls(fetched_at=fetched_at)
        for entry in entries:
            if entry.host:
                db.domains.add(entry.host.lower())
            if entry.url:
                db.urls.add(entry.url.lower())
        return db

    def is_empty(self) -> bool:
        return not self.domains and not self.urls

    def to_json(self) -> str:
        return json.dumps(
            {
                "domains": sorted(self.domains),
                "urls": sorted(self.urls),
                "fetched_at": self.fetched_at,
            }
        )


class ReputationCache:
    """Owns the reputation database lifecycle for the enrichment step.

    Parameters
    ----------
    path:
        Backing JSON file.
    ttl:
        Seconds a fetched database stays fresh.
    fetcher:
        Coroutine function returning feed entries; failures must come back
        as an empty list.
    clock:
        Wall-clock source, seconds since the epoch.
    """

    def __init__(
        self,
        path: Path,
        ttl: float,
        fetcher: FeedFetcher,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.ttl = ttl
        self._fetcher = fetcher
        self._clock = clock
        self._memory: ThreatDatabase | None = None

    def _fresh(self, db: ThreatDatabase) -> bool:
        return self._clock() - db.fetched_at < self.ttl

    async def get(self) -> ThreatDatabase:
        if self._memory is not None and self._fresh(self._memory):
            return self._memory

        from_disk = await self._load()
        if from_disk is not None and self._fresh(from_disk):
            logger.debug("Reputation database loaded from %s", self.path)
            self._memory = from_disk
            return from_disk

        entries = await self._fetcher()
        db = ThreatDatabase.from_entries(entries, fetched_at=self._clock())
        if db.is_empty():
            logger.warning("Reputation feed returned no entries; not persisting")
        else:
            await self._save(db)
        self._memory = db
        return db

    async def _load(self) -> ThreatDatabase | None:
        if not self.path.is_file():
            return None
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as fh:
                data = json.loads(await fh.read())
            return ThreatDatabase(
                domains=set(data.get("domains", [])),
                urls=set(data.get("urls", [])),
                fetched_at=float(data.get("fetched_at", 0)),
            )
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring unreadable reputation cache %s: %s", self.path, exc)
            return None

    async def _save(self, db: ThreatDatabase) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, "w", encoding="utf-8") as fh:
                await fh.write(db.to_json())
        except OSError as exc:
            logger.warning("Could not write reputation cache %s: %s", self.path, exc)

    def clear(self) -> bool:
        """Drop the in-memory copy and delete the backing file."""
        self._memory = None
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
