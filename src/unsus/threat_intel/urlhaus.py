# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Bulk recent-URL feed from URLhaus."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger("unsus.threat_intel.urlhaus")


@dataclass
class FeedEntry:
    url: str
    host: str
    threat: str = ""
    tags: list[str] = field(default_factory=list)


class UrlhausFeed:
    """Fetch the recent malicious URL list.

    Any transport or decoding failure yields an empty list.
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    async def fetch(self) -> list[FeedEntry]:
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("URLhaus fetch failed: %s", exc)
            return []

        items = data.get("urls") if isinstance(data, dict) else None
        entries: list[FeedEntry] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            tags = item.get("tags") or []
            entries.append(
                FeedEntry(
                    url=str(item.get("url") or ""),
                    host=str(item.get("host") or ""),
                    threat=str(item.get("threat") or ""),
                    tags=tags if isinstance(tags, list) else [str(tags)],
                )
            )
        logger.info("URLhaus returned %d entries", len(entries))
        return entries
