# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Optional per-indicator lookups against the VirusTotal v3 API."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass

import httpx

from unsus.core.constants import IOCType

logger = logging.getLogger("unsus.threat_intel.virustotal")

VT_API = "https://www.virustotal.com/api/v3"

_COLLECTIONS: dict[IOCType, str] = {
    IOCType.DOMAIN: "domains",
    IOCType.IP: "ip_addresses",
    IOCType.URL: "urls",
}


@dataclass(frozen=True)
class VirusTotalVerdict:
    engines: int

    @property
    def source(self) -> str:
        return f"VirusTotal ({self.engines} engines)"


def url_identifier(url: str) -> str:
    """VirusTotal URL id: unpadded URL-safe base64 of the URL."""
    return base64.urlsafe_b64encode(url.encode()).decode().rstrip("=")


class VirusTotalClient:
    """Rate-limited lookups; ``max_checks`` requests per instance.

    Consecutive requests are separated by at least ``delay`` seconds.
    """

    def __init__(
        self,
        api_key: str,
        max_checks: int = 4,
        delay: float = 15.5,
        timeout: float = 10.0,
        base_url: str = VT_API,
    ) -> None:
        self._api_key = api_key
        self.max_checks = max_checks
        self.delay = delay
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.checks_made = 0

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def supports(self, ioc_type: IOCType) -> bool:
        return ioc_type in _COLLECTIONS

    @property
    def exhausted(self) -> bool:
        return self.checks_made >= self.max_checks

    def endpoint(self, ioc_type: IOCType, value: str) -> str:
        collection = _COLLECTIONS[ioc_type]
        ident = url_identifier(value) if ioc_type == IOCType.URL else value
        return f"{self.base_url}/{collection}/{ident}"

    async def lookup(self, ioc_type: IOCType, value: str) -> VirusTotalVerdict | None:
        """Return a verdict when any engine flags ``value``, else None."""
        if not self.enabled or self.exhausted or not self.supports(ioc_type):
            return None
        if self.checks_made > 0:
            await asyncio.sleep(self.delay)
        self.checks_made += 1

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                resp = await client.get(
                    self.endpoint(ioc_type, value), headers={"x-apikey": self._api_key}
                )
            if resp.status_code != 200:
                logger.debug("VirusTotal %s for %s", resp.status_code, value)
                return None
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("VirusTotal lookup failed for %s: %s", value, exc)
            return None

        stats = (data.get("data") or {}).get("attributes", {}).get("last_analysis_stats") or {}
        engines = int(stats.get("malicious", 0) or 0) + int(stats.get("suspicious", 0) or 0)
        if engines <= 0:
            return None
        return VirusTotalVerdict(engines=engines)
