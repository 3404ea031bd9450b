# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Cross-reference extracted IOCs against reputation sources."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from unsus.core.constants import FindingType, IOCType, Severity
from unsus.models.finding import IOC, Finding, ThreatMatch
from unsus.threat_intel.cache import ReputationCache, ThreatDatabase
from unsus.threat_intel.virustotal import VirusTotalClient

logger = logging.getLogger("unsus.threat_intel.enricher")

URLHAUS = "URLhaus"
VT_CRITICAL_ENGINES = 5


def _host(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def match_database(ioc: IOC, db: ThreatDatabase) -> tuple[str, str] | None:
    """(detail, label) when the IOC is listed in the bulk database."""
    value = ioc.value.lower()
    if ioc.type == IOCType.DOMAIN and value in db.domains:
        return "Known malicious domain", "Malicious domain"
    if ioc.type == IOCType.URL and (value in db.urls or _host(value) in db.domains):
        return "Known malicious URL", "Malicious URL"
    if ioc.type == IOCType.IP and value in db.domains:
        return "Known malicious IP", "Malicious IP"
    return None


def _finding(ioc: IOC, severity: Severity, message: str) -> Finding:
    file, line = ioc.location
    return Finding(
        type=FindingType.THREAT_INTEL,
        severity=severity,
        message=message,
        file=file,
        line=line,
        code=ioc.value,
    )


class ThreatIntelEnricher:
    """Decorates IOCs with reputation matches and emits critical findings."""

    def __init__(
        self,
        cache: ReputationCache,
        virustotal: VirusTotalClient | None = None,
    ) -> None:
        self.cache = cache
        self.virustotal = virustotal

    async def enrich(self, iocs: list[IOC]) -> tuple[list[Finding], list[IOC]]:
        db = await self.cache.get()
        findings: list[Finding] = []
        enriched: list[IOC] = []

        for ioc in iocs:
            hit = match_database(ioc, db)
            if hit:
                detail, label = hit
                ioc = ioc.model_copy(
                    update={"threat_match": ThreatMatch(source=URLHAUS, detail=detail)}
                )
                findings.append(
                    _finding(ioc, Severity.CRITICAL, f"{label} ({URLHAUS}): {ioc.value}")
                )
            elif self.virustotal is not None:
                verdict = await self.virustotal.lookup(ioc.type, ioc.value)
                if verdict is not None:
                    ioc = ioc.model_copy(
                        update={
                            "threat_match": ThreatMatch(source="VirusTotal", detail=verdict.source)
                        }
                    )
                    severity = (
                        Severity.CRITICAL
                        if verdict.engines >= VT_CRITICAL_ENGINES
                        else Severity.DANGER
                    )
                    findings.append(
                        _finding(ioc, severity, f"Flagged by {verdict.source}: {ioc.value}")
                    )
            enriched.append(ioc)

        logger.info("Threat intel matched %d of %d IOCs", len(findings), len(iocs))
        return findings, enriched
