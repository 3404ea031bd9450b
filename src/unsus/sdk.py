# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Public SDK interface for embedding unsus in other tools.

Usage::

    from unsus import scan, scan_sync

    # Synchronous (blocking)
    result = scan_sync("./node_modules/left-pad")
    print(result.risk_level, result.risk_score)

    # Async, with the container sandbox
    result = await scan("./suspicious-pkg", dynamic=True)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from unsus.analyzers.ast.analyzer import AstAnalyzer
from unsus.analyzers.binary import BinaryAnalyzer
from unsus.analyzers.entropy import EntropyAnalyzer
from unsus.analyzers.metadata import MetadataAnalyzer
from unsus.analyzers.npm_audit import NpmAuditAnalyzer
from unsus.analyzers.regex_iocs import RegexIOCAnalyzer
from unsus.core.config import Settings, get_settings
from unsus.models.scan import ScanResult
from unsus.sandbox.orchestrator import SandboxOrchestrator
from unsus.scanner.pipeline import ScanPipeline
from unsus.threat_intel.cache import ReputationCache
from unsus.threat_intel.enricher import ThreatIntelEnricher
from unsus.threat_intel.urlhaus import UrlhausFeed
from unsus.threat_intel.virustotal import VirusTotalClient

logger = logging.getLogger("unsus.sdk")


def build_reputation_cache(settings: Settings) -> ReputationCache:
    feed = UrlhausFeed(settings.urlhaus_url, timeout=settings.threat_intel_timeout)
    return ReputationCache(
        path=settings.threat_intel_cache_path,
        ttl=settings.threat_intel_cache_ttl,
        fetcher=feed.fetch,
    )


def build_pipeline(
    settings: Settings | None = None,
    *,
    dynamic: bool = False,
    intel: bool = True,
    audit: bool = True,
) -> ScanPipeline:
    """Construct a fully-wired scan pipeline.

    Parameters
    ----------
    settings:
        Optional ``Settings`` override; falls back to ``get_settings()``.
    dynamic:
        Whether to run install hooks in the container sandbox.
    intel:
        Whether to enrich IOCs against reputation data. Ignored when
        ``threat_intel_enabled`` is off.
    audit:
        Whether to register the known-vulnerability lookup.
    """
    settings = settings or get_settings()

    enricher = None
    if intel and settings.threat_intel_enabled:
        virustotal = None
        if settings.virustotal_api_key:
            virustotal = VirusTotalClient(
                settings.virustotal_api_key,
                max_checks=settings.virustotal_max_checks,
                delay=settings.virustotal_delay,
                timeout=settings.threat_intel_timeout,
            )
        enricher = ThreatIntelEnricher(build_reputation_cache(settings), virustotal)

    sandbox = SandboxOrchestrator(settings=settings) if dynamic else None
    pipeline = ScanPipeline(enricher=enricher, sandbox=sandbox, settings=settings)

    pipeline.register_analyzer(AstAnalyzer())
    pipeline.register_analyzer(EntropyAnalyzer())
    pipeline.register_analyzer(RegexIOCAnalyzer())
    pipeline.register_analyzer(BinaryAnalyzer())
    pipeline.register_analyzer(MetadataAnalyzer())

    if audit and settings.npm_audit_enabled:
        pipeline.register_analyzer(NpmAuditAnalyzer(settings=settings))

    logger.debug(
        "Pipeline built: analyzers=%s intel=%s dynamic=%s",
        [a.name for a in pipeline.analyzers],
        enricher is not None,
        dynamic,
    )
    return pipeline


async def scan(
    target: str | Path,
    *,
    dynamic: bool = False,
    intel: bool = True,
    audit: bool = True,
    settings: Settings | None = None,
) -> ScanResult:
    """Scan a package directory and return a ``ScanResult``.

    Parameters
    ----------
    target:
        Path to an unpacked npm package (the directory holding package.json).
    dynamic:
        Also execute the install hooks in the container sandbox.
    intel:
        Match extracted IOCs against reputation data.
    audit:
        Query npm for known vulnerabilities in declared dependencies.
    settings:
        Optional ``Settings`` override.

    Returns
    -------
    ScanResult

    Raises
    ------
    PackageLoadError
        If ``target`` is not a package directory.
    """
    pipeline = build_pipeline(settings, dynamic=dynamic, intel=intel, audit=audit)
    return await pipeline.scan_path(target)


def scan_sync(
    target: str | Path,
    *,
    dynamic: bool = False,
    intel: bool = True,
    audit: bool = True,
    settings: Settings | None = None,
) -> ScanResult:
    """Synchronous wrapper around :func:`scan`.

    Must not be called from inside a running event loop.
    """
    return asyncio.run(
        scan(target, dynamic=dynamic, intel=intel, audit=audit, settings=settings)
    )
