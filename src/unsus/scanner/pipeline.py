# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Scan coordinator: static analyzers, enrichment, sandbox, scoring."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer
from unsus.core.config import Settings, get_settings
from unsus.core.constants import AnalyzerName
from unsus.core.exceptions import SandboxError, ToolUnavailableError
from unsus.models.finding import dedupe_findings, dedupe_iocs
from unsus.models.package import PackageFiles
from unsus.models.scan import ScanResult
from unsus.sandbox.orchestrator import SandboxOrchestrator
from unsus.scanner.context import ScanContext
from unsus.scanner.scoring import build_summary, compute_risk_score
from unsus.threat_intel.enricher import ThreatIntelEnricher

logger = logging.getLogger("unsus.scanner.pipeline")


class ScanPipeline:
    """Runs the static analyzers concurrently, then enrichment and sandbox.

    Static analyzers share nothing; one failing is logged, recorded in
    ``errors`` and treated as having produced nothing. Enrichment failures
    are isolated the same way. Sandbox infrastructure errors drop the
    dynamic section without failing the scan.
    """

    def __init__(
        self,
        analyzers: list[BaseAnalyzer] | None = None,
        enricher: ThreatIntelEnricher | None = None,
        sandbox: SandboxOrchestrator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._analyzers: list[BaseAnalyzer] = list(analyzers or [])
        self._enricher = enricher
        self._sandbox = sandbox

    @property
    def analyzers(self) -> list[BaseAnalyzer]:
        return list(self._analyzers)

    def register_analyzer(self, analyzer: BaseAnalyzer) -> None:
        self._analyzers.append(analyzer)

    async def _run_analyzer(
        self, analyzer: BaseAnalyzer, context: ScanContext
    ) -> AnalyzerOutput | None:
        try:
            logger.info("Running analyzer: %s", analyzer.name)
            return await analyzer.analyze(context.package)
        except Exception as exc:
            error_msg = f"{analyzer.name}: {exc}"
            logger.error("Analyzer failed: %s", error_msg)
            context.errors.append(error_msg)
            return None

    async def _run_static(self, context: ScanContext) -> None:
        outputs = await asyncio.gather(
            *(self._run_analyzer(a, context) for a in self._analyzers)
        )
        for analyzer, output in zip(self._analyzers, outputs, strict=True):
            if output is None:
                continue
            context.analyzers_executed.append(analyzer.name)
            context.add_findings(output.findings)
            context.add_iocs(output.iocs)
        context.iocs = dedupe_iocs(context.iocs)

    async def _enrich(self, context: ScanContext) -> None:
        if self._enricher is None or not context.iocs:
            return
        try:
            findings, enriched = await self._enricher.enrich(context.iocs)
        except Exception as exc:
            error_msg = f"{AnalyzerName.THREAT_INTEL}: {exc}"
            logger.error("Enrichment failed: %s", error_msg)
            context.errors.append(error_msg)
            return
        context.iocs = enriched
        context.add_findings(findings)
        context.analyzers_executed.append(AnalyzerName.THREAT_INTEL)

    async def _run_sandbox(self, context: ScanContext) -> None:
        if self._sandbox is None:
            return
        try:
            run = await asyncio.to_thread(self._sandbox.run, context.package.root)
        except (SandboxError, ToolUnavailableError) as exc:
            error_msg = f"{AnalyzerName.DYNAMIC}: {exc}"
            logger.warning("Dynamic analysis unavailable: %s", error_msg)
            context.errors.append(error_msg)
            return
        context.dynamic = run.result
        context.add_findings(run.findings)
        context.analyzers_executed.append(AnalyzerName.DYNAMIC)

    async def scan(self, package: PackageFiles) -> ScanResult:
        """Run every stage over an already loaded package."""
        scan_id = uuid.uuid4().hex[:12]
        context = ScanContext(package=package, scan_id=scan_id)
        started_at = datetime.now(UTC)
        start_time = time.monotonic()

        await self._run_static(context)
        await self._enrich(context)
        await self._run_sandbox(context)

        findings = dedupe_findings(context.findings)
        score = compute_risk_score(findings)
        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        result = ScanResult(
            scan_id=scan_id,
            target=str(package.root),
            package_name=package.name,
            version=package.version,
            risk_score=score,
            findings=findings,
            iocs=context.iocs,
            dynamic=context.dynamic,
            summary=build_summary(package.name, findings, score),
            started_at=started_at,
            duration_ms=elapsed_ms,
            analyzers_executed=context.analyzers_executed,
            errors=context.errors,
        )
        logger.info(
            "Scan %s complete: level=%s risk=%.1f findings=%d duration=%dms",
            scan_id,
            result.risk_level,
            score,
            len(findings),
            elapsed_ms,
        )
        return result

    async def scan_path(self, target: str | Path) -> ScanResult:
        """Load a package directory and scan it.

        Raises
        ------
        PackageLoadError
            If ``target`` is not a readable package directory.
        """
        from unsus.parsers.package_loader import load_package

        package = await load_package(target, self._settings)
        return await self.scan(package)
