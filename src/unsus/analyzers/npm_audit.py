# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Known-vulnerability lookup through ``npm audit``."""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer
from unsus.core.config import Settings, get_settings
from unsus.core.constants import AnalyzerName, FindingType, Severity
from unsus.core.exceptions import ToolUnavailableError
from unsus.core.process import ProcessRunner, SubprocessRunner
from unsus.models.finding import Finding
from unsus.models.package import PackageFiles

logger = logging.getLogger("unsus.analyzers.npm_audit")

MANIFEST = "package.json"
LOCKFILES = ("package-lock.json", "npm-shrinkwrap.json")

AUDIT_SEVERITY: dict[str, Severity] = {
    "critical": Severity.CRITICAL,
    "high": Severity.DANGER,
    "moderate": Severity.WARNING,
    "low": Severity.INFO,
}


def summary_severity(counts: dict[str, int]) -> Severity:
    for level in ("critical", "high", "moderate"):
        if counts.get(level, 0) > 0:
            return AUDIT_SEVERITY[level]
    return Severity.INFO


def audit_findings(report: dict[str, Any]) -> list[Finding]:
    """Translate ``npm audit --json`` output into findings.

    One summary finding for the whole report, then one finding per advisory
    title. Advisories take ordinal lines so each keeps its own identity.
    """
    counts = report.get("metadata", {}).get("vulnerabilities", {}) or {}
    total = int(counts.get("total", 0) or 0)
    findings: list[Finding] = []
    if total <= 0:
        return findings

    findings.append(
        Finding(
            type=FindingType.NPM_AUDIT,
            severity=summary_severity(counts),
            message=(
                f"npm audit found {total} known vulnerabilities "
                f"({counts.get('critical', 0)} critical, {counts.get('high', 0)} high, "
                f"{counts.get('moderate', 0)} moderate, {counts.get('low', 0)} low)"
            ),
            file=MANIFEST,
            line=0,
            code=f"Total vulnerabilities: {total}",
        )
    )

    ordinal = 0
    for pkg_name, info in (report.get("vulnerabilities") or {}).items():
        if not isinstance(info, dict) or not info.get("severity"):
            continue
        via = info.get("via") or []
        for entry in via if isinstance(via, list) else [via]:
            if not isinstance(entry, dict) or not entry.get("title"):
                continue
            ordinal += 1
            findings.append(
                Finding(
                    type=FindingType.NPM_AUDIT,
                    severity=AUDIT_SEVERITY.get(str(info["severity"]).lower(), Severity.INFO),
                    message=f"{pkg_name}: {entry['title']}",
                    file=MANIFEST,
                    line=ordinal,
                    code=entry.get("url") or f"Advisory in {pkg_name}",
                )
            )
    return findings


class NpmAuditAnalyzer(BaseAnalyzer):
    """Runs ``npm audit`` against a scratch copy of the manifest."""

    def __init__(
        self,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._runner = runner or SubprocessRunner()

    @property
    def name(self) -> str:
        return AnalyzerName.NPM_AUDIT

    def available(self) -> bool:
        return self._settings.npm_audit_enabled and shutil.which(self._settings.npm_bin) is not None

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        if not package.manifest or not self.available():
            logger.info("npm audit skipped")
            return AnalyzerOutput()
        try:
            report = self.audit(package)
        except ToolUnavailableError as exc:
            logger.info("npm audit skipped: %s", exc)
            return AnalyzerOutput()
        if report is None:
            return AnalyzerOutput()
        findings = audit_findings(report)
        logger.info("npm audit produced %d findings", len(findings))
        return AnalyzerOutput(findings=findings)

    def audit(self, package: PackageFiles) -> dict[str, Any] | None:
        npm = self._settings.npm_bin
        timeout = self._settings.npm_audit_timeout
        with tempfile.TemporaryDirectory(prefix="unsus-audit-") as scratch:
            workdir = Path(scratch)
            (workdir / MANIFEST).write_text(json.dumps(package.manifest), encoding="utf-8")
            lockfile = next(
                (package.root / name for name in LOCKFILES if (package.root / name).is_file()),
                None,
            )
            if lockfile is not None:
                shutil.copy2(lockfile, workdir / lockfile.name)
            else:
                result = self._runner.run(
                    [npm, "install", "--package-lock-only", "--no-audit", "--ignore-scripts"],
                    cwd=workdir,
                    timeout=timeout,
                )
                if not result.ok:
                    logger.warning("Lockfile generation failed: %s", result.stderr.strip()[:200])
                    return None

            result = self._runner.run([npm, "audit", "--json"], cwd=workdir, timeout=timeout)
            if result.timed_out:
                logger.warning("npm audit timed out")
                return None
            # npm audit exits 1 when vulnerabilities exist; the JSON is still valid.
            try:
                report = json.loads(result.stdout)
            except json.JSONDecodeError:
                logger.warning("npm audit returned non-JSON output")
                return None
        return report if isinstance(report, dict) else None
