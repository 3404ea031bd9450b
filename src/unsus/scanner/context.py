# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Scan context accumulated by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from unsus.models.finding import IOC, Finding
from unsus.models.package import PackageFiles
from unsus.models.scan import DynamicResult


@dataclass
class ScanContext:
    """Mutable state for one scan; frozen into a ScanResult at the end."""

    package: PackageFiles
    scan_id: str
    findings: list[Finding] = field(default_factory=list)
    iocs: list[IOC] = field(default_factory=list)
    dynamic: DynamicResult | None = None
    analyzers_executed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_findings(self, new_findings: list[Finding]) -> None:
        self.findings.extend(new_findings)

    def add_iocs(self, new_iocs: list[IOC]) -> None:
        self.iocs.extend(new_iocs)
