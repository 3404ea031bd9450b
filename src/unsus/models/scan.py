# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Dynamic-run and scan result models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from unsus.core.constants import RiskLevel, Severity
from unsus.models.finding import IOC, Finding


class NetworkAttempt(BaseModel):
    """One outbound connect() attempt observed inside the sandbox."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 0
    raw: str = ""


class ResourceSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    ts: int
    cpu: float
    mem: float


class DynamicResult(BaseModel):
    """Observed behavior of one sandbox run."""

    model_config = ConfigDict(frozen=True)

    network_attempts: list[NetworkAttempt] = Field(default_factory=list)
    resource_samples: list[ResourceSample] = Field(default_factory=list)
    fs_changes: list[str] = Field(default_factory=list)
    install_exit: int = -1
    install_duration: float = 0.0
    timed_out: bool = False
    stdout: str = ""

    @property
    def average_cpu(self) -> float:
        if not self.resource_samples:
            return 0.0
        return sum(s.cpu for s in self.resource_samples) / len(self.resource_samples)

    @property
    def peak_cpu(self) -> float:
        return max((s.cpu for s in self.resource_samples), default=0.0)


class ScanResult(BaseModel):
    """Complete result of scanning a single package."""

    model_config = ConfigDict(frozen=True)

    scan_id: str
    target: str
    package_name: str
    version: str
    risk_score: float = Field(ge=0.0, le=10.0)
    findings: list[Finding] = Field(default_factory=list)
    iocs: list[IOC] = Field(default_factory=list)
    dynamic: DynamicResult | None = None
    summary: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int | None = None
    analyzers_executed: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def risk_level(self) -> RiskLevel:
        from unsus.scanner.scoring import risk_level_for

        return risk_level_for(self.risk_score)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def finding_count_by_severity(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for f in self.findings:
            counts[f.severity] = counts.get(f.severity, 0) + 1
        return counts

    def findings_of(self, severity: Severity) -> list[Finding]:
        return [f for f in self.findings if f.severity == severity]
