# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Finding and indicator-of-compromise models."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from unsus.core.constants import FindingType, IOCType, Severity


class Finding(BaseModel):
    """A single piece of evidence emitted by one analyzer."""

    model_config = ConfigDict(frozen=True)

    type: FindingType
    severity: Severity
    message: str
    file: str
    line: int = Field(default=0, ge=0, description="1-based line, 0 if not applicable")
    code: str = ""

    @property
    def identity(self) -> tuple[str, str, int]:
        return (self.type, self.file, self.line)


class ThreatMatch(BaseModel):
    """Reputation hit attached to an IOC during enrichment."""

    model_config = ConfigDict(frozen=True)

    source: str
    detail: str


class IOC(BaseModel):
    """A concrete artifact of interest extracted from the package."""

    model_config = ConfigDict(frozen=True)

    type: IOCType
    value: str
    context: str = Field(description="path:line where the value was seen")
    threat_match: ThreatMatch | None = None

    @property
    def identity(self) -> tuple[str, str]:
        return (self.type, self.value)

    @property
    def location(self) -> tuple[str, int]:
        """Split ``context`` back into (file, line)."""
        path, sep, line = self.context.rpartition(":")
        if not sep:
            return (self.context or "unknown", 0)
        try:
            return (path or "unknown", int(line))
        except ValueError:
            return (self.context, 0)


def dedupe_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Keep the first finding per (type, file, line), preserving order."""
    seen: set[tuple[str, str, int]] = set()
    result: list[Finding] = []
    for finding in findings:
        if finding.identity in seen:
            continue
        seen.add(finding.identity)
        result.append(finding)
    return result


def dedupe_iocs(iocs: Iterable[IOC]) -> list[IOC]:
    """Keep the first IOC per (type, value), preserving order."""
    seen: set[tuple[str, str]] = set()
    result: list[IOC] = []
    for ioc in iocs:
        if ioc.identity in seen:
            continue
        seen.add(ioc.identity)
        result.append(ioc)
    return result
