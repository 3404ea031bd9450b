# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Risk score, tier and summary computation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from unsus.core.constants import (
    DIMINISHING_WEIGHTS,
    INFO_WEIGHT,
    MAX_RISK_SCORE,
    RISK_THRESHOLD_HIGH,
    RISK_THRESHOLD_LOW,
    RISK_THRESHOLD_MEDIUM,
    RISK_THRESHOLD_SAFE,
    FindingType,
    RiskLevel,
    Severity,
)
from unsus.models.finding import Finding, dedupe_findings


@dataclass(frozen=True)
class CompoundRule:
    """Multiply the running score when both groups are represented."""

    name: str
    first: frozenset[FindingType]
    second: frozenset[FindingType] | None
    multiplier: float

    def applies(self, present: set[FindingType]) -> bool:
        if not present & self.first:
            return False
        return self.second is None or bool(present & self.second)


def _types(*names: FindingType) -> frozenset[FindingType]:
    return frozenset(names)


_EXEC = _types(FindingType.EXEC, FindingType.EVAL, FindingType.VM_EXEC)
_NETWORK = _types(FindingType.NETWORK)

COMPOUND_RULES: tuple[CompoundRule, ...] = (
    CompoundRule(
        "install-script+exec-or-network",
        _types(FindingType.INSTALL_SCRIPT),
        _types(FindingType.EXEC, FindingType.NETWORK),
        1.5,
    ),
    CompoundRule(
        "obfuscation+exec",
        _types(FindingType.OBFUSCATION, FindingType.BASE64_DECODE, FindingType.HEX_ESCAPE),
        _EXEC,
        2.0,
    ),
    CompoundRule(
        "sensitive-env+network",
        _types(FindingType.ENV_ACCESS_SENSITIVE),
        _NETWORK,
        1.5,
    ),
    CompoundRule("cryptominer+network", _types(FindingType.CRYPTOMINER), _NETWORK, 1.5),
    CompoundRule(
        "geo-trigger+fs-write",
        _types(FindingType.GEO_TRIGGER),
        _types(FindingType.FS_WRITE),
        1.75,
    ),
    CompoundRule(
        "dynamic-network+install-script",
        _types(FindingType.DYNAMIC_NETWORK),
        _types(FindingType.INSTALL_SCRIPT),
        1.5,
    ),
    CompoundRule("threat-intel", _types(FindingType.THREAT_INTEL), None, 2.0),
    CompoundRule("known-cve", _types(FindingType.NPM_AUDIT), None, 1.2),
)


def severity_weight(severity: Severity, occurrence: int) -> float:
    """Score delta for the ``occurrence``-th (0-indexed) finding of a severity."""
    if severity == Severity.INFO:
        return INFO_WEIGHT
    table = DIMINISHING_WEIGHTS[severity]
    return table[min(occurrence, len(table) - 1)]


def additive_score(findings: Iterable[Finding]) -> float:
    counters: dict[Severity, int] = {}
    score = 0.0
    for finding in findings:
        n = counters.get(finding.severity, 0)
        score += severity_weight(finding.severity, n)
        counters[finding.severity] = n + 1
    return score


def matched_compound_rules(findings: Iterable[Finding]) -> list[CompoundRule]:
    present = {f.type for f in findings}
    return [r for r in COMPOUND_RULES if r.applies(present)]


def compute_risk_score(findings: Iterable[Finding]) -> float:
    """Diminishing-returns sum times compound multipliers, clamped to [0, 10]."""
    unique = dedupe_findings(findings)
    if not unique:
        return 0.0
    score = additive_score(unique)
    for compound in matched_compound_rules(unique):
        score *= compound.multiplier
    return round(max(0.0, min(score, MAX_RISK_SCORE)), 1)


def risk_level_for(score: float) -> RiskLevel:
    """Map a risk score to its fixed tier."""
    if score <= RISK_THRESHOLD_SAFE:
        return RiskLevel.SAFE
    if score <= RISK_THRESHOLD_LOW:
        return RiskLevel.LOW
    if score <= RISK_THRESHOLD_MEDIUM:
        return RiskLevel.MEDIUM
    if score <= RISK_THRESHOLD_HIGH:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def build_summary(name: str, findings: list[Finding], score: float) -> str:
    """One-line natural-language verdict."""
    level = risk_level_for(score)
    critical = sum(1 for f in findings if f.severity == Severity.CRITICAL)
    danger = sum(1 for f in findings if f.severity == Severity.DANGER)

    if level == RiskLevel.SAFE:
        return f"{name} appears safe. No significant security concerns detected."
    if level == RiskLevel.CRITICAL:
        return (
            f"CRITICAL: {name} shows clear signs of malicious behavior. "
            f"Detected {critical} critical issues. Do not install."
        )
    if level == RiskLevel.HIGH:
        return (
            f"HIGH RISK: {name} contains suspicious patterns. "
            f"Found {critical + danger} serious issues. Investigate before use."
        )
    if level == RiskLevel.MEDIUM:
        return (
            f"MODERATE: {name} has some concerning patterns. "
            "Review findings carefully before using."
        )
    return f"{name} has minor concerns but is likely safe for use."
