# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for risk score, tier and summary computation."""

from __future__ import annotations

import random

import pytest

from unsus.core.constants import FindingType, RiskLevel, Severity
from unsus.models.finding import Finding
from unsus.scanner.scoring import (
    COMPOUND_RULES,
    additive_score,
    build_summary,
    compute_risk_score,
    matched_compound_rules,
    risk_level_for,
    severity_weight,
)


def _f(ftype: FindingType, severity: Severity, line: int = 1, file: str = "index.js") -> Finding:
    return Finding(type=ftype, severity=severity, message=str(ftype), file=file, line=line)


class TestRiskLevel:
    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (0.0, RiskLevel.SAFE),
            (1.0, RiskLevel.SAFE),
            (1.1, RiskLevel.LOW),
            (3.0, RiskLevel.LOW),
            (3.1, RiskLevel.MEDIUM),
            (5.0, RiskLevel.MEDIUM),
            (5.1, RiskLevel.HIGH),
            (7.5, RiskLevel.HIGH),
            (7.6, RiskLevel.CRITICAL),
            (10.0, RiskLevel.CRITICAL),
        ],
    )
    def test_tier_boundaries(self, score, level):
        assert risk_level_for(score) == level


class TestSeverityWeight:
    def test_first_occurrences(self):
        assert severity_weight(Severity.CRITICAL, 0) == 3.0
        assert severity_weight(Severity.DANGER, 0) == 2.0
        assert severity_weight(Severity.WARNING, 0) == 0.75

    def test_tail_repeats_last_value(self):
        assert severity_weight(Severity.CRITICAL, 3) == 0.75
        assert severity_weight(Severity.CRITICAL, 50) == 0.75
        assert severity_weight(Severity.WARNING, 9) == 0.1

    def test_info_is_flat(self):
        assert severity_weight(Severity.INFO, 0) == 0.1
        assert severity_weight(Severity.INFO, 100) == 0.1


class TestComputeRiskScore:
    def test_empty_is_zero(self):
        assert compute_risk_score([]) == 0.0

    def test_single_critical(self):
        assert compute_risk_score([_f(FindingType.EVAL, Severity.CRITICAL)]) == 3.0

    def test_diminishing_returns(self):
        findings = [_f(FindingType.EVAL, Severity.CRITICAL, line=i) for i in range(1, 5)]
        # 3 + 2 + 1.25 + 0.75
        assert compute_risk_score(findings) == 7.0
        findings.append(_f(FindingType.EVAL, Severity.CRITICAL, line=5))
        assert compute_risk_score(findings) == 7.8

    def test_duplicates_do_not_count_twice(self):
        finding = _f(FindingType.EVAL, Severity.CRITICAL)
        assert compute_risk_score([finding, finding, finding]) == 3.0

    def test_info_only_stays_safe(self):
        findings = [_f(FindingType.PARSE_ERROR, Severity.INFO, line=i) for i in range(3)]
        score = compute_risk_score(findings)
        assert score == 0.3
        assert risk_level_for(score) == RiskLevel.SAFE

    def test_install_script_with_network(self):
        findings = [
            _f(FindingType.INSTALL_SCRIPT, Severity.CRITICAL, file="package.json"),
            _f(FindingType.NETWORK, Severity.DANGER),
        ]
        # (3 + 2) * 1.5
        assert compute_risk_score(findings) == 7.5

    def test_clamped_to_ten(self):
        findings = [
            _f(FindingType.INSTALL_SCRIPT, Severity.CRITICAL, file="package.json"),
            _f(FindingType.EXEC, Severity.CRITICAL, file="package.json"),
            _f(FindingType.NETWORK, Severity.DANGER, file="package.json"),
        ]
        assert compute_risk_score(findings) == 10.0

    def test_threat_intel_doubles(self):
        findings = [_f(FindingType.THREAT_INTEL, Severity.CRITICAL)]
        assert compute_risk_score(findings) == 6.0

    def test_npm_audit_multiplier(self):
        findings = [_f(FindingType.NPM_AUDIT, Severity.WARNING, file="package.json")]
        assert compute_risk_score(findings) == 0.9

    def test_sensitive_env_with_network(self):
        findings = [
            _f(FindingType.ENV_ACCESS_SENSITIVE, Severity.DANGER),
            _f(FindingType.NETWORK, Severity.WARNING, line=2),
        ]
        # (2 + 0.75) * 1.5 = 4.125
        assert compute_risk_score(findings) == 4.1

    def test_geo_trigger_with_fs_write(self):
        findings = [
            _f(FindingType.GEO_TRIGGER, Severity.WARNING),
            _f(FindingType.FS_WRITE, Severity.WARNING, line=2),
        ]
        # (0.75 + 0.4) * 1.75
        assert compute_risk_score(findings) == 2.0

    def test_order_independent(self):
        findings = [
            _f(FindingType.EVAL, Severity.CRITICAL),
            _f(FindingType.NETWORK, Severity.DANGER, line=2),
            _f(FindingType.OBFUSCATION, Severity.WARNING, line=3),
            _f(FindingType.FS_ACCESS, Severity.WARNING, line=4),
            _f(FindingType.ENV_ACCESS, Severity.INFO, line=5),
        ]
        expected = compute_risk_score(findings)
        shuffled = list(findings)
        random.Random(7).shuffle(shuffled)
        assert compute_risk_score(shuffled) == expected

    def test_score_always_in_range(self):
        findings = [
            _f(ftype, Severity.CRITICAL, line=i)
            for i, ftype in enumerate(FindingType, start=1)
        ]
        assert 0.0 <= compute_risk_score(findings) <= 10.0


class TestCompoundRules:
    def test_no_rules_without_pairs(self):
        assert matched_compound_rules([_f(FindingType.EVAL, Severity.CRITICAL)]) == []

    def test_obfuscation_with_exec(self):
        findings = [
            _f(FindingType.HEX_ESCAPE, Severity.DANGER),
            _f(FindingType.EVAL, Severity.CRITICAL),
        ]
        names = [r.name for r in matched_compound_rules(findings)]
        assert names == ["obfuscation+exec"]

    def test_dynamic_network_with_install_script(self):
        findings = [
            _f(FindingType.DYNAMIC_NETWORK, Severity.DANGER, file="dynamic-analysis"),
            _f(FindingType.INSTALL_SCRIPT, Severity.CRITICAL, file="package.json"),
        ]
        names = {r.name for r in matched_compound_rules(findings)}
        assert "dynamic-network+install-script" in names

    def test_rules_apply_at_most_once(self):
        findings = [_f(FindingType.THREAT_INTEL, Severity.CRITICAL, line=i) for i in range(5)]
        matched = matched_compound_rules(findings)
        assert [r.name for r in matched] == ["threat-intel"]
        assert additive_score(findings) * 2.0 >= compute_risk_score(findings)

    def test_rule_names_unique(self):
        names = [r.name for r in COMPOUND_RULES]
        assert len(names) == len(set(names))


class TestBuildSummary:
    def test_safe(self):
        assert build_summary("pkg", [], 0.0).startswith("pkg appears safe")

    def test_critical_counts_critical_findings(self):
        findings = [_f(FindingType.EVAL, Severity.CRITICAL, line=i) for i in range(3)]
        summary = build_summary("pkg", findings, 9.0)
        assert summary.startswith("CRITICAL: pkg")
        assert "3 critical issues" in summary

    def test_high_counts_serious_findings(self):
        findings = [
            _f(FindingType.EVAL, Severity.CRITICAL),
            _f(FindingType.NETWORK, Severity.DANGER),
        ]
        assert "Found 2 serious issues" in build_summary("pkg", findings, 6.0)

    def test_medium_and_low(self):
        assert build_summary("pkg", [], 4.0).startswith("MODERATE: pkg")
        assert "minor concerns" in build_summary("pkg", [], 2.0)
