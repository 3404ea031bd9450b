# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Turn an observed sandbox run into findings."""

from __future__ import annotations

from unsus.core.constants import DYNAMIC_FILE, FindingType, Severity
from unsus.models.finding import Finding
from unsus.models.scan import DynamicResult

CPU_CRITICAL = 50.0
CPU_WARNING = 25.0
MIN_SAMPLES = 3
MAX_FS_FINDINGS = 5
IGNORED_FS_MARKERS = ("node_modules", "package-lock")


def dynamic_findings(result: DynamicResult) -> list[Finding]:
    """Pure translation; findings carry ordinal lines under ``dynamic-analysis``."""
    findings: list[Finding] = []

    def add(ftype: FindingType, severity: Severity, message: str, code: str = "") -> None:
        findings.append(
            Finding(
                type=ftype,
                severity=severity,
                message=message,
                file=DYNAMIC_FILE,
                line=len(findings) + 1,
                code=code,
            )
        )

    seen_hosts: set[str] = set()
    for attempt in result.network_attempts:
        if attempt.host in seen_hosts:
            continue
        seen_hosts.add(attempt.host)
        add(
            FindingType.DYNAMIC_NETWORK,
            Severity.DANGER,
            f"Outbound connection attempt: {attempt.host}",
            attempt.raw,
        )

    if len(result.resource_samples) >= MIN_SAMPLES:
        avg, peak = result.average_cpu, result.peak_cpu
        usage = f"avg={avg:.1f}% peak={peak:.1f}%"
        if avg > CPU_CRITICAL:
            add(
                FindingType.DYNAMIC_RESOURCE,
                Severity.CRITICAL,
                f"Average CPU {avg:.0f}% during install, consistent with mining",
                usage,
            )
        elif avg > CPU_WARNING:
            add(
                FindingType.DYNAMIC_RESOURCE,
                Severity.WARNING,
                f"Elevated CPU {avg:.0f}% during install",
                usage,
            )

    created = [
        path
        for path in result.fs_changes
        if not any(marker in path for marker in IGNORED_FS_MARKERS)
    ]
    for path in created[:MAX_FS_FINDINGS]:
        add(FindingType.DYNAMIC_FS, Severity.WARNING, f"File created during install: {path}", path)

    if result.timed_out:
        add(
            FindingType.DYNAMIC_RESOURCE,
            Severity.DANGER,
            "Install timed out; possible hang or long-running payload",
            f"duration={result.install_duration}s",
        )

    return findings
