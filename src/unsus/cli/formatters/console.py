# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Rich console output formatter for scan results."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from unsus import __version__
from unsus.core.constants import MAX_RISK_SCORE, SEVERITY_RANK, RiskLevel, Severity
from unsus.models.scan import ScanResult

console = Console()

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.DANGER: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}

LEVEL_COLORS = {
    RiskLevel.CRITICAL: "bold red",
    RiskLevel.HIGH: "red",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.LOW: "cyan",
    RiskLevel.SAFE: "bold green",
}

BAR_WIDTH = 20
MAX_IOC_ROWS = 25


def score_bar(score: float, width: int = BAR_WIDTH) -> str:
    filled = round(score / MAX_RISK_SCORE * width)
    return "#" * filled + "-" * (width - filled)


def format_scan_result(result: ScanResult) -> None:
    """Print a scan result to the console with Rich formatting."""
    console.print()
    console.print(f"[bold]unsus v{__version__}[/bold] - npm package malware scanner")
    console.print()

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_column("key", style="dim")
    info_table.add_column("value")
    info_table.add_row("Target:", escape(result.target))
    info_table.add_row("Package:", escape(f"{result.package_name}@{result.version}"))
    console.print(info_table)
    console.print()

    level_color = LEVEL_COLORS.get(result.risk_level, "white")
    console.print(
        Panel(
            f"[{level_color}]RISK: {result.risk_level.upper()}[/{level_color}]"
            f"  {escape('[' + score_bar(result.risk_score) + ']')} {result.risk_score}/10",
            style=level_color,
        )
    )
    if result.summary:
        console.print(f"  {escape(result.summary)}")
    console.print()

    if result.findings:
        for finding in sorted(result.findings, key=lambda f: -SEVERITY_RANK[f.severity]):
            sev_color = SEVERITY_COLORS.get(finding.severity, "white")
            console.print(Text(finding.severity.upper().ljust(9), style=sev_color), end="")
            console.print(f"  [bold]{finding.type}[/bold]  {escape(finding.message)}")
            location = f"{finding.file}:{finding.line}" if finding.line else finding.file
            console.print(f"          {escape(location)}", style="dim")
            if finding.code:
                console.print(f"          {escape(finding.code[:120])}", style="dim italic")
            console.print()
    else:
        console.print("  No suspicious behavior detected.", style="bold green")
        console.print()

    if result.iocs:
        ioc_table = Table(title="Indicators of compromise")
        ioc_table.add_column("Type", style="bold")
        ioc_table.add_column("Value")
        ioc_table.add_column("Seen at", style="dim")
        ioc_table.add_column("Reputation", style="red")
        for ioc in result.iocs[:MAX_IOC_ROWS]:
            match = ioc.threat_match.source if ioc.threat_match else ""
            ioc_table.add_row(ioc.type, escape(ioc.value), escape(ioc.context), match)
        console.print(ioc_table)
        if len(result.iocs) > MAX_IOC_ROWS:
            console.print(f"  ... and {len(result.iocs) - MAX_IOC_ROWS} more", style="dim")
        console.print()

    if result.dynamic is not None:
        dyn = result.dynamic
        console.print(
            f"  Sandbox: exit={dyn.install_exit} duration={dyn.install_duration:.1f}s"
            f" connections={len(dyn.network_attempts)} new files={len(dyn.fs_changes)}"
            f" avg cpu={dyn.average_cpu:.1f}%"
        )

    counts = result.finding_count_by_severity
    parts = [f"{counts[sev]} {sev}" for sev in Severity if sev in counts]
    summary = ", ".join(parts) if parts else "0 findings"
    console.print(f"  Summary: {len(result.findings)} findings ({summary})")
    console.print(f"  Analyzers: {', '.join(result.analyzers_executed)}")
    if result.duration_ms is not None:
        console.print(f"  Duration: {result.duration_ms / 1000:.1f}s")
    if result.errors:
        console.print(f"  Errors: {len(result.errors)}", style="red")
        for error in result.errors:
            console.print(f"    {escape(error)}", style="dim red")
    console.print()
