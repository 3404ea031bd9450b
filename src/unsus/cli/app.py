# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Annotated

import typer

from unsus.cli.commands import cache as cache_cmd
from unsus.core.constants import RISK_LEVEL_ORDER, RiskLevel
from unsus.core.exceptions import PackageLoadError
from unsus.models.scan import ScanResult

app = typer.Typer(
    name="unsus",
    help="Static and dynamic malware scanner for npm packages",
    no_args_is_help=True,
)

app.add_typer(cache_cmd.app, name="cache", help="Manage the reputation database cache")

EXIT_FLAGGED = 1
EXIT_LOAD_ERROR = 2


def exceeds(level: RiskLevel, fail_on: RiskLevel) -> bool:
    """True when ``level`` is at or above ``fail_on``."""
    return RISK_LEVEL_ORDER.index(level) >= RISK_LEVEL_ORDER.index(fail_on)


@app.command()
def scan(
    target: Annotated[
        str, typer.Argument(help="Unpacked npm package directory to scan")
    ],
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the result as JSON")
    ] = False,
    dynamic: Annotated[
        bool, typer.Option("--dynamic", help="Run install hooks in the container sandbox")
    ] = False,
    fail_on: Annotated[
        RiskLevel | None,
        typer.Option("--fail-on", help="Exit 1 when the risk level reaches this tier"),
    ] = None,
    no_intel: Annotated[
        bool, typer.Option("--no-intel", help="Skip reputation lookups")
    ] = False,
    no_audit: Annotated[
        bool, typer.Option("--no-audit", help="Skip the npm known-vulnerability lookup")
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write output to file instead of stdout"),
    ] = None,
) -> None:
    """Scan an npm package for malicious behavior."""
    from unsus.core.config import get_settings
    from unsus.core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    try:
        result = asyncio.run(
            _async_scan(target, dynamic=dynamic, intel=not no_intel, audit=not no_audit)
        )
    except PackageLoadError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_LOAD_ERROR) from exc

    if json_output:
        from unsus.cli.formatters.json_fmt import format_json

        _write_output(format_json(result), output)
    else:
        from unsus.cli.formatters.console import format_scan_result

        format_scan_result(result)

    threshold = fail_on or settings.fail_on
    if exceeds(result.risk_level, threshold):
        raise typer.Exit(EXIT_FLAGGED)


async def _async_scan(target: str, *, dynamic: bool, intel: bool, audit: bool) -> ScanResult:
    from unsus.sdk import build_pipeline

    pipeline = build_pipeline(dynamic=dynamic, intel=intel, audit=audit)
    return await pipeline.scan_path(target)


def _write_output(text: str, output: Path | None) -> None:
    if output:
        output.write_text(text)
        typer.echo(f"Output written to {output}", err=True)
    else:
        sys.stdout.write(text + "\n")


@app.command()
def version() -> None:
    """Show version information."""
    from unsus import __version__

    typer.echo(f"unsus v{__version__}")
