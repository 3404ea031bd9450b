# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Reputation cache CLI commands."""

from __future__ import annotations

import typer

app = typer.Typer()


@app.command()
def clear() -> None:
    """Delete the cached reputation database."""
    from unsus.core.config import get_settings
    from unsus.sdk import build_reputation_cache

    cache = build_reputation_cache(get_settings())
    if cache.clear():
        typer.echo(f"Cache cleared: {cache.path}")
    else:
        typer.echo("Cache already empty.")


@app.command()
def path() -> None:
    """Print where the reputation database is stored."""
    from unsus.core.config import get_settings

    typer.echo(str(get_settings().threat_intel_cache_path))
