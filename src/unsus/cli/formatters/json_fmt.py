# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""JSON output formatter."""

from __future__ import annotations

from unsus.models.scan import ScanResult


def format_json(result: ScanResult) -> str:
    """Return scan result as formatted JSON string."""
    return result.model_dump_json(indent=2)
