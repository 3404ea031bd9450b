# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Package loading utilities."""

from unsus.parsers.package_loader import load_package, parse_manifest

__all__ = ["load_package", "parse_manifest"]
