# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""unsus - static and dynamic malware scanner for npm packages."""

__version__ = "0.1.0"

from unsus.sdk import scan, scan_sync

__all__ = ["__version__", "scan", "scan_sync"]
