# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Domain models for unsus."""

from unsus.models.finding import IOC, Finding, ThreatMatch, dedupe_findings, dedupe_iocs
from unsus.models.package import BinaryFile, PackageFiles, SourceFile
from unsus.models.scan import (
    DynamicResult,
    NetworkAttempt,
    ResourceSample,
    ScanResult,
)

__all__ = [
    "IOC",
    "BinaryFile",
    "DynamicResult",
    "Finding",
    "NetworkAttempt",
    "PackageFiles",
    "ResourceSample",
    "ScanResult",
    "SourceFile",
    "ThreatMatch",
    "dedupe_findings",
    "dedupe_iocs",
]
