# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract base analyzer interface for all static analyzers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from unsus.models.finding import IOC, Finding
from unsus.models.package import PackageFiles, SourceFile


@dataclass
class AnalyzerOutput:
    """Findings and IOCs produced by one analyzer run."""

    findings: list[Finding] = field(default_factory=list)
    iocs: list[IOC] = field(default_factory=list)


class BaseAnalyzer(ABC):
    """All static analyzers must implement this interface."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this analyzer."""
        ...

    @abstractmethod
    def run(self, package: PackageFiles) -> AnalyzerOutput:
        """Inspect the package synchronously and return findings and IOCs."""
        ...

    async def analyze(self, package: PackageFiles) -> AnalyzerOutput:
        """Run the analyzer in a worker thread."""
        return await asyncio.to_thread(self.run, package)


def skip_minified_duplicates(files: list[SourceFile]) -> list[SourceFile]:
    """Drop ``x.min.js`` whenever ``x.js`` sits in the same directory."""
    paths = {f.path for f in files}
    kept: list[SourceFile] = []
    for f in files:
        p = PurePosixPath(f.path)
        stem, dot, ext = p.name.rpartition(".")
        if dot and stem.endswith(".min"):
            original = str(p.with_name(f"{stem[:-4]}.{ext}"))
            if original in paths:
                continue
        kept.append(f)
    return kept


def line_of(text: str, index: int) -> int:
    """1-based line number of the character at ``index``."""
    return text.count("\n", 0, max(index, 0)) + 1
