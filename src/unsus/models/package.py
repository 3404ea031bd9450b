# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""In-memory view of a package's file tree."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SourceFile(BaseModel):
    """A text file read from the package."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Path relative to the package root")
    content: str


class BinaryFile(BaseModel):
    """A non-text file, represented by its leading bytes only."""

    model_config = ConfigDict(frozen=True)

    path: str
    header: bytes = b""
    size: int = 0


class PackageFiles(BaseModel):
    """Everything the static analyzers consume for one package."""

    model_config = ConfigDict(frozen=True)

    root: Path
    manifest: dict[str, Any] = Field(default_factory=dict)
    manifest_text: str = ""
    manifest_error: str | None = None
    source_files: list[SourceFile] = Field(
        default_factory=list,
        description="JavaScript/TypeScript-like files fed to the AST and entropy analyzers",
    )
    text_files: list[SourceFile] = Field(
        default_factory=list,
        description="Every readable text file, source files included",
    )
    binary_files: list[BinaryFile] = Field(default_factory=list)

    @property
    def name(self) -> str:
        name = self.manifest.get("name")
        return name if isinstance(name, str) and name else self.root.name

    @property
    def version(self) -> str:
        version = self.manifest.get("version")
        return version if isinstance(version, str) and version else "0.0.0"

    @property
    def scripts(self) -> dict[str, str]:
        scripts = self.manifest.get("scripts")
        if not isinstance(scripts, dict):
            return {}
        return {k: v for k, v in scripts.items() if isinstance(v, str)}
