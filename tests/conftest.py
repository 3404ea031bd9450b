# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from unsus.core.config import Settings
from unsus.models.package import BinaryFile, PackageFiles, SourceFile


def _package_files(
    files: dict[str, str] | None = None,
    manifest: dict | None = None,
    binaries: list[BinaryFile] | None = None,
    root: Path = Path("/tmp/pkg"),
) -> PackageFiles:
    """Build an in-memory PackageFiles without touching the disk."""
    files = files or {}
    manifest_text = json.dumps(manifest, indent=2) if manifest is not None else ""
    text_files = [SourceFile(path=p, content=c) for p, c in files.items()]
    source_files = [f for f in text_files if not f.path.endswith((".json", ".sh"))]
    return PackageFiles(
        root=root,
        manifest=manifest or {},
        manifest_text=manifest_text,
        manifest_error=None if manifest is not None else "no package.json found",
        source_files=source_files,
        text_files=text_files,
        binary_files=binaries or [],
    )


@pytest.fixture
def package_files() -> Callable[..., PackageFiles]:
    return _package_files


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Write a package directory under ``tmp_path`` and return its root."""

    def _make(
        files: dict[str, str | bytes] | None = None,
        manifest: dict | None = None,
        name: str = "pkg",
    ) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if manifest is not None:
            (root / "package.json").write_text(json.dumps(manifest, indent=2))
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return root

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Offline settings: no npm audit, no reputation feed, cache under tmp."""
    return Settings(
        npm_audit_enabled=False,
        threat_intel_enabled=False,
        threat_intel_cache_path=tmp_path / "cache" / "urlhaus.json",
        _env_file=None,
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment out of Settings()."""
    monkeypatch.delenv("VIRUSTOTAL_API_KEY", raising=False)
    monkeypatch.delenv("UNSUS_VIRUSTOTAL_API_KEY", raising=False)
    monkeypatch.setenv("UNSUS_THREAT_INTEL_CACHE_PATH", str(tmp_path / "env-cache.json"))


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by setup_logging() so they never outlive a test."""
    yield
    logging.getLogger("unsus").handlers.clear()
