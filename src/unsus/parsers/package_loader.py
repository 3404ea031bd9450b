# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Load a local package directory into a PackageFiles object."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import aiofiles

from unsus.core.config import Settings, get_settings
from unsus.core.exceptions import PackageLoadError
from unsus.models.package import BinaryFile, PackageFiles, SourceFile

logger = logging.getLogger("unsus.parsers.package_loader")

MANIFEST_NAME = "package.json"

SOURCE_EXTENSIONS = frozenset(
    {".js", ".mjs", ".cjs", ".jsx", ".ts", ".mts", ".cts", ".tsx"}
)
# Scripts, configs and notes a payload may hide in, read for IOC extraction.
TEXT_EXTENSIONS = SOURCE_EXTENSIONS | {
    ".json",
    ".sh",
    ".bash",
    ".zsh",
    ".ps1",
    ".psm1",
    ".bat",
    ".cmd",
    ".vbs",
    ".py",
    ".pl",
    ".rb",
    ".php",
    ".yml",
    ".yaml",
    ".toml",
    ".ini",
    ".cfg",
    ".conf",
    ".xml",
    ".html",
    ".htm",
    ".txt",
}
BINARY_EXTENSIONS = frozenset(
    {".node", ".exe", ".dll", ".so", ".dylib", ".bin", ".wasm", ".o", ".a"}
)


def _looks_binary(path: str, header: bytes) -> bool:
    suffix = Path(path).suffix.lower()
    if suffix in BINARY_EXTENSIONS or not suffix:
        return True
    return b"\x00" in header


def _walk(root: Path, ignored: set[str]) -> list[Path]:
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in ignored)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file() and not path.is_symlink():
                found.append(path)
    return found


async def _read_text(path: Path) -> str:
    async with aiofiles.open(path, encoding="utf-8", errors="replace") as fh:
        return await fh.read()


async def _read_header(path: Path, size: int) -> bytes:
    async with aiofiles.open(path, "rb") as fh:
        return await fh.read(size)


def parse_manifest(text: str) -> tuple[dict[str, object], str | None]:
    """Parse manifest JSON; return ({}, reason) when it is not an object."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return {}, f"invalid JSON: {exc}"
    if not isinstance(data, dict):
        return {}, "manifest is not a JSON object"
    return data, None


async def load_package(target: str | Path, settings: Settings | None = None) -> PackageFiles:
    """Read a package directory: manifest, text sources and binary headers.

    Raises
    ------
    PackageLoadError
        If ``target`` is not a directory.
    """
    settings = settings or get_settings()
    root = Path(target).resolve()
    if not root.is_dir():
        raise PackageLoadError(f"Not a package directory: {target}")

    manifest: dict[str, object] = {}
    manifest_text = ""
    manifest_error: str | None = None
    manifest_path = root / MANIFEST_NAME
    if manifest_path.is_file():
        manifest_text = await _read_text(manifest_path)
        manifest, manifest_error = parse_manifest(manifest_text)
    else:
        manifest_error = f"no {MANIFEST_NAME} found"
    if manifest_error:
        logger.warning("Manifest problem in %s: %s", root, manifest_error)

    source_files: list[SourceFile] = []
    text_files: list[SourceFile] = []
    binary_files: list[BinaryFile] = []

    for path in _walk(root, set(settings.ignored_dirs)):
        rel = path.relative_to(root).as_posix()
        size = path.stat().st_size
        suffix = path.suffix.lower()
        try:
            if suffix in TEXT_EXTENSIONS:
                if size > settings.max_file_size:
                    logger.warning("Skipping large file: %s (%d bytes)", rel, size)
                    continue
                entry = SourceFile(path=rel, content=await _read_text(path))
                text_files.append(entry)
                if suffix in SOURCE_EXTENSIONS:
                    source_files.append(entry)
                continue

            header = await _read_header(path, settings.binary_header_bytes)
            if not suffix and header.startswith(b"#!") and size <= settings.max_file_size:
                entry = SourceFile(path=rel, content=await _read_text(path))
                text_files.append(entry)
                if b"node" in header.split(b"\n", 1)[0]:
                    source_files.append(entry)
                continue
            if _looks_binary(rel, header):
                binary_files.append(BinaryFile(path=rel, header=header, size=size))
        except OSError as exc:
            logger.warning("Could not read %s: %s", rel, exc)

    logger.info(
        "Loaded %s: %d source, %d text, %d binary files",
        root,
        len(source_files),
        len(text_files),
        len(binary_files),
    )
    return PackageFiles(
        root=root,
        manifest=manifest,
        manifest_text=manifest_text,
        manifest_error=manifest_error,
        source_files=source_files,
        text_files=text_files,
        binary_files=binary_files,
    )
