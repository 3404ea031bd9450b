# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Parse the files a sandbox run leaves in its output directory.

Contract (all optional, line oriented):

- ``meta.json``: ``{"exitCode": int, "duration": seconds, "timedOut": bool}``
- ``network.log``: one ``host:port`` (or bare host) per line
- ``resources.csv``: header ``ts,cpu,mem`` then one sample per line
- ``fs-changes.log``: one workspace path per line
- ``install.log``: combined hook output
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from unsus.models.scan import DynamicResult, NetworkAttempt, ResourceSample

logger = logging.getLogger("unsus.sandbox.output")

META_FILE = "meta.json"
NETWORK_FILE = "network.log"
RESOURCES_FILE = "resources.csv"
FS_CHANGES_FILE = "fs-changes.log"
INSTALL_LOG_FILE = "install.log"


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        return int(value)
    except (ValueError, OverflowError):
        return default


def _as_seconds(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        seconds = float(value)
    except ValueError:
        return 0.0
    return seconds if math.isfinite(seconds) and seconds >= 0 else 0.0


def parse_meta(text: str) -> dict[str, Any]:
    """Read the run record. Hooks can write to /output, so each field is checked."""
    meta: dict[str, Any] = {"exitCode": -1, "duration": 0.0, "timedOut": False}
    if not text.strip():
        return meta
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        logger.warning("Unreadable sandbox meta record")
        return meta
    if not isinstance(data, dict):
        logger.warning("Sandbox meta record is not an object")
        return meta
    meta["exitCode"] = _as_int(data.get("exitCode"), -1)
    meta["duration"] = _as_seconds(data.get("duration"))
    meta["timedOut"] = data.get("timedOut") is True
    return meta


def parse_network(text: str) -> list[NetworkAttempt]:
    attempts: list[NetworkAttempt] = []
    for line in _lines(text):
        host, sep, port = line.rpartition(":")
        if sep and port.isascii() and port.isdigit() and host:
            attempts.append(NetworkAttempt(host=host, port=int(port), raw=line))
        else:
            attempts.append(NetworkAttempt(host=line, port=0, raw=line))
    return attempts


def parse_resources(text: str) -> list[ResourceSample]:
    samples: list[ResourceSample] = []
    for line in _lines(text)[1:]:
        parts = line.split(",")
        if len(parts) < 3:
            continue
        try:
            samples.append(
                ResourceSample(ts=int(parts[0]), cpu=float(parts[1]), mem=float(parts[2]))
            )
        except ValueError:
            continue
    return samples


def parse_output(outdir: Path, timed_out: bool = False) -> DynamicResult:
    """Build a DynamicResult from ``outdir``; missing files mean no data."""
    meta = parse_meta(_read(outdir / META_FILE))
    return DynamicResult(
        network_attempts=parse_network(_read(outdir / NETWORK_FILE)),
        resource_samples=parse_resources(_read(outdir / RESOURCES_FILE)),
        fs_changes=_lines(_read(outdir / FS_CHANGES_FILE)),
        install_exit=meta["exitCode"],
        install_duration=meta["duration"],
        timed_out=timed_out or meta["timedOut"],
        stdout=_read(outdir / INSTALL_LOG_FILE),
    )
