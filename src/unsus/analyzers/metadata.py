# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Manifest checks: lifecycle scripts, encoded values, and typosquatting."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer, line_of
from unsus.core.constants import AnalyzerName, FindingType, IOCType, Severity
from unsus.models.finding import IOC, Finding
from unsus.models.package import PackageFiles

logger = logging.getLogger("unsus.analyzers.metadata")

MANIFEST = "package.json"

LIFECYCLE_HOOKS = ("preinstall", "install", "postinstall", "preuninstall")

DEPENDENCY_SECTIONS = frozenset(
    {"dependencies", "devDependencies", "peerDependencies", "optionalDependencies"}
)

POPULAR_PACKAGES = [
    "express", "react", "vue", "angular", "lodash", "axios", "chalk",
    "commander", "debug", "moment", "webpack", "babel", "eslint",
    "typescript", "next", "nuxt", "jest", "mocha", "prettier",
    "underscore", "request", "bluebird", "async", "rxjs", "dayjs",
    "dotenv", "cors", "uuid", "mongoose", "sequelize", "passport",
    "jsonwebtoken", "bcrypt", "nodemailer", "socket.io", "redis",
    "pg", "mysql2", "puppeteer", "cheerio", "yargs", "inquirer",
    "ora", "boxen", "glob", "rimraf", "mkdirp", "semver",
    "colors", "faker", "ethers", "web3", "hardhat", "truffle",
]  # fmt: skip

TYPOSQUAT_MAX_DISTANCE = 2
BASE64_MIN_LENGTH = 16

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+=*$")
_VERSION_RE = re.compile(r"^[\d.]+$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_URL_RE = re.compile(r"https?://[^\s'\"<>`]+")

# Shell patterns inside lifecycle commands.
_DOWNLOADER_RE = re.compile(
    r"\b(?:curl|wget|Invoke-WebRequest|iwr|DownloadString)\b", re.IGNORECASE
)
_PIPE_TO_SHELL_RE = re.compile(r"\b(?:curl|wget)\b[^;&]*\|\s*(?:sudo\s+)?(?:ba|z|da)?sh\b")
_INLINE_EVAL_RE = re.compile(
    r"\bnode\s+(?:-e|--eval|-p|--print)\b|\beval\b|base64\s+(?:-d|--decode)"
)


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb))
            )
        previous = current
    return previous[-1]


def closest_popular(name: str) -> tuple[str, int] | None:
    """Nearest popular package within the typosquat distance, if any."""
    bare = name.rsplit("/", 1)[-1].lower()
    best: tuple[str, int] | None = None
    for popular in POPULAR_PACKAGES:
        if bare == popular:
            return None
        distance = levenshtein(bare, popular)
        if 0 < distance <= TYPOSQUAT_MAX_DISTANCE and (best is None or distance < best[1]):
            best = (popular, distance)
    return best


def looks_base64(value: str) -> bool:
    if len(value) < BASE64_MIN_LENGTH:
        return False
    if _VERSION_RE.match(value) or _HEX_RE.match(value):
        return False
    if value.startswith(("http://", "https://")) or any(c.isspace() for c in value):
        return False
    return bool(_BASE64_RE.match(value))


def walk_strings(obj: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield (dotted path, value) for every string in the manifest."""
    if isinstance(obj, str):
        yield path, obj
    elif isinstance(obj, list):
        for i, item in enumerate(obj):
            yield from walk_strings(item, f"{path}[{i}]")
    elif isinstance(obj, dict):
        for key, value in obj.items():
            if key in DEPENDENCY_SECTIONS:
                continue
            yield from walk_strings(value, f"{path}.{key}" if path else key)


def decode_base64(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def _key_line(text: str, key: str) -> int:
    m = re.search(rf"{re.escape(json.dumps(key))}\s*:", text)
    return line_of(text, m.start()) if m else 0


def _value_line(text: str, value: str) -> int:
    idx = text.find(json.dumps(value))
    return line_of(text, idx) if idx != -1 else 0


def inspect_command(hook: str, command: str, line: int) -> list[Finding]:
    """Downloads and inline execution inside a lifecycle command."""
    code = f'"{hook}": "{command}"'
    findings: list[Finding] = []
    if _PIPE_TO_SHELL_RE.search(command) or _INLINE_EVAL_RE.search(command):
        findings.append(
            Finding(
                type=FindingType.EXEC,
                severity=Severity.CRITICAL,
                message=f'"{hook}" script executes downloaded or inline code',
                file=MANIFEST,
                line=line,
                code=code,
            )
        )
    if _DOWNLOADER_RE.search(command):
        findings.append(
            Finding(
                type=FindingType.NETWORK,
                severity=Severity.DANGER,
                message=f'"{hook}" script downloads remote content',
                file=MANIFEST,
                line=line,
                code=code,
            )
        )
    return findings


def analyze_manifest(package: PackageFiles) -> AnalyzerOutput:
    manifest = package.manifest
    text = package.manifest_text
    output = AnalyzerOutput()

    if package.manifest_error:
        output.findings.append(
            Finding(
                type=FindingType.PARSE_ERROR,
                severity=Severity.INFO,
                message=f"Could not read {MANIFEST}: {package.manifest_error}",
                file=MANIFEST,
            )
        )

    scripts = package.scripts
    for hook in LIFECYCLE_HOOKS:
        command = scripts.get(hook)
        if not command:
            continue
        line = _key_line(text, hook)
        output.findings.append(
            Finding(
                type=FindingType.INSTALL_SCRIPT,
                severity=Severity.CRITICAL,
                message=f'"{hook}" lifecycle script: {command}',
                file=MANIFEST,
                line=line,
                code=f'"{hook}": "{command}"',
            )
        )
        output.findings.extend(inspect_command(hook, command, line))

    for path, value in walk_strings(manifest):
        if not looks_base64(value):
            continue
        line = _value_line(text, value)
        shown = value if len(value) <= 60 else value[:60] + "..."
        output.findings.append(
            Finding(
                type=FindingType.METADATA_BASE64,
                severity=Severity.DANGER,
                message=f"Possible base64 in {path}: {shown!r}",
                file=MANIFEST,
                line=line,
                code=value[:120],
            )
        )
        for url in _URL_RE.findall(decode_base64(value)):
            output.iocs.append(IOC(type=IOCType.URL, value=url, context=f"{MANIFEST}:{line}"))

    name = manifest.get("name")
    if isinstance(name, str) and name:
        match = closest_popular(name)
        if match:
            popular, distance = match
            output.findings.append(
                Finding(
                    type=FindingType.TYPOSQUAT,
                    severity=Severity.DANGER,
                    message=f'Name "{name}" looks like "{popular}" (distance {distance})',
                    file=MANIFEST,
                    line=_key_line(text, "name"),
                    code=f'"name": "{name}"',
                )
            )

    return output


class MetadataAnalyzer(BaseAnalyzer):
    """Lifecycle scripts, encoded manifest values, and near-miss names."""

    @property
    def name(self) -> str:
        return AnalyzerName.METADATA

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        output = analyze_manifest(package)
        logger.info(
            "Metadata analyzer found %d findings, %d IOCs",
            len(output.findings),
            len(output.iocs),
        )
        return output
