# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Executable signatures and cryptominer indicators."""

from __future__ import annotations

import logging
import re

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer, line_of
from unsus.core.constants import AnalyzerName, FindingType, Severity
from unsus.models.finding import Finding
from unsus.models.package import BinaryFile, PackageFiles, SourceFile

logger = logging.getLogger("unsus.analyzers.binary")

MAGIC_SIGNATURES: list[tuple[str, bytes]] = [
    ("ELF", b"\x7fELF"),
    ("PE/MZ", b"MZ"),
    ("Mach-O", b"\xfe\xed\xfa\xce"),
    ("Mach-O", b"\xfe\xed\xfa\xcf"),
    ("Mach-O", b"\xce\xfa\xed\xfe"),
    ("Mach-O", b"\xcf\xfa\xed\xfe"),
    ("Mach-O fat", b"\xca\xfe\xba\xbe"),
]

MINER_NAMES = [
    "xmrig",
    "ccminer",
    "cgminer",
    "cpuminer",
    "minerd",
    "ethminer",
    "nbminer",
    "phoenixminer",
    "gminer",
    "lolminer",
    "t-rex",
    "bfgminer",
]

POOL_DOMAINS = [
    "pool.minexmr.com",
    "xmrpool.eu",
    "monerohash.com",
    "moneroocean.stream",
    "pool.supportxmr.com",
    "hashvault.pro",
    "nanopool.org",
    "herominers.com",
    "2miners.com",
    "f2pool.com",
    "nicehash.com",
    "unmineable.com",
    "minergate.com",
    "antpool.com",
    "viabtc.com",
    "ethermine.org",
]

STRATUM_RE = re.compile(r"stratum\+?(?:tcp|ssl|tls)?://", re.IGNORECASE)
MINER_REF_RES = [(m, re.compile(rf"(?<![\w-]){re.escape(m)}(?![\w-])")) for m in MINER_NAMES]

RESOURCE_PROBES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"os\.cpus\(\)"), "os.cpus() CPU enumeration"),
    (re.compile(r"navigator\.hardwareConcurrency"), "hardwareConcurrency check"),
    (re.compile(r"worker_threads"), "worker_threads usage"),
    (re.compile(r"WebAssembly\.(?:instantiate|compile)"), "WebAssembly loading"),
]


def match_magic(header: bytes) -> str | None:
    for label, magic in MAGIC_SIGNATURES:
        if header.startswith(magic):
            return label
    return None


def scan_binary(binary: BinaryFile) -> list[Finding]:
    findings: list[Finding] = []
    label = match_magic(binary.header)
    if label:
        findings.append(
            Finding(
                type=FindingType.BINARY_SUSPICIOUS,
                severity=Severity.DANGER,
                message=f"{label} executable in package: {binary.path}",
                file=binary.path,
            )
        )
    lower = binary.path.lower()
    miner = next((m for m in MINER_NAMES if m in lower), None)
    if miner:
        findings.append(
            Finding(
                type=FindingType.CRYPTOMINER,
                severity=Severity.CRITICAL,
                message=f"Known miner binary {miner!r} found: {binary.path}",
                file=binary.path,
            )
        )
    return findings


def _excerpt(text: str, start: int, end: int) -> str:
    return text[max(0, start - 20) : end + 20].strip()


def scan_source(source: SourceFile) -> list[Finding]:
    """Mining-pool, stratum, miner-name and resource-probe hits in one file."""
    text = source.content
    findings: list[Finding] = []

    def add(severity: Severity, message: str, start: int, end: int) -> None:
        findings.append(
            Finding(
                type=FindingType.CRYPTOMINER,
                severity=severity,
                message=message,
                file=source.path,
                line=line_of(text, start),
                code=_excerpt(text, start, end),
            )
        )

    for pool in POOL_DOMAINS:
        idx = text.find(pool)
        if idx != -1:
            add(Severity.CRITICAL, f"Mining pool domain: {pool}", idx, idx + len(pool))

    stratum = STRATUM_RE.search(text)
    if stratum:
        add(Severity.CRITICAL, "Stratum mining protocol URL", stratum.start(), stratum.end())

    for name, regex in MINER_REF_RES:
        m = regex.search(text)
        if m:
            add(Severity.DANGER, f"Reference to miner {name!r} in source", m.start(), m.end())

    for regex, message in RESOURCE_PROBES:
        m = regex.search(text)
        if m:
            add(Severity.WARNING, message, m.start(), m.end())

    return findings


class BinaryAnalyzer(BaseAnalyzer):
    """Executable headers, miner binaries and mining references."""

    @property
    def name(self) -> str:
        return AnalyzerName.BINARY

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        findings: list[Finding] = []
        for binary in package.binary_files:
            findings.extend(scan_binary(binary))
        for source in package.source_files:
            findings.extend(scan_source(source))
        logger.info(
            "Binary analyzer checked %d binaries, found %d findings",
            len(package.binary_files),
            len(findings),
        )
        return AnalyzerOutput(findings=findings)
