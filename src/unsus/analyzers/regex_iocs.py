# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Regex extraction of indicators of compromise from raw file text."""

from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer, line_of
from unsus.core.constants import AnalyzerName, IOCType
from unsus.models.finding import IOC
from unsus.models.package import PackageFiles, SourceFile

logger = logging.getLogger("unsus.analyzers.regex")


@dataclass(frozen=True)
class IOCPattern:
    type: IOCType
    regex: re.Pattern[str]


# Order matters: earlier patterns claim (type, value) keys first.
PATTERNS: list[IOCPattern] = [
    IOCPattern(IOCType.WALLET_ETH, re.compile(r"0x[a-fA-F0-9]{40}")),
    IOCPattern(
        IOCType.WALLET_BTC, re.compile(r"(?:^|[^a-zA-Z0-9])([13][a-km-zA-HJ-NP-Z1-9]{25,34})")
    ),
    IOCPattern(IOCType.WALLET_BTC, re.compile(r"bc1[a-zA-HJ-NP-Z0-9]{25,90}")),
    IOCPattern(
        IOCType.WALLET_SOL, re.compile(r"(?:^|[^a-zA-Z0-9/])([1-9A-HJ-NP-Za-km-z]{32,44})")
    ),
    IOCPattern(IOCType.WALLET_TRX, re.compile(r"T[a-zA-HJ-NP-Z0-9]{33}")),
    IOCPattern(IOCType.URL, re.compile(r"https?://[^\s'\"`,)\]}>${}]+")),
    IOCPattern(
        IOCType.IP, re.compile(r"(?:^|[^0-9])(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})(?::\d+)?")
    ),
    IOCPattern(IOCType.ENV_VAR, re.compile(r"process\.env\.([A-Z_][A-Z0-9_]*)")),
    IOCPattern(IOCType.ENV_VAR, re.compile(r"process\.env\[['\"]([A-Z_][A-Z0-9_]*)['\"]\]")),
    IOCPattern(
        IOCType.DOMAIN,
        re.compile(
            r"hostname:\s*['\"]([a-zA-Z0-9][-a-zA-Z0-9]*(?:\.[a-zA-Z0-9][-a-zA-Z0-9]*)+)['\"]"
        ),
    ),
    IOCPattern(
        IOCType.DOMAIN,
        re.compile(r"['\"]([a-zA-Z0-9][-a-zA-Z0-9]*\.[a-zA-Z]{2,}(?:\.[a-zA-Z]{2,})?)['\"]"),
    ),
]

SAFE_DOMAINS = frozenset(
    {"registry.npmjs.org", "npmjs.com", "github.com", "nodejs.org", "localhost"}
)
CODE_FILE_RE = re.compile(r"\.(?:json|js|ts|mjs|cjs|md|txt|log|css|html)$", re.IGNORECASE)
_TRAILING_RE = re.compile(r"['\"`;,)\]}]+$")
_TRX_AMBIGUOUS_RE = re.compile(r"[0OIl+/=]")


def normalize(raw: str) -> str:
    return _TRAILING_RE.sub("", raw.strip())


def _valid_ip(value: str) -> bool:
    if value.startswith(("0.", "127.")):
        return False
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_false_positive(ioc_type: IOCType, value: str) -> bool:
    """Type-specific filters for shapes that are rarely real indicators."""
    if ioc_type == IOCType.WALLET_SOL:
        return value.islower() and value.isalpha()
    if ioc_type == IOCType.WALLET_TRX:
        return len(value) != 34 or bool(_TRX_AMBIGUOUS_RE.search(value))
    if ioc_type == IOCType.URL:
        try:
            return (urlsplit(value).hostname or "") in SAFE_DOMAINS
        except ValueError:
            return False
    if ioc_type == IOCType.DOMAIN:
        return value.lower() in SAFE_DOMAINS or bool(CODE_FILE_RE.search(value))
    if ioc_type == IOCType.IP:
        return not _valid_ip(value)
    return False


def extract_iocs(files: list[SourceFile]) -> list[IOC]:
    """Run every pattern over every file, keeping the first hit per (type, value)."""
    iocs: list[IOC] = []
    seen: set[tuple[str, str]] = set()
    for f in files:
        for pattern in PATTERNS:
            for match in pattern.regex.finditer(f.content):
                group = 1 if pattern.regex.groups else 0
                value = normalize(match.group(group))
                if len(value) < 4:
                    continue
                key = (pattern.type, value)
                if key in seen:
                    continue
                seen.add(key)
                if is_false_positive(pattern.type, value):
                    continue
                line = line_of(f.content, match.start(group))
                iocs.append(IOC(type=pattern.type, value=value, context=f"{f.path}:{line}"))
    return iocs


class RegexIOCAnalyzer(BaseAnalyzer):
    """Pulls wallets, URLs, IPs, env names and domains out of text files."""

    @property
    def name(self) -> str:
        return AnalyzerName.REGEX

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        iocs = extract_iocs(package.text_files)
        logger.info("Regex extractor found %d IOCs", len(iocs))
        return AnalyzerOutput(iocs=iocs)
