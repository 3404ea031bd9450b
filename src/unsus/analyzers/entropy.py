# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""High-entropy string literal detection."""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Any

from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer, skip_minified_duplicates
from unsus.analyzers.javascript import (
    JavaScriptSyntaxError,
    iter_nodes,
    node_line,
    parse_source,
    template_text,
)
from unsus.core.constants import AnalyzerName, FindingType, Severity
from unsus.models.finding import Finding
from unsus.models.package import PackageFiles

logger = logging.getLogger("unsus.analyzers.entropy")

MIN_LENGTH = 12
WARNING_THRESHOLD = 4.5
DANGER_THRESHOLD = 5.5

# Entropy of an n-character sample is bounded by log2(n), so long
# whitespace-free tokens are held to a share of that bound instead.
TOKEN_MIN_LENGTH = 32
TOKEN_WARNING_RATIO = 0.65
TOKEN_RE = re.compile(r"^[A-Za-z0-9+/=_-]+$")

# Benign shapes that are naturally high-entropy.
ALLOW_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\[(?:\^)?[^\]]*(?:\\[dws]|[a-zA-Z0-9]-[a-zA-Z0-9])[^\]]*\]"),
    re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE),
    re.compile(r"^[a-z]+(?:[A-Z][a-z0-9]+)+$"),
    re.compile(r"^\s*(?:import|export)\b"),
    re.compile(r"\.(?:js|mjs|cjs|ts|tsx|jsx|json|css|scss|html|md|map|png|svg|woff2?)$"),
    re.compile(r"^[\w-]+(?:\.[\w-]+)*\.(?:com|org|net|io|dev|app|co)$"),
    re.compile(r"^sha(?:1|256|384|512)-"),
    re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)+$"),
    re.compile(r"^[A-Za-z][a-z0-9]*(?:[_-][A-Za-z][a-z0-9]*)+$"),
    re.compile(r"^(?:~|\.{1,2})?/?(?:[a-z0-9_.@-]+/)+[a-z0-9_.@-]*$"),
    re.compile(r"^(?:[0-9a-f]{32}|[0-9a-f]{40}|[0-9a-f]{64}|[0-9a-f]{128})$"),
    re.compile(r"^[0-9a-f]{8}-(?:[0-9a-f]{4}-){3}[0-9a-f]{12}$", re.IGNORECASE),
]


def shannon_entropy(text: str) -> float:
    """Bits per character over the character distribution of ``text``."""
    if not text:
        return 0.0
    total = len(text)
    return -sum((n / total) * math.log2(n / total) for n in Counter(text).values())


def is_allowed(value: str) -> bool:
    return any(p.search(value) for p in ALLOW_PATTERNS)


def _candidate_strings(program: Any) -> list[tuple[str, int, str]]:
    """(text, line, kind) for each string literal and template chunk."""
    out: list[tuple[str, int, str]] = []
    for node in iter_nodes(program):
        if node.type == "Literal" and isinstance(node.value, str):
            if getattr(node, "regex", None) is None:
                out.append((node.value, node_line(node), "string"))
        elif node.type == "TemplateLiteral":
            for quasi in node.quasis:
                text = template_text(quasi, "raw") or template_text(quasi)
                out.append((text, node_line(quasi), "template"))
    return out


def warning_threshold(value: str) -> float:
    """Entropy at which ``value`` starts to look encoded."""
    if len(value) < TOKEN_MIN_LENGTH or not TOKEN_RE.match(value):
        return WARNING_THRESHOLD
    return min(WARNING_THRESHOLD, TOKEN_WARNING_RATIO * math.log2(len(value)))


def check_string(path: str, value: str, line: int, kind: str = "string") -> Finding | None:
    if len(value) < MIN_LENGTH or is_allowed(value):
        return None
    entropy = shannon_entropy(value)
    if entropy < warning_threshold(value):
        return None
    severity = Severity.DANGER if entropy >= DANGER_THRESHOLD else Severity.WARNING
    shown = value if len(value) <= 50 else value[:50] + "..."
    return Finding(
        type=FindingType.OBFUSCATION,
        severity=severity,
        message=f"High entropy {kind} ({entropy:.2f} bits/char): {shown!r}",
        file=path,
        line=line,
        code=value[:120],
    )


class EntropyAnalyzer(BaseAnalyzer):
    """Flags string literals whose character distribution looks encoded."""

    @property
    def name(self) -> str:
        return AnalyzerName.ENTROPY

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        findings: list[Finding] = []
        for f in skip_minified_duplicates(package.source_files):
            try:
                program = parse_source(f.content)
            except JavaScriptSyntaxError:
                # The AST analyzer reports the parse error.
                continue
            for value, line, kind in _candidate_strings(program):
                finding = check_string(f.path, value, line, kind)
                if finding is not None:
                    findings.append(finding)
        logger.info("Entropy analyzer found %d findings", len(findings))
        return AnalyzerOutput(findings=findings)
