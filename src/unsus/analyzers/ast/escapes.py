# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Raw-text detection of chained hex and unicode escape sequences."""

from __future__ import annotations

import re

from unsus.core.constants import FindingType, Severity
from unsus.models.finding import Finding

_ESCAPE = r"(?:\\x[0-9a-fA-F]{2}|\\u[0-9a-fA-F]{4}|\\u\{[0-9a-fA-F]{1,6}\})"
ESCAPE_CHAIN_RE = re.compile(_ESCAPE + r"{3,}")
_SINGLE_ESCAPE_RE = re.compile(r"\\x([0-9a-fA-F]{2})|\\u([0-9a-fA-F]{4})|\\u\{([0-9a-fA-F]{1,6})\}")


def _decode_one(match: re.Match[str]) -> str:
    codepoint = int(next(g for g in match.groups() if g is not None), 16)
    if codepoint > 0x10FFFF:
        return match.group(0)
    return chr(codepoint)


def decode_escapes(text: str) -> str:
    """Decode ``\\xNN``, ``\\uNNNN`` and ``\\u{N}`` escapes in ``text``."""
    return _SINGLE_ESCAPE_RE.sub(_decode_one, text)


def scan_escape_chains(path: str, source: str) -> list[Finding]:
    """One danger finding per line holding three or more chained escapes."""
    findings: list[Finding] = []
    for lineno, line in enumerate(source.splitlines(), start=1):
        chains = ESCAPE_CHAIN_RE.findall(line)
        if not chains:
            continue
        decoded = " ".join(decode_escapes(c) for c in chains)
        shown = decoded if len(decoded) <= 60 else decoded[:60] + "..."
        findings.append(
            Finding(
                type=FindingType.HEX_ESCAPE,
                severity=Severity.DANGER,
                message=f"Escaped string decodes to: {shown!r}",
                file=path,
                line=lineno,
                code=line.strip()[:120],
            )
        )
    return findings
