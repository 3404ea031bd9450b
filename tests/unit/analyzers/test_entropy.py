# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the high-entropy string analyzer."""

from __future__ import annotations

import math
import random
import string

import pytest

from unsus.analyzers.entropy import (
    WARNING_THRESHOLD,
    EntropyAnalyzer,
    check_string,
    shannon_entropy,
    warning_threshold,
)
from unsus.core.constants import FindingType, Severity

# 32 distinct characters, each once: exactly 5 bits/char.
MEDIUM_TOKEN = "K7QJ2XM5ZD3WBN6RPV4HTCYFLEGSAIUO"
# 64 distinct characters: 6 bits/char.
HIGH_TOKEN = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


class TestShannonEntropy:
    def test_empty(self):
        assert shannon_entropy("") == 0.0

    def test_uniform(self):
        assert shannon_entropy("aaaa") == 0.0
        assert shannon_entropy("ab") == pytest.approx(1.0)
        assert shannon_entropy("abcd") == pytest.approx(2.0)

    def test_tokens(self):
        assert shannon_entropy(MEDIUM_TOKEN) == pytest.approx(5.0)
        assert shannon_entropy(HIGH_TOKEN) == pytest.approx(6.0)


class TestCheckString:
    def test_warning_band(self):
        finding = check_string("a.js", MEDIUM_TOKEN, 3)
        assert finding is not None
        assert finding.severity == Severity.WARNING
        assert finding.type == FindingType.OBFUSCATION
        assert finding.line == 3

    def test_danger_band(self):
        finding = check_string("a.js", HIGH_TOKEN, 1)
        assert finding.severity == Severity.DANGER

    def test_short_strings_ignored(self):
        assert check_string("a.js", "aZ9$kQ2!", 1) is None

    def test_low_entropy_ignored(self):
        assert check_string("a.js", "hello world hello world", 1) is None

    @pytest.mark.parametrize(
        "value",
        [
            "https://cdn.example.com/" + MEDIUM_TOKEN,
            "sha512-" + HIGH_TOKEN,
            "[A-Za-z0-9_" + MEDIUM_TOKEN + "]",
        ],
    )
    def test_allow_listed_shapes(self, value):
        assert check_string("a.js", value, 1) is None

    def test_random_base32_keys_are_flagged(self):
        rng = random.Random(1337)
        alphabet = string.ascii_uppercase + "234567"
        keys = ["".join(rng.choice(alphabet) for _ in range(40)) for _ in range(500)]
        missed = [k for k in keys if check_string("a.js", k, 1) is None]
        assert missed == []

    @pytest.mark.parametrize(
        "value",
        [
            "ERR_INVALID_ARG_TYPE_WITH_EXTRA_DETAILS",
            "Content-Security-Policy-Report-Only",
            "application/x-www-form-urlencoded",
            "node_modules/some-package/lib/internal",
            "da39a3ee5e6b4b0d3255bfef95601890afd80709",
            "123e4567-e89b-12d3-a456-426614174000",
        ],
    )
    def test_long_benign_identifiers(self, value):
        assert check_string("a.js", value, 1) is None


class TestWarningThreshold:
    def test_prose_keeps_fixed_threshold(self):
        prose = "this is a fairly long sentence of english prose"
        assert warning_threshold(prose) == WARNING_THRESHOLD

    def test_short_token_keeps_fixed_threshold(self):
        assert warning_threshold("aZ9kQ2xW7pLm") == WARNING_THRESHOLD

    def test_long_token_scales_with_length(self):
        assert warning_threshold("A" * 40) == pytest.approx(0.65 * math.log2(40))
        assert warning_threshold("A" * 4096) == WARNING_THRESHOLD


class TestEntropyAnalyzer:
    async def test_string_and_template_literals(self, package_files):
        source = f'const k = "{MEDIUM_TOKEN}";\nconst t = `{HIGH_TOKEN}`;\n'
        pkg = package_files({"index.js": source}, manifest={"name": "demo"})
        output = await EntropyAnalyzer().analyze(pkg)
        assert [(f.severity, f.line) for f in output.findings] == [
            (Severity.WARNING, 1),
            (Severity.DANGER, 2),
        ]
        assert "template" in output.findings[1].message

    async def test_unparseable_file_skipped(self, package_files):
        pkg = package_files({"broken.js": f'"{HIGH_TOKEN}" function ('})
        output = await EntropyAnalyzer().analyze(pkg)
        assert output.findings == []

    async def test_current_syntax_is_scanned(self, package_files):
        source = f'const k = cfg?.key ?? "{MEDIUM_TOKEN}";\nclass C {{ #s = `{HIGH_TOKEN}`; }}\n'
        pkg = package_files({"index.js": source})
        output = await EntropyAnalyzer().analyze(pkg)
        assert [(f.severity, f.line) for f in output.findings] == [
            (Severity.WARNING, 1),
            (Severity.DANGER, 2),
        ]
