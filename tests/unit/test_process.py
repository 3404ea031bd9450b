# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the subprocess-backed process runner."""

from __future__ import annotations

import subprocess

import pytest

from unsus.core.exceptions import ToolUnavailableError
from unsus.core.process import ProcessResult, SubprocessRunner


class TestProcessResult:
    def test_ok(self):
        assert ProcessResult(returncode=0).ok
        assert not ProcessResult(returncode=1).ok
        assert not ProcessResult(returncode=0, timed_out=True).ok


class TestSubprocessRunner:
    def test_missing_executable(self):
        with pytest.raises(ToolUnavailableError, match="not installed"):
            SubprocessRunner().run(["unsus-no-such-binary-anywhere", "--version"])

    def test_completed_process(self, monkeypatch):
        def fake_run(args, **kwargs):
            assert kwargs["capture_output"] is True
            return subprocess.CompletedProcess(args, 3, stdout="out", stderr=None)

        monkeypatch.setattr("unsus.core.process.subprocess.run", fake_run)
        result = SubprocessRunner().run(["npm", "audit"])
        assert result == ProcessResult(returncode=3, stdout="out", stderr="")

    def test_timeout_is_reported(self, monkeypatch):
        def fake_run(args, **kwargs):
            raise subprocess.TimeoutExpired(args, kwargs["timeout"], output=b"partial")

        monkeypatch.setattr("unsus.core.process.subprocess.run", fake_run)
        result = SubprocessRunner().run(["docker", "run"], timeout=1.0)
        assert result.timed_out
        assert result.stdout == "partial"
        assert not result.ok
