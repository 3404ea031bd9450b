# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for sandbox output parsing, finding translation and orchestration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from unsus.core.constants import DYNAMIC_FILE, FindingType, Severity
from unsus.core.exceptions import SandboxError
from unsus.core.process import ProcessResult
from unsus.models.scan import DynamicResult, NetworkAttempt, ResourceSample
from unsus.sandbox.orchestrator import DOCKER_DIR, SandboxOrchestrator
from unsus.sandbox.output import parse_meta, parse_network, parse_output, parse_resources
from unsus.sandbox.translate import dynamic_findings


class FakeDocker:
    """Stands in for the docker CLI; the execute stage writes ``outputs``."""

    def __init__(
        self,
        *,
        image_present: bool = True,
        build_ok: bool = True,
        volume_ok: bool = True,
        timeout_stage: str | None = None,
        outputs: dict[str, str] | None = None,
    ) -> None:
        self.image_present = image_present
        self.build_ok = build_ok
        self.volume_ok = volume_ok
        self.timeout_stage = timeout_stage
        self.outputs = outputs or {}
        self.calls: list[list[str]] = []
        self.outdirs: list[Path] = []

    def run(self, args, *, cwd=None, timeout=None, env=None):
        self.calls.append(list(args))
        cmd = list(args[1:])
        if cmd[:2] == ["image", "inspect"]:
            return ProcessResult(returncode=0 if self.image_present else 1)
        if cmd[0] == "build":
            return ProcessResult(returncode=0 if self.build_ok else 1, stderr="build broke")
        if cmd[:2] == ["volume", "create"]:
            return ProcessResult(returncode=0 if self.volume_ok else 1, stderr="no space")
        if cmd[0] == "run":
            name = cmd[cmd.index("--name") + 1]
            mount = next(a for a in cmd if a.endswith(":/output"))
            outdir = Path(mount.rsplit(":", 1)[0])
            self.outdirs.append(outdir)
            stage = "fetch" if name.startswith("unsus-fetch-") else "execute"
            if stage == self.timeout_stage:
                return ProcessResult(returncode=-1, timed_out=True)
            if stage == "execute":
                for filename, content in self.outputs.items():
                    (outdir / filename).write_text(content)
            return ProcessResult(returncode=0)
        return ProcessResult(returncode=0)

    def verbs(self) -> list[str]:
        return [" ".join(c[1:3]) for c in self.calls]


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------


class TestParseOutput:
    def test_meta_defaults(self):
        assert parse_meta("") == {"exitCode": -1, "duration": 0.0, "timedOut": False}
        assert parse_meta("{oops")["exitCode"] == -1

    def test_meta_merges(self):
        meta = parse_meta('{"exitCode": 3, "duration": 2.5}')
        assert meta == {"exitCode": 3, "duration": 2.5, "timedOut": False}

    @pytest.mark.parametrize(
        "text",
        [
            '{"exitCode": null}',
            '{"exitCode": "x"}',
            '{"exitCode": 1e400}',
            '{"exitCode": true}',
            '{"duration": "abc"}',
            '{"duration": -4}',
            '{"duration": "nan"}',
            '{"duration": [1]}',
            '{"timedOut": "yes"}',
            "[1, 2]",
            '"meta"',
        ],
    )
    def test_meta_tampered_fields_fall_back(self, tmp_path, text):
        assert parse_meta(text) == {"exitCode": -1, "duration": 0.0, "timedOut": False}
        (tmp_path / "meta.json").write_text(text)
        result = parse_output(tmp_path)
        assert (result.install_exit, result.install_duration, result.timed_out) == (-1, 0.0, False)

    def test_meta_numeric_strings(self):
        meta = parse_meta('{"exitCode": "7", "duration": "1.5", "timedOut": true}')
        assert meta == {"exitCode": 7, "duration": 1.5, "timedOut": True}

    def test_network_non_ascii_port(self):
        attempts = parse_network("host:²\n")
        assert [(a.host, a.port) for a in attempts] == [("host:²", 0)]

    def test_network_lines(self):
        attempts = parse_network("evil.test:443\n\n10.0.0.1\nhost:http\n")
        assert [(a.host, a.port) for a in attempts] == [
            ("evil.test", 443),
            ("10.0.0.1", 0),
            ("host:http", 0),
        ]

    def test_resources_skip_header_and_bad_rows(self):
        samples = parse_resources("ts,cpu,mem\n1,80.5,100\nbad,row,x\n2,70\n3,10,20\n")
        assert [(s.ts, s.cpu) for s in samples] == [(1, 80.5), (3, 10.0)]

    def test_full_directory(self, tmp_path):
        (tmp_path / "meta.json").write_text(
            json.dumps({"exitCode": 1, "duration": 4.2, "timedOut": True})
        )
        (tmp_path / "network.log").write_text("evil.test:80\n")
        (tmp_path / "fs-changes.log").write_text("/workspace/a\n/workspace/b\n")
        (tmp_path / "install.log").write_text("hello from postinstall\n")

        result = parse_output(tmp_path)

        assert result.install_exit == 1
        assert result.install_duration == 4.2
        assert result.timed_out is True
        assert result.fs_changes == ["/workspace/a", "/workspace/b"]
        assert "postinstall" in result.stdout

    def test_empty_directory(self, tmp_path):
        result = parse_output(tmp_path, timed_out=True)
        assert result.install_exit == -1
        assert result.network_attempts == []
        assert result.timed_out is True


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def _samples(*cpus: float) -> list[ResourceSample]:
    return [ResourceSample(ts=i, cpu=c, mem=10.0) for i, c in enumerate(cpus)]


class TestDynamicFindings:
    def test_one_finding_per_host(self):
        result = DynamicResult(
            network_attempts=[
                NetworkAttempt(host="evil.test", port=443, raw="evil.test:443"),
                NetworkAttempt(host="evil.test", port=80, raw="evil.test:80"),
                NetworkAttempt(host="1.2.3.4", port=0, raw="1.2.3.4"),
            ]
        )
        findings = dynamic_findings(result)
        assert [(f.type, f.severity, f.file, f.line) for f in findings] == [
            (FindingType.DYNAMIC_NETWORK, Severity.DANGER, DYNAMIC_FILE, 1),
            (FindingType.DYNAMIC_NETWORK, Severity.DANGER, DYNAMIC_FILE, 2),
        ]

    @pytest.mark.parametrize(
        ("cpus", "expected"),
        [
            ((60, 70, 80), [Severity.CRITICAL]),
            ((30, 30, 30), [Severity.WARNING]),
            ((10, 20, 30), []),
            ((95, 95), []),
        ],
    )
    def test_cpu_thresholds(self, cpus, expected):
        findings = dynamic_findings(DynamicResult(resource_samples=_samples(*cpus)))
        assert [f.severity for f in findings] == expected

    def test_fs_changes_capped_and_filtered(self):
        paths = ["/workspace/node_modules/x", "/workspace/package-lock.json"] + [
            f"/workspace/drop{i}" for i in range(7)
        ]
        findings = dynamic_findings(DynamicResult(fs_changes=paths))
        assert len(findings) == 5
        assert findings[0].message == "File created during install: /workspace/drop0"

    def test_timeout_is_last_and_ordinal(self):
        result = DynamicResult(
            network_attempts=[NetworkAttempt(host="evil.test", raw="evil.test")],
            timed_out=True,
        )
        findings = dynamic_findings(result)
        assert [(f.type, f.severity, f.line) for f in findings] == [
            (FindingType.DYNAMIC_NETWORK, Severity.DANGER, 1),
            (FindingType.DYNAMIC_RESOURCE, Severity.DANGER, 2),
        ]

    def test_quiet_run(self):
        assert dynamic_findings(DynamicResult(install_exit=0)) == []


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class TestSandboxOrchestrator:
    def test_successful_run(self, settings, tmp_path):
        docker = FakeDocker(
            outputs={
                "meta.json": json.dumps({"exitCode": 0, "duration": 1.5}),
                "network.log": "evil.test:443\n",
            }
        )
        run = SandboxOrchestrator(settings, docker).run(tmp_path)

        assert docker.verbs() == [
            "image inspect",
            "volume create",
            "run --name",
            "run --name",
            "rm -f",
            "volume rm",
        ]
        fetch, execute = docker.calls[2], docker.calls[3]
        assert f"{tmp_path.resolve()}:/pkg:ro" in fetch
        assert "--network=none" not in fetch
        assert "--network=none" in execute
        assert "--read-only" in execute
        assert run.result.install_exit == 0
        assert [a.host for a in run.result.network_attempts] == ["evil.test"]
        assert [f.type for f in run.findings] == [FindingType.DYNAMIC_NETWORK]
        assert not docker.outdirs[0].exists()

    def test_builds_missing_image(self, settings, tmp_path):
        docker = FakeDocker(image_present=False)
        SandboxOrchestrator(settings, docker).run(tmp_path)
        assert docker.verbs()[:2] == ["image inspect", "build -t"]

    def test_build_failure(self, settings, tmp_path):
        docker = FakeDocker(image_present=False, build_ok=False)
        with pytest.raises(SandboxError, match="build broke"):
            SandboxOrchestrator(settings, docker).run(tmp_path)
        assert "volume create" not in docker.verbs()

    def test_volume_failure_still_cleans_up(self, settings, tmp_path):
        docker = FakeDocker(volume_ok=False)
        with pytest.raises(SandboxError, match="volume"):
            SandboxOrchestrator(settings, docker).run(tmp_path)
        assert docker.verbs()[-2:] == ["rm -f", "volume rm"]

    def test_fetch_timeout_kills_and_skips_execute(self, settings, tmp_path):
        docker = FakeDocker(timeout_stage="fetch")
        run = SandboxOrchestrator(settings, docker).run(tmp_path)

        kill = next(c for c in docker.calls if c[1] == "kill")
        assert kill[2].startswith("unsus-fetch-")
        assert sum(1 for c in docker.calls if c[1] == "run") == 1
        assert run.result.timed_out is True
        assert run.findings[-1].severity == Severity.DANGER


class TestRunEntrypoint:
    def _script(self) -> str:
        return (DOCKER_DIR / "entrypoint-run.sh").read_text()

    def test_timeout_flag_is_sticky_across_hooks(self):
        script = self._script()
        loop = script[script.index("for HOOK in") : script.index("  done")]
        assert 'HOOK_TIMED_OUT="true"' in loop
        assert 'HOOK_TIMED_OUT="false"' not in loop
        assert "|| EXIT=$?" not in loop

    def test_meta_reports_timeout_flag(self):
        assert '\\"timedOut\\":$HOOK_TIMED_OUT}' in self._script()
