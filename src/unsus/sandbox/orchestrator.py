# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Two-stage container run of a package's install lifecycle.

Stage one fetches dependencies with network access and scripts disabled.
Stage two runs the lifecycle hooks with no network, a read-only root and
syscall tracing. Both stages share a workspace volume and an output
directory; every container, the volume and the output directory are removed
whether or not the run succeeds.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from unsus.core.config import Settings, get_settings
from unsus.core.exceptions import SandboxError
from unsus.core.process import ProcessResult, ProcessRunner, SubprocessRunner
from unsus.models.finding import Finding
from unsus.models.scan import DynamicResult
from unsus.sandbox.output import parse_output
from unsus.sandbox.translate import dynamic_findings

logger = logging.getLogger("unsus.sandbox.orchestrator")

DOCKER_DIR = Path(__file__).parent / "docker"
IMAGE_BUILD_TIMEOUT = 600.0
CLEANUP_TIMEOUT = 30.0


@dataclass
class SandboxRun:
    result: DynamicResult
    findings: list[Finding] = field(default_factory=list)


class SandboxOrchestrator:
    """Drives the fetch and execute containers through a ProcessRunner."""

    def __init__(
        self,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
        docker_dir: Path = DOCKER_DIR,
    ) -> None:
        self._settings = settings or get_settings()
        self._runner = runner or SubprocessRunner()
        self._docker_dir = docker_dir

    @property
    def image(self) -> str:
        return self._settings.sandbox_image

    def _docker(self, *args: str, timeout: float | None = None) -> ProcessResult:
        return self._runner.run([self._settings.docker_bin, *args], timeout=timeout)

    def ensure_image(self) -> None:
        """Build the sandbox image unless it already exists.

        Raises
        ------
        SandboxError
            If the image cannot be built.
        """
        if self._docker("image", "inspect", self.image, timeout=CLEANUP_TIMEOUT).ok:
            return
        logger.info("Building sandbox image %s", self.image)
        build = self._docker(
            "build", "-t", self.image, str(self._docker_dir), timeout=IMAGE_BUILD_TIMEOUT
        )
        if not build.ok:
            raise SandboxError(f"Failed to build sandbox image: {build.stderr.strip()[:300]}")

    def fetch_args(self, name: str, package_dir: Path, volume: str, outdir: Path) -> list[str]:
        s = self._settings
        return [
            "run",
            "--name", name,
            "--security-opt=no-new-privileges",
            f"--memory={s.sandbox_memory}",
            f"--cpus={s.sandbox_cpus}",
            f"--pids-limit={s.sandbox_pids_limit}",
            "-v", f"{package_dir}:/pkg:ro",
            "-v", f"{volume}:/workspace",
            "-v", f"{outdir}:/output",
            self.image,
            "/entrypoint-fetch.sh",
        ]  # fmt: skip

    def execute_args(self, name: str, volume: str, outdir: Path) -> list[str]:
        s = self._settings
        return [
            "run",
            "--name", name,
            "--network=none",
            "--read-only",
            "--cap-drop=ALL",
            "--cap-add=SYS_PTRACE",
            "--security-opt=no-new-privileges",
            f"--memory={s.sandbox_memory}",
            f"--cpus={s.sandbox_cpus}",
            f"--pids-limit={s.sandbox_pids_limit}",
            "--tmpfs=/tmp:rw,noexec,nosuid,size=50m",
            "-e", f"HOOK_TIMEOUT={s.sandbox_hook_timeout}",
            "-v", f"{volume}:/workspace",
            "-v", f"{outdir}:/output",
            self.image,
            "/entrypoint-run.sh",
        ]  # fmt: skip

    def _run_container(self, name: str, args: list[str]) -> bool:
        """Run one container under the outside timer; True if it timed out."""
        result = self._docker(*args, timeout=self._settings.sandbox_timeout)
        if result.timed_out:
            logger.warning(
                "Container %s exceeded %ss, killing", name, self._settings.sandbox_timeout
            )
            self._docker("kill", name, timeout=CLEANUP_TIMEOUT)
            return True
        if result.returncode != 0:
            logger.warning(
                "Container %s exited %d: %s", name, result.returncode, result.stderr[:200]
            )
        return False

    def run(self, package_dir: str | Path) -> SandboxRun:
        """Execute the package's lifecycle hooks in isolation.

        Raises
        ------
        SandboxError
            On infrastructure failure (image build, volume creation).
        ToolUnavailableError
            If the container runtime binary is missing.
        """
        package_dir = Path(package_dir).resolve()
        self.ensure_image()

        token = uuid.uuid4().hex[:12]
        fetch_name = f"unsus-fetch-{token}"
        run_name = f"unsus-run-{token}"
        volume = f"unsus-ws-{token}"
        outdir = Path(tempfile.mkdtemp(prefix=f"unsus-run-{token}-"))

        try:
            created = self._docker("volume", "create", volume, timeout=CLEANUP_TIMEOUT)
            if not created.ok:
                raise SandboxError(f"Failed to create sandbox volume: {created.stderr.strip()}")

            logger.info("Sandbox fetch stage for %s", package_dir)
            timed_out = self._run_container(
                fetch_name, self.fetch_args(fetch_name, package_dir, volume, outdir)
            )
            if not timed_out:
                logger.info("Sandbox execute stage for %s", package_dir)
                timed_out = self._run_container(
                    run_name, self.execute_args(run_name, volume, outdir)
                )

            result = parse_output(outdir, timed_out=timed_out)
        finally:
            self.cleanup(fetch_name, run_name, volume=volume, outdir=outdir)

        findings = dynamic_findings(result)
        logger.info(
            "Sandbox run finished: exit=%d timed_out=%s findings=%d",
            result.install_exit,
            result.timed_out,
            len(findings),
        )
        return SandboxRun(result=result, findings=findings)

    def cleanup(self, *containers: str, volume: str, outdir: Path) -> None:
        self._docker("rm", "-f", *containers, timeout=CLEANUP_TIMEOUT)
        self._docker("volume", "rm", "-f", volume, timeout=CLEANUP_TIMEOUT)
        shutil.rmtree(outdir, ignore_errors=True)
