# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Narrow process-execution capability used by npm audit and the sandbox."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from unsus.core.exceptions import ToolUnavailableError
from unsus.core.logging import redact_sensitive

logger = logging.getLogger("unsus.core.process")


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class ProcessRunner(Protocol):
    """Runs an external command to completion."""

    def run(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessResult: ...


class SubprocessRunner:
    """ProcessRunner backed by :func:`subprocess.run`.

    A timeout is reported through ``ProcessResult.timed_out`` rather than
    raised; a missing executable raises :class:`ToolUnavailableError`.
    """

    def run(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        logger.debug("exec: %s", redact_sensitive(" ".join(args)))
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolUnavailableError(f"{args[0]} is not installed") from exc
        except subprocess.TimeoutExpired as exc:
            logger.warning("Command timed out after %ss: %s", timeout, args[0])
            return ProcessResult(
                returncode=-1,
                stdout=_as_text(exc.stdout),
                stderr=_as_text(exc.stderr),
                timed_out=True,
            )
        return ProcessResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
