# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Isolated dynamic execution of package install hooks."""

from unsus.sandbox.orchestrator import SandboxOrchestrator, SandboxRun
from unsus.sandbox.output import parse_output
from unsus.sandbox.translate import dynamic_findings

__all__ = ["SandboxOrchestrator", "SandboxRun", "dynamic_findings", "parse_output"]
