# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for unsus."""


class UnsusError(Exception):
    """Base exception for all unsus errors."""


class PackageLoadError(UnsusError):
    """The package source could not be loaded at all."""


class SandboxError(UnsusError):
    """Sandbox infrastructure failure (runtime missing, image build failed)."""


class ToolUnavailableError(UnsusError):
    """An external executable required by a collaborator is not installed."""
