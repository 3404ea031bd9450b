# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from unsus.core.constants import RiskLevel


def _default_cache_path() -> Path:
    return Path.home() / ".unsus" / "urlhaus.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="UNSUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Logging
    log_level: str = "WARNING"
    log_format: str = "text"

    # Package loading
    max_file_size: int = 5 * 1024 * 1024
    binary_header_bytes: int = 512
    ignored_dirs: list[str] = [
        "node_modules",
        ".git",
        "test",
        "tests",
        "__tests__",
        "coverage",
        ".nyc_output",
    ]

    @field_validator("ignored_dirs", mode="before")
    @classmethod
    def _parse_ignored_dirs(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [d.strip() for d in v.split(",") if d.strip()]
        return v if isinstance(v, list) else []

    # Known-vulnerability lookup
    npm_audit_enabled: bool = True
    npm_bin: str = "npm"
    npm_audit_timeout: float = 60.0

    # Threat intelligence
    threat_intel_enabled: bool = True
    threat_intel_cache_path: Path = Field(default_factory=_default_cache_path)
    threat_intel_cache_ttl: int = 3600
    urlhaus_url: str = "https://urlhaus-api.abuse.ch/v1/urls/recent/limit/1000/"
    threat_intel_timeout: float = 10.0
    virustotal_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("UNSUS_VIRUSTOTAL_API_KEY", "VIRUSTOTAL_API_KEY"),
    )
    virustotal_max_checks: int = 4
    virustotal_delay: float = 15.5

    # Dynamic sandbox
    docker_bin: str = "docker"
    sandbox_image: str = "unsus-sandbox"
    sandbox_timeout: float = 60.0
    sandbox_hook_timeout: int = 15
    sandbox_memory: str = "512m"
    sandbox_cpus: str = "1"
    sandbox_pids_limit: int = 100

    # CLI
    fail_on: RiskLevel = RiskLevel.HIGH


def get_settings() -> Settings:
    return Settings()
