# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Classification of environment variable names by sensitivity."""

from __future__ import annotations

import re

from unsus.core.constants import FindingType, Severity

SENSITIVE_NAMES = frozenset(
    {
        "NPM_TOKEN",
        "NODE_AUTH_TOKEN",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "GITLAB_TOKEN",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "DATABASE_URL",
        "MONGODB_URI",
        "MONGO_URI",
        "REDIS_URL",
        "SSH_AUTH_SOCK",
        "DOCKER_PASSWORD",
        "HEROKU_API_KEY",
        "SLACK_WEBHOOK_URL",
        "DISCORD_WEBHOOK",
    }
)

SENSITIVE_RE = re.compile(
    r"TOKEN|SECRET|PASSW(?:OR)?D|API_?KEY|PRIVATE_?KEY|ACCESS_?KEY|CREDENTIAL"
    r"|AUTH(?!OR)|SESSION|COOKIE|MNEMONIC|SEED_PHRASE|WALLET"
    r"|^AWS_|^AZURE_|^GCP_|^GOOGLE_APPLICATION_CREDENTIALS$|^STRIPE_",
    re.IGNORECASE,
)

BENIGN_NAMES = frozenset(
    {
        "NODE_ENV",
        "HOME",
        "PATH",
        "PWD",
        "USER",
        "USERNAME",
        "SHELL",
        "TERM",
        "LANG",
        "LC_ALL",
        "TZ",
        "CI",
        "DEBUG",
        "PORT",
        "HOST",
        "TMPDIR",
        "TEMP",
        "TMP",
        "FORCE_COLOR",
        "NO_COLOR",
        "NODE_DEBUG",
        "NODE_OPTIONS",
        "NODE_PATH",
        "APPDATA",
        "LOCALAPPDATA",
        "USERPROFILE",
        "XDG_CONFIG_HOME",
        "XDG_CACHE_HOME",
        "COLORTERM",
        "TERM_PROGRAM",
        "INIT_CWD",
    }
)

BENIGN_PREFIXES = ("npm_config_", "npm_package_", "npm_lifecycle_")


def classify_env(name: str) -> tuple[FindingType, Severity]:
    """Finding type and severity for a read of ``process.env[name]``."""
    if name in SENSITIVE_NAMES or SENSITIVE_RE.search(name):
        return FindingType.ENV_ACCESS_SENSITIVE, Severity.DANGER
    if name in BENIGN_NAMES or name.startswith(BENIGN_PREFIXES):
        return FindingType.ENV_ACCESS, Severity.INFO
    return FindingType.ENV_ACCESS, Severity.WARNING
