# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations, scoring weights, and threshold constants."""

from enum import StrEnum


class Severity(StrEnum):
    CRITICAL = "critical"
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"


class FindingType(StrEnum):
    INSTALL_SCRIPT = "install-script"
    EVAL = "eval"
    EXEC = "exec"
    NETWORK = "network"
    FS_ACCESS = "fs-access"
    FS_WRITE = "fs-write"
    ENV_ACCESS = "env-access"
    ENV_ACCESS_SENSITIVE = "env-access-sensitive"
    OBFUSCATION = "obfuscation"
    HEX_ESCAPE = "hex-escape"
    DYNAMIC_REQUIRE = "dynamic-require"
    DYNAMIC_EXEC = "dynamic-exec"
    BASE64_DECODE = "base64-decode"
    STRING_CONSTRUCTION = "string-construction"
    VM_EXEC = "vm-exec"
    GEO_TRIGGER = "geo-trigger"
    TYPOSQUAT = "typosquat"
    METADATA_BASE64 = "metadata-base64"
    PARSE_ERROR = "parse-error"
    BINARY_SUSPICIOUS = "binary-suspicious"
    CRYPTOMINER = "cryptominer"
    THREAT_INTEL = "threat-intel"
    NPM_AUDIT = "npm-audit"
    DYNAMIC_NETWORK = "dynamic-network"
    DYNAMIC_RESOURCE = "dynamic-resource"
    DYNAMIC_FS = "dynamic-fs"


class IOCType(StrEnum):
    URL = "url"
    DOMAIN = "domain"
    IP = "ip"
    ENV_VAR = "env-var"
    WALLET_ETH = "wallet-eth"
    WALLET_BTC = "wallet-btc"
    WALLET_SOL = "wallet-sol"
    WALLET_TRX = "wallet-trx"


class RiskLevel(StrEnum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnalyzerName(StrEnum):
    AST = "ast"
    ENTROPY = "entropy"
    REGEX = "regex"
    BINARY = "binary"
    METADATA = "metadata"
    NPM_AUDIT = "npm_audit"
    THREAT_INTEL = "threat_intel"
    DYNAMIC = "dynamic"


# Sentinel ``file`` for findings that are not tied to a package file.
DYNAMIC_FILE = "dynamic-analysis"

RISK_LEVEL_ORDER: list[RiskLevel] = [
    RiskLevel.SAFE,
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
    RiskLevel.CRITICAL,
]

# Upper bounds (inclusive) of each tier; anything above the last is critical.
RISK_THRESHOLD_SAFE = 1.0
RISK_THRESHOLD_LOW = 3.0
RISK_THRESHOLD_MEDIUM = 5.0
RISK_THRESHOLD_HIGH = 7.5

MAX_RISK_SCORE = 10.0

# n-th occurrence (0-indexed) of a severity contributes DIMINISHING_WEIGHTS[sev][n];
# occurrences past the end of a table contribute its last value.
DIMINISHING_WEIGHTS: dict[Severity, tuple[float, ...]] = {
    Severity.CRITICAL: (3.0, 2.0, 1.25, 0.75),
    Severity.DANGER: (2.0, 1.25, 0.75, 0.4),
    Severity.WARNING: (0.75, 0.4, 0.2, 0.1),
}

INFO_WEIGHT = 0.1

SEVERITY_RANK: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.DANGER: 2,
    Severity.CRITICAL: 3,
}
