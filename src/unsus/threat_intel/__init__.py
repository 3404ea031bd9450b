# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""IOC enrichment against reputation databases."""

from unsus.threat_intel.cache import ReputationCache, ThreatDatabase
from unsus.threat_intel.enricher import ThreatIntelEnricher
from unsus.threat_intel.urlhaus import FeedEntry, UrlhausFeed
from unsus.threat_intel.virustotal import VirusTotalClient, VirusTotalVerdict

__all__ = [
    "FeedEntry",
    "ReputationCache",
    "ThreatDatabase",
    "ThreatIntelEnricher",
    "UrlhausFeed",
    "VirusTotalClient",
    "VirusTotalVerdict",
]
