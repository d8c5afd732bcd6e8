# File: seo_scout/crawler/__init__.py
"""seo_scout.crawler: HTTP prober, bounded worker pool and network data models."""

from seo_scout.crawler.models import PageData, ProbeResult, RedirectHop
from seo_scout.crawler.pool import bounded_map
from seo_scout.crawler.prober import Prober

__all__ = ["PageData", "ProbeResult", "RedirectHop", "Prober", "bounded_map"]
