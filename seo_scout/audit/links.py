# File: seo_scout/audit/links.py
"""seo_scout.audit.links: status check of the anchors found on one page."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from seo_scout.crawler.models import ProbeResult
from seo_scout.crawler.prober import Prober
from seo_scout.logger import logger
from seo_scout.parser.html_parser import ParsedPage
from seo_scout.utils import origin_of, try_normalize

__all__: Sequence[str] = ("LinkItem", "LinkReport", "LinkChecker")

LINK_TEXT_LIMIT = 120


@dataclass(slots=True)
class LinkItem:
    url: str
    text: str
    nofollow: bool
    internal: bool
    probe: Optional[ProbeResult] = None

    @property
    def broken(self) -> bool:
        return self.probe is not None and self.probe.broken

    def to_dict(self) -> Dict[str, Any]:
        probe = self.probe or ProbeResult(url=self.url)
        return {
            "url": self.url,
            "text": self.text,
            "relNofollow": self.nofollow,
            "internal": self.internal,
            "status": probe.status,
            "finalUrl": probe.final_url,
            "contentType": probe.content_type,
            "error": probe.error,
        }


@dataclass(slots=True)
class LinkReport:
    links: List[LinkItem] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.links),
            "internal": sum(1 for link in self.links if link.internal),
            "external": sum(1 for link in self.links if not link.internal),
            "broken": sum(1 for link in self.links if link.broken),
            "nofollow": sum(1 for link in self.links if link.nofollow),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary(), "links": [link.to_dict() for link in self.links]}


class LinkChecker:
    """Probes the distinct http(s) anchors of a parsed page."""

    def __init__(self, prober: Prober) -> None:
        self.prober = prober

    async def check(self, page: ParsedPage, max_links: int = 60) -> LinkReport:
        page_origin = origin_of(page.url)
        items: List[LinkItem] = []
        seen: set[str] = set()
        for anchor in page.anchors:
            key = try_normalize(anchor.href)
            if key is None or key in seen:
                continue
            seen.add(key)
            items.append(LinkItem(
                url=anchor.href,
                text=anchor.text[:LINK_TEXT_LIMIT],
                nofollow=anchor.nofollow,
                internal=origin_of(key) == page_origin,
            ))
            if len(items) >= max_links:
                break

        probes = await self.prober.probe_many([item.url for item in items])
        for item, probe in zip(items, probes):
            item.probe = probe
        report = LinkReport(links=items)
        logger.info("Links: %s", report.summary())
        return report
