# File: seo_scout/aggregator.py
"""seo_scout.aggregator: audit report objects, conflict detection and trap-link sampling."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urljoin, urlsplit

from seo_scout.audit.assets import AssetAudit
from seo_scout.audit.inlinks import InlinkSample
from seo_scout.audit.reciprocity import ReciprocityCheck, reciprocity_conflicts
from seo_scout.audit.sitemaps import SitemapResolution
from seo_scout.crawler.models import RedirectHop
from seo_scout.parser.html_parser import ParsedPage
from seo_scout.parser.robots_parser import Decision, RobotsRule, RobotsRuleSet, rule_set_to_dict

__all__ = [
    "AuditReport",
    "RedirectReport",
    "RobotsReport",
    "SitemapDiscovery",
    "build_conflicts",
    "find_trap_links",
]

_TRAP_PARAM = re.compile(
    r"^(utm_\w*|ref|session|phpsessid|sid|sort|order|view|filter|color|size|per_page|page|start|offset|cursor)$",
    re.IGNORECASE,
)
TRAP_SAMPLE = 15
ROBOTS_SITEMAPS_SHOWN = 10
REFERRERS_SHOWN = 20


class _JsonMixin:
    __slots__ = ()

    def to_dict(self) -> Dict[str, Any]:  # pragma: no cover - overridden
        raise NotImplementedError

    def json(self, *, pretty: bool = False) -> str:
        """JSON representation with camelCase keys."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def find_trap_links(page: ParsedPage, limit: int = TRAP_SAMPLE) -> List[str]:
    """Anchors whose query carries tracking, session, sorting or paging parameters."""
    found: List[str] = []
    for anchor in page.anchors:
        query = urlsplit(anchor.href).query
        if not query or anchor.href in found:
            continue
        if any(_TRAP_PARAM.match(key) for key, _ in parse_qsl(query, keep_blank_values=True)):
            found.append(anchor.href)
            if len(found) >= limit:
                break
    return found


def build_conflicts(
    page: ParsedPage,
    decision: Decision,
    in_sitemap: bool,
    canonical: Optional[ReciprocityCheck],
    amp: Optional[ReciprocityCheck],
    hreflang: List[ReciprocityCheck],
) -> List[str]:
    """Collect the semantic inconsistencies of one audited page."""
    conflicts = reciprocity_conflicts(canonical, amp, hreflang)
    if page.canonical_count > 1:
        conflicts.append(f"Multiple canonical tags found ({page.canonical_count}).")
    if in_sitemap:
        if page.meta_noindex:
            conflicts.append("URL is noindex but in sitemap (meta robots).")
        if page.header_noindex:
            conflicts.append("URL is noindex but in sitemap (X-Robots-Tag).")
        if decision.blocked:
            conflicts.append("URL is disallowed in robots.txt but present in sitemap.")
    return conflicts


@dataclass(slots=True)
class AuditReport(_JsonMixin):
    """Touchpoints audit of one page."""

    url: str
    final_url: str
    status: int
    page: ParsedPage
    robots: RobotsRuleSet
    decision: Decision = Decision.UNSPECIFIED
    matched_rule: Optional[RobotsRule] = None
    sitemap_candidates: List[str] = field(default_factory=list)
    sitemap: SitemapResolution = field(default_factory=SitemapResolution)
    canonical: Optional[ReciprocityCheck] = None
    amp: Optional[ReciprocityCheck] = None
    hreflang: List[ReciprocityCheck] = field(default_factory=list)
    inlinks: InlinkSample = field(default_factory=InlinkSample)
    heavy: Optional[AssetAudit] = None
    trap_links: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    def _amp_dict(self) -> Dict[str, Any]:
        if self.amp is None:
            return {}
        return {
            "ampUrl": self.amp.final_url or self.amp.declared_target,
            "status": self.amp.target_status,
            "backCanonicalOk": self.amp.back_reference_found,
            "error": self.amp.error,
        }

    def _canonical_target(self) -> Dict[str, Any]:
        if self.canonical is None:
            return {}
        return {
            "url": self.canonical.final_url or self.canonical.declared_target,
            "status": self.canonical.target_status,
            "selfCanonical": self.canonical.self_canonical,
            "loopBack": self.canonical.loop_back,
            "error": self.canonical.error,
        }

    def to_dict(self) -> Dict[str, Any]:
        page = self.page
        return {
            "source": {"url": self.url, "finalUrl": self.final_url, "status": self.status},
            "robots": {
                "blocked": self.decision.blocked,
                "decision": self.decision.value,
                "matchedRule": self.matched_rule.to_dict() if self.matched_rule else None,
                "sitemaps": self.sitemap_candidates[:ROBOTS_SITEMAPS_SHOWN],
                "error": self.robots.error,
            },
            "sitemap": {**self.sitemap.to_dict(), "collected": len(self.sitemap.entries)},
            "canonical": {
                "pageCanonical": page.canonical,
                "declaredCount": page.canonical_count,
                "target": self._canonical_target(),
            },
            "amp": self._amp_dict(),
            "hreflang": {
                "total": len(page.alternates),
                "checked": len(self.hreflang),
                "reciprocity": [
                    {"lang": c.lang, "href": c.final_url or c.declared_target, "ok": c.back_reference_found}
                    for c in self.hreflang
                ],
            },
            "headers": {"xRobotsTag": page.x_robots_tag or None},
            "conflicts": list(self.conflicts),
            "pointers": {
                "canonical": page.canonical,
                "amphtml": page.amphtml,
                "prev": page.prev,
                "next": page.next,
                "hreflang": [{"lang": a.lang, "href": a.href} for a in page.alternates],
                "parameterizedLinksSample": list(self.trap_links),
            },
            "inlinks": self.inlinks.to_dict(limit=REFERRERS_SHOWN),
            "heavy": self.heavy.to_dict(include_assets=False) if self.heavy else None,
        }


@dataclass(slots=True)
class SitemapDiscovery(_JsonMixin):
    """Flat URL list discovered from the sitemaps of one origin."""

    origin: str
    sitemaps: List[str]
    resolution: SitemapResolution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "sitemaps": list(self.sitemaps),
            "count": len(self.resolution.entries),
            "tested": self.resolution.tested,
            "errors": list(self.resolution.errors),
            "urls": [{"loc": e.loc, "lastmod": e.lastmod} for e in self.resolution.entries],
        }


@dataclass(slots=True)
class RobotsReport(_JsonMixin):
    """Robots verdict for one URL."""

    url: str
    path: str
    rule_set: RobotsRuleSet
    decision: Decision
    matched_rule: Optional[RobotsRule] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "path": self.path,
            "decision": self.decision.value,
            "blocked": self.decision.blocked,
            "matchedRule": self.matched_rule.to_dict() if self.matched_rule else None,
            **rule_set_to_dict(self.rule_set),
        }


@dataclass(slots=True)
class RedirectReport(_JsonMixin):
    """Hop-by-hop redirect chain starting at one URL."""

    url: str
    max_hops: int
    hops: List[RedirectHop] = field(default_factory=list)

    @property
    def final_url(self) -> Optional[str]:
        last = self.hops[-1] if self.hops else None
        return last.url if last is not None and last.final else None

    @property
    def loop(self) -> bool:
        last = self.hops[-1] if self.hops else None
        if last is None or last.location is None:
            return False
        return urljoin(last.url, last.location) in {hop.url for hop in self.hops}

    @property
    def truncated(self) -> bool:
        """The chain was still redirecting when the hop limit ran out."""
        return len(self.hops) >= self.max_hops and self.hops[-1].location is not None and not self.loop

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "hops": len(self.hops),
            "finalUrl": self.final_url,
            "loop": self.loop,
            "truncated": self.truncated,
            "chain": [hop.to_dict() for hop in self.hops],
        }
