# File: seo_scout/audit/sitemaps.py
"""seo_scout.audit.sitemaps: bounded two-tier resolution of sitemap indexes and url-sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from seo_scout.crawler.pool import bounded_map
from seo_scout.crawler.prober import Prober
from seo_scout.errors import ParseError, UpstreamError
from seo_scout.logger import logger
from seo_scout.parser.sitemap_parser import (
    SitemapDocument,
    SitemapEntry,
    SitemapIndex,
    UrlSet,
    parse_sitemap,
)
from seo_scout.utils import origin_of, remove_duplicates, try_normalize

__all__: Sequence[str] = (
    "SitemapNode",
    "SitemapResolution",
    "SitemapResolver",
    "likely_sitemaps",
    "sitemap_candidates",
)

_LIKELY_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml")

_Outcome = Union[SitemapDocument, UpstreamError, ParseError]


@dataclass(slots=True)
class SitemapNode:
    """One decoded sitemap file and the URLs it contributed."""

    url: str
    kind: str
    children: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "kind": self.kind, "children": len(self.children)}


@dataclass(slots=True)
class SitemapResolution:
    """Flat, deduplicated URL collection plus traversal bookkeeping."""

    entries: List[SitemapEntry] = field(default_factory=list)
    nodes: List[SitemapNode] = field(default_factory=list)
    tested: int = 0
    errors: List[str] = field(default_factory=list)
    found: bool = False
    sample: Optional[str] = None

    @property
    def urls(self) -> List[str]:
        return [entry.loc for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tested": self.tested,
            "found": self.found,
            "sample": self.sample,
        }


def likely_sitemaps(origin: str) -> List[str]:
    return [f"{origin}{path}" for path in _LIKELY_PATHS]


def sitemap_candidates(declared: Iterable[str], origin: str) -> List[str]:
    """Robots-declared sitemaps first, then the conventional locations, without duplicates."""
    return remove_duplicates([*declared, *likely_sitemaps(origin)])


class SitemapResolver:
    """Resolves sitemap candidates into page URLs.

    Level 0 holds at most ``max_files`` distinct candidates; the children of
    every sitemap index found there form level 1; an index met on level 1 is
    recorded but never followed. A visited set keyed by normalized URL stops
    cycles. Each level is fetched in pool-sized batches and processed in
    input order, so the collection is deterministic.
    """

    def __init__(self, prober: Prober, max_children: int = 25) -> None:
        self.prober = prober
        self.max_children = max_children

    async def resolve(
        self, candidate_urls: Iterable[str], origin: Optional[str], max_files: int, max_urls: int
    ) -> List[str]:
        resolution = await self.collect(candidate_urls, origin, max_files=max_files, max_urls=max_urls)
        return resolution.urls

    async def collect(
        self,
        candidate_urls: Iterable[str],
        origin: Optional[str] = None,
        *,
        max_files: int = 5,
        max_urls: int = 150,
        watch: Optional[str] = None,
        same_origin_only: bool = True,
    ) -> SitemapResolution:
        resolution = SitemapResolution()
        visited: set[str] = set()
        seen: set[str] = set()
        watch_key = try_normalize(watch)
        origin_prefix = f"{origin_of(origin)}/" if origin and same_origin_only else None

        level: List[str] = []
        for raw in candidate_urls:
            if len(level) >= max_files:
                break
            key = try_normalize(raw, origin)
            if key is None or key in visited:
                continue
            visited.add(key)
            level.append(key)

        depth = 0
        batch_size = self.prober.client.concurrency
        while level and not self._done(resolution, max_urls, watch_key):
            next_level: List[str] = []
            for start in range(0, len(level), batch_size):
                batch = level[start:start + batch_size]
                outcomes = await bounded_map(batch, self._fetch, batch_size)
                for url, outcome in zip(batch, outcomes):
                    if isinstance(outcome, (UpstreamError, ParseError)):
                        logger.warning("Skipping sitemap %s: %s", url, outcome.reason)
                        resolution.errors.append(f"{url}: {outcome.reason}")
                        continue
                    resolution.tested += 1
                    node = SitemapNode(url=url, kind=outcome.kind)
                    resolution.nodes.append(node)
                    if isinstance(outcome, SitemapIndex):
                        if depth >= 1:
                            logger.info("Not following nested sitemap index %s", url)
                            continue
                        for child in outcome.children[: self.max_children]:
                            key = try_normalize(child, url)
                            if key is None or key in visited:
                                continue
                            visited.add(key)
                            node.children.append(key)
                            next_level.append(key)
                    elif isinstance(outcome, UrlSet):
                        for entry in outcome.entries:
                            self._absorb(resolution, node, entry, seen, max_urls, watch_key, origin_prefix)
                    else:
                        logger.warning("Sitemap %s has unexpected root <%s>", url, outcome.root_tag)
                if self._done(resolution, max_urls, watch_key):
                    break
            level = next_level
            depth += 1

        logger.info(
            "Sitemaps: %d documents decoded, %d URLs collected, %d skipped",
            resolution.tested, len(resolution.entries), len(resolution.errors),
        )
        return resolution

    async def _fetch(self, url: str) -> _Outcome:
        try:
            page = await self.prober.fetch_document(url, binary=True)
            return parse_sitemap(page.content, url=url)
        except (UpstreamError, ParseError) as exc:
            return exc

    @staticmethod
    def _done(resolution: SitemapResolution, max_urls: int, watch_key: Optional[str]) -> bool:
        return len(resolution.entries) >= max_urls and (watch_key is None or resolution.found)

    @staticmethod
    def _absorb(
        resolution: SitemapResolution,
        node: SitemapNode,
        entry: SitemapEntry,
        seen: set[str],
        max_urls: int,
        watch_key: Optional[str],
        origin_prefix: Optional[str],
    ) -> None:
        key = try_normalize(entry.loc, node.url)
        if key is None:
            return
        if watch_key is not None and key == watch_key and not resolution.found:
            resolution.found = True
            resolution.sample = node.url
        if origin_prefix is not None and not key.startswith(origin_prefix):
            return
        if key in seen or len(resolution.entries) >= max_urls:
            return
        seen.add(key)
        resolution.entries.append(SitemapEntry(loc=key, lastmod=entry.lastmod))
        node.children.append(key)
