# File: seo_scout/engine.py
"""seo_scout.engine: request handlers that orchestrate one audit and build its report."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from aiohttp import ClientSession

from seo_scout.aggregator import (
    AuditReport,
    RedirectReport,
    RobotsReport,
    SitemapDiscovery,
    build_conflicts,
    find_trap_links,
)
from seo_scout.audit.assets import AssetAudit, AssetAuditor, collect_assets
from seo_scout.audit.inlinks import InlinkSampler
from seo_scout.audit.links import LinkChecker, LinkReport
from seo_scout.audit.reciprocity import ReciprocityVerifier
from seo_scout.audit.sitemaps import SitemapResolver, sitemap_candidates
from seo_scout.config import AuditConfig, load_config
from seo_scout.crawler.models import PageData
from seo_scout.crawler.prober import Prober
from seo_scout.errors import UpstreamError
from seo_scout.logger import logger
from seo_scout.parser.html_parser import parse_html
from seo_scout.parser.robots_parser import load_robots, match, robots_path, winning_rule
from seo_scout.utils import normalize_url, origin_of, try_normalize

__all__ = ["Engine", "OPERATIONS"]

T = TypeVar("T")

OPERATIONS = ("touchpoints", "discover_sitemap", "robots", "assets", "links", "redirects")


class Engine:
    """Facade for the CLI and tests: one audit per call, fresh Prober per call."""

    @staticmethod
    def load_config(path: Optional[str]) -> AuditConfig:
        return load_config(path)

    def __init__(self, config: Optional[AuditConfig] = None, session: Optional[ClientSession] = None) -> None:
        self.config = config or AuditConfig()
        self._session = session

    def _prober(self) -> Prober:
        return Prober(self.config.client, session=self._session)

    async def _fetch_source(self, prober: Prober, url: str) -> PageData:
        page = await prober.fetch_page(url)
        if page.status >= 400:
            raise UpstreamError(url, f"HTTP {page.status} on page", status=page.status)
        return page

    # ------------------------------------------------------------------ #
    # Operations                                                           #
    # ------------------------------------------------------------------ #

    async def touchpoints(self, url: str) -> AuditReport:
        """Full touchpoints audit of one page.

        Only an invalid URL or a failed fetch of the page itself raises;
        every later stage degrades into recorded errors and conflicts.
        """
        target = _as_given(url)
        cfg = self.config
        logger.info("Touchpoints audit of %s", target)

        async with self._prober() as prober:
            page = await self._fetch_source(prober, target)
            final_url = try_normalize(page.final_url) or normalize_url(target)
            origin = origin_of(final_url)
            parsed = parse_html(page)

            rule_set = await load_robots(prober, final_url)
            path = robots_path(page.final_url)
            decision = match(path, rule_set)
            candidates = sitemap_candidates(rule_set.sitemaps, origin)

            resolver = SitemapResolver(prober, cfg.sitemap.max_children)
            verifier = ReciprocityVerifier(prober, cfg.hreflang_sample)
            sitemap, canonical, amp, hreflang, heavy = await asyncio.gather(
                resolver.collect(
                    candidates,
                    origin,
                    max_files=cfg.sitemap.max_files,
                    max_urls=cfg.sitemap.max_urls,
                    watch=final_url,
                ),
                verifier.canonical(final_url, parsed.canonical),
                verifier.amp(final_url, parsed.amphtml),
                verifier.hreflang(final_url, parsed.alternates),
                AssetAuditor(prober).audit(collect_assets(str(page.content), final_url), cfg.max_assets),
            )
            inlinks = await InlinkSampler(prober).sample(sitemap.urls, final_url, cfg.inlink_sample)

        report = AuditReport(
            url=target,
            final_url=final_url,
            status=page.status,
            page=parsed,
            robots=rule_set,
            decision=decision,
            matched_rule=winning_rule(path, rule_set),
            sitemap_candidates=candidates,
            sitemap=sitemap,
            canonical=canonical,
            amp=amp,
            hreflang=hreflang,
            inlinks=inlinks,
            heavy=heavy,
            trap_links=find_trap_links(parsed),
            conflicts=build_conflicts(parsed, decision, sitemap.found, canonical, amp, hreflang),
        )
        logger.info("Audit of %s finished with %d conflicts", final_url, len(report.conflicts))
        return report

    async def discover_sitemap(self, url: str, limit: Optional[int] = None) -> SitemapDiscovery:
        """Collect page URLs from the sitemaps declared in robots.txt, or ``/sitemap.xml``."""
        origin = origin_of(url)
        async with self._prober() as prober:
            rule_set = await load_robots(prober, origin)
            sitemaps = list(rule_set.sitemaps) or [f"{origin}/sitemap.xml"]
            resolution = await SitemapResolver(prober, self.config.sitemap.max_children).collect(
                sitemaps,
                origin,
                max_files=self.config.sitemap.max_files,
                max_urls=limit or self.config.sitemap.max_urls,
                same_origin_only=False,
            )
        return SitemapDiscovery(origin=origin, sitemaps=sitemaps, resolution=resolution)

    async def robots(self, url: str) -> RobotsReport:
        target = _as_given(url)
        path = robots_path(target)
        async with self._prober() as prober:
            rule_set = await load_robots(prober, target)
        return RobotsReport(
            url=normalize_url(target),
            path=path,
            rule_set=rule_set,
            decision=match(path, rule_set),
            matched_rule=winning_rule(path, rule_set),
        )

    async def assets(self, url: str, limit: Optional[int] = None) -> AssetAudit:
        target = _as_given(url)
        async with self._prober() as prober:
            page = await self._fetch_source(prober, target)
            found = collect_assets(str(page.content), page.final_url)
            return await AssetAuditor(prober).audit(found, limit or self.config.max_assets)

    async def links(self, url: str, limit: Optional[int] = None) -> LinkReport:
        target = _as_given(url)
        async with self._prober() as prober:
            page = await self._fetch_source(prober, target)
            return await LinkChecker(prober).check(parse_html(page), limit or self.config.max_links)

    async def redirects(self, url: str, max_hops: Optional[int] = None) -> RedirectReport:
        """Trace the redirect chain of *url* without following it automatically."""
        target = _as_given(url)
        limit = max_hops or self.config.max_redirect_hops
        async with self._prober() as prober:
            hops = await prober.redirect_chain(target, limit)
        logger.info("Redirect chain of %s: %d hop(s)", target, len(hops))
        return RedirectReport(url=target, max_hops=limit, hops=hops)

    # ------------------------------------------------------------------ #
    # Sync entry point                                                     #
    # ------------------------------------------------------------------ #

    def run(self, operation: str, *args: Any, audit_timeout: Optional[float] = None) -> Any:
        """Run one operation on a fresh event loop under the outer audit deadline.

        On expiry the in-flight requests are abandoned and
        :class:`asyncio.TimeoutError` propagates.
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        handler: Callable[..., Awaitable[Any]] = getattr(self, operation)
        deadline = audit_timeout if audit_timeout is not None else self.config.audit_timeout
        try:
            return asyncio.run(_with_deadline(handler(*args), deadline))
        except asyncio.TimeoutError:
            logger.error("%s did not finish within %s seconds", operation, deadline)
            raise


def _as_given(url: str) -> str:
    """Validate *url*; return it stripped, not normalized."""
    normalize_url(url)
    return url.strip()


async def _with_deadline(coro: Awaitable[T], deadline: Optional[float]) -> T:
    if deadline:
        return await asyncio.wait_for(coro, timeout=deadline)
    return await coro
