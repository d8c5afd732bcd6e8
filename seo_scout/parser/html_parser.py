# === FILE: seo_scout/parser/html_parser.py ===
"""Declared-pointer extraction for SeoScout.

Full metadata extraction (titles, descriptions, schema, scoring) lives
outside this package. The engine only needs what a page *declares* about
other URLs:

* canonical: first ``<link rel="canonical">`` resolved to an absolute URL.
* amphtml: ``<link rel="amphtml">``.
* alternates: ``<link rel="alternate" hreflang="…">`` pairs.
* robots: ``<meta name="robots|googlebot">`` plus the ``X-Robots-Tag`` header.
* anchors: every navigable ``<a href>`` with text and ``rel``.
* prev / next: pagination hints.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__: Sequence[str] = ("Anchor", "Alternate", "ParsedPage", "parse_html", "absolute_url", "rel_tokens")

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:", "#")
_NOINDEX_RE = re.compile(r"\b(noindex|none)\b", re.IGNORECASE)


@dataclass(slots=True)
class Anchor:
    href: str
    text: str
    rel: str = ""

    @property
    def nofollow(self) -> bool:
        return "nofollow" in self.rel.split()


@dataclass(slots=True)
class Alternate:
    lang: str
    href: str


@dataclass(slots=True)
class ParsedPage:
    """Pointers declared by one HTML document."""

    url: str
    canonical: Optional[str] = None
    canonical_count: int = 0
    amphtml: Optional[str] = None
    alternates: list[Alternate] = field(default_factory=list)
    robots_meta: str = ""
    x_robots_tag: str = ""
    prev: Optional[str] = None
    next: Optional[str] = None
    anchors: list[Anchor] = field(default_factory=list)

    @property
    def meta_noindex(self) -> bool:
        return bool(_NOINDEX_RE.search(self.robots_meta))

    @property
    def header_noindex(self) -> bool:
        return bool(_NOINDEX_RE.search(self.x_robots_tag))


def absolute_url(base: str, href: Optional[str]) -> Optional[str]:
    """Resolve *href* against *base*; None for empty or unusable values."""
    if not href:
        return None
    href = href.strip()
    if not href:
        return None
    try:
        return urljoin(base, href)
    except ValueError:
        return None


def rel_tokens(tag: Tag) -> list[str]:
    rel = tag.get("rel")
    if rel is None:
        return []
    if isinstance(rel, str):
        rel = rel.split()
    return [token.lower() for token in rel]


def _links_with_rel(soup: BeautifulSoup, rel: str) -> list[Tag]:
    return [
        tag for tag in soup.find_all("link", href=True)
        if isinstance(tag, Tag) and rel in rel_tokens(tag)
    ]


def parse_html(page: Any, headers: Optional[Mapping[str, str]] = None) -> ParsedPage:
    """Parse raw HTML (string) or :class:`~seo_scout.crawler.models.PageData`.

    Parameters
    ----------
    page
        Either a *str* (HTML markup) **or** a ``PageData`` object; relative
        URLs resolve against its ``final_url``.
    headers
        Response headers, used for ``X-Robots-Tag``. Taken from ``page`` when
        omitted.
    """
    if hasattr(page, "content") and hasattr(page, "url"):
        html = page.content
        base_url = str(getattr(page, "final_url", "") or page.url)
        if headers is None:
            headers = getattr(page, "headers", None)
    else:
        html = page
        base_url = ""
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")

    soup = BeautifulSoup(html or "", "html.parser")
    parsed = ParsedPage(url=base_url)

    canonicals = _links_with_rel(soup, "canonical")
    parsed.canonical_count = len(canonicals)
    if canonicals:
        parsed.canonical = absolute_url(base_url, str(canonicals[0]["href"]))

    amp = _links_with_rel(soup, "amphtml")
    if amp:
        parsed.amphtml = absolute_url(base_url, str(amp[0]["href"]))

    for tag in _links_with_rel(soup, "alternate"):
        lang = str(tag.get("hreflang") or "").strip()
        href = absolute_url(base_url, str(tag["href"]))
        if lang and href:
            parsed.alternates.append(Alternate(lang=lang, href=href))

    for rel in ("prev", "next"):
        tags = _links_with_rel(soup, rel)
        if tags:
            setattr(parsed, rel, absolute_url(base_url, str(tags[0]["href"])))

    robots = []
    for meta in soup.find_all("meta", attrs={"name": True, "content": True}):
        if str(meta["name"]).strip().lower() in ("robots", "googlebot"):
            robots.append(str(meta["content"]).strip())
    parsed.robots_meta = ", ".join(r for r in robots if r)
    if headers:
        parsed.x_robots_tag = next((v for k, v in headers.items() if k.lower() == "x-robots-tag"), "")

    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        raw = str(tag["href"]).strip()
        if not raw or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        href = absolute_url(base_url, raw)
        if href is None:
            continue
        text = " ".join(tag.get_text(" ").split())
        parsed.anchors.append(Anchor(href=href, text=text, rel=" ".join(rel_tokens(tag))))

    return parsed
