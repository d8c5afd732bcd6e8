# File: seo_scout/parser/sitemap_parser.py
"""seo_scout.parser.sitemap_parser: decoding of sitemap XML into tagged documents.

Every document is one of :class:`SitemapIndex`, :class:`UrlSet` or
:class:`UnknownSitemap`. Anything that is not well-formed XML is rejected
with :class:`~seo_scout.errors.ParseError`. Recovery mode is off: a
truncated file raises instead of yielding a partial URL list.

Example:
```python
from seo_scout.parser.sitemap_parser import parse_sitemap, UrlSet

doc = parse_sitemap(open("sitemap.xml", "rb").read())
if isinstance(doc, UrlSet):
    print([entry.loc for entry in doc.entries])
```
"""

from __future__ import annotations

import gzip
import zlib
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Union

from lxml import etree

from seo_scout.errors import ParseError

__all__ = (
    "SitemapEntry",
    "SitemapIndex",
    "UrlSet",
    "UnknownSitemap",
    "SitemapDocument",
    "parse_sitemap",
)

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True, slots=True)
class SitemapEntry:
    loc: str
    lastmod: Optional[str] = None


@dataclass(slots=True)
class SitemapIndex:
    kind: ClassVar[str] = "index"
    children: List[str] = field(default_factory=list)


@dataclass(slots=True)
class UrlSet:
    kind: ClassVar[str] = "urlset"
    entries: List[SitemapEntry] = field(default_factory=list)


@dataclass(slots=True)
class UnknownSitemap:
    kind: ClassVar[str] = "unknown"
    root_tag: str = ""


SitemapDocument = Union[SitemapIndex, UrlSet, UnknownSitemap]


def _text(el: etree._Element, path: str) -> Optional[str]:
    value = el.findtext(path)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_sitemap(content: Union[str, bytes], url: Optional[str] = None) -> SitemapDocument:
    """Decode one sitemap document (plain or gzip-compressed XML)."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    if data[:2] == _GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as exc:
            raise ParseError(f"broken gzip payload: {exc}", url) from exc
    if not data.strip():
        raise ParseError("empty sitemap document", url)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ParseError(f"malformed XML: {exc}", url) from exc

    tag = etree.QName(root).localname.lower()
    if tag == "sitemapindex":
        children = [loc for loc in (_text(sm, "{*}loc") for sm in root.iterfind("{*}sitemap")) if loc]
        return SitemapIndex(children=children)
    if tag == "urlset":
        entries: List[SitemapEntry] = []
        for node in root.iterfind("{*}url"):
            loc = _text(node, "{*}loc")
            if loc:
                entries.append(SitemapEntry(loc=loc, lastmod=_text(node, "{*}lastmod")))
        return UrlSet(entries=entries)
    return UnknownSitemap(root_tag=tag)
