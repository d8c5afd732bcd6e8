# File: seo_scout/audit/assets.py
"""seo_scout.audit.assets: asset collection and weight/caching audit.

:func:`collect_assets` classifies the resources a page references;
:class:`AssetAuditor` probes them under the shared pool and ranks them by
size.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from seo_scout.crawler.models import ProbeResult
from seo_scout.crawler.prober import Prober
from seo_scout.logger import logger
from seo_scout.parser.html_parser import absolute_url, rel_tokens
from seo_scout.utils import origin_of, try_normalize

__all__: Sequence[str] = ("AssetDescriptor", "AssetAudit", "AssetAuditor", "collect_assets", "parse_max_age")

STYLESHEET = "stylesheet"
SCRIPT = "script"
IMAGE = "image"
FONT = "font"
MEDIA = "media"
PRELOAD = "preload"

_TEXTUAL_TYPE = re.compile(r"text|json|javascript|xml|svg|font", re.IGNORECASE)
_COMPRESSED = re.compile(r"br|gzip|deflate|zstd", re.IGNORECASE)
_MAX_AGE = re.compile(r"(?:s-maxage|max-age)\s*=\s*(\d+)", re.IGNORECASE)
_TOP_N = 10


@dataclass(slots=True)
class AssetDescriptor:
    url: str
    kind: str
    third_party: bool = False
    render_blocking: Optional[bool] = None
    status: Optional[int] = None
    content_type: Optional[str] = None
    byte_length: Optional[int] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    vary: Optional[str] = None
    error: Optional[str] = None

    @property
    def max_age(self) -> Optional[int]:
        return parse_max_age(self.cache_control)

    @property
    def has_validators(self) -> bool:
        return bool(self.etag or self.last_modified)

    @property
    def broken(self) -> bool:
        return self.error is not None or (self.status is not None and self.status >= 400)

    @property
    def uncompressed_text(self) -> bool:
        textual = bool(self.content_type and _TEXTUAL_TYPE.search(self.content_type))
        compressed = bool(self.content_encoding and _COMPRESSED.search(self.content_encoding))
        return textual and not compressed

    @property
    def notes(self) -> List[str]:
        if self.status is None or self.status >= 400:
            return []
        notes = []
        if not self.cache_control:
            notes.append("No Cache-Control header.")
        if self.max_age is None:
            notes.append("No max-age/s-maxage.")
        if not self.has_validators:
            notes.append("No validators (ETag/Last-Modified).")
        if self.uncompressed_text:
            notes.append("Not compressed (gzip/br).")
        return notes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "kind": self.kind,
            "status": self.status,
            "contentType": self.content_type,
            "byteLength": self.byte_length,
            "thirdParty": self.third_party,
            "renderBlocking": self.render_blocking,
            "cacheControl": self.cache_control,
            "contentEncoding": self.content_encoding,
            "maxAge": self.max_age,
            "etag": self.etag,
            "lastModified": self.last_modified,
            "vary": self.vary,
            "error": self.error,
            "notes": self.notes,
        }


@dataclass(slots=True)
class AssetAudit:
    scanned: int = 0
    assets: List[AssetDescriptor] = field(default_factory=list)
    top10: List[AssetDescriptor] = field(default_factory=list)
    total_bytes: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    errors: int = 0
    no_cache_control: int = 0
    no_validators: int = 0
    uncompressed_text: int = 0

    def to_dict(self, include_assets: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "scanned": self.scanned,
            "totalBytes": self.total_bytes,
            "counts": dict(self.counts),
            "errors": self.errors,
            "notes": {
                "noCacheControl": self.no_cache_control,
                "noValidators": self.no_validators,
                "uncompressedText": self.uncompressed_text,
            },
            "top10": [a.to_dict() for a in self.top10],
        }
        if include_assets:
            data["assets"] = [a.to_dict() for a in self.assets]
        return data


def parse_max_age(cache_control: Optional[str]) -> Optional[int]:
    """Seconds from ``max-age`` or ``s-maxage``, whichever comes first."""
    if not cache_control:
        return None
    match = _MAX_AGE.search(cache_control)
    return int(match.group(1)) if match else None


def _classify(tag: Tag, in_head: bool) -> Optional[tuple[str, Optional[str], Optional[bool]]]:
    """Return ``(kind, raw_url, render_blocking)`` for an asset-bearing tag."""
    name = tag.name
    if name == "link":
        rels = rel_tokens(tag)
        if STYLESHEET in rels:
            blocking = not tag.has_attr("media") and not tag.has_attr("disabled")
            return STYLESHEET, tag.get("href"), blocking
        if "preload" in rels or "modulepreload" in rels:
            kind = FONT if str(tag.get("as", "")).lower() == "font" else PRELOAD
            return kind, tag.get("href"), None
        return None
    if name == "script":
        if not tag.has_attr("src"):
            return None
        deferred = tag.has_attr("async") or tag.has_attr("defer")
        module = str(tag.get("type", "")).strip().lower() == "module"
        return SCRIPT, tag.get("src"), in_head and not deferred and not module
    if name == "img":
        return IMAGE, tag.get("src"), None
    if name in ("video", "audio"):
        return MEDIA, tag.get("src"), None
    if name == "source" and tag.find_parent(["video", "audio"]) is not None:
        return MEDIA, tag.get("src"), None
    return None


def collect_assets(html: str, page_url: str) -> List[AssetDescriptor]:
    """Collect page assets in document order, deduplicated by normalized URL."""
    soup = BeautifulSoup(html or "", "html.parser")
    page_origin = origin_of(page_url)
    seen: set[str] = set()
    assets: List[AssetDescriptor] = []

    for tag in soup.find_all(["link", "script", "img", "video", "audio", "source"]):
        if not isinstance(tag, Tag):
            continue
        classified = _classify(tag, in_head=tag.find_parent("head") is not None)
        if classified is None:
            continue
        kind, raw, blocking = classified
        url = absolute_url(page_url, str(raw) if raw else None)
        key = try_normalize(url)
        if key is None or key in seen:
            continue
        seen.add(key)
        assets.append(AssetDescriptor(
            url=url,
            kind=kind,
            third_party=origin_of(key) != page_origin,
            render_blocking=blocking,
        ))

    logger.debug("Collected %d assets from %s", len(assets), page_url)
    return assets


def _merge(asset: AssetDescriptor, probe: ProbeResult) -> AssetDescriptor:
    return replace(
        asset,
        status=probe.status,
        content_type=probe.content_type,
        byte_length=probe.byte_length,
        cache_control=probe.headers.get("cache-control"),
        content_encoding=probe.headers.get("content-encoding"),
        etag=probe.headers.get("etag"),
        last_modified=probe.headers.get("last-modified"),
        vary=probe.headers.get("vary"),
        error=probe.error,
    )


class AssetAuditor:
    """Probes collected assets and ranks them by byte size."""

    def __init__(self, prober: Prober) -> None:
        self.prober = prober

    async def audit(
        self,
        assets: Sequence[AssetDescriptor],
        max_assets: int = 80,
        concurrency: Optional[int] = None,
    ) -> AssetAudit:
        picked = list(assets[:max_assets])
        probes = await self.prober.probe_many([a.url for a in picked], concurrency=concurrency)
        merged = [_merge(asset, probe) for asset, probe in zip(picked, probes)]

        # unknown sizes sort last, ties keep document order
        ranked = sorted(merged, key=lambda a: (a.byte_length is None, -(a.byte_length or 0)))
        audit = AssetAudit(
            scanned=len(merged),
            assets=ranked,
            top10=[a for a in ranked if a.byte_length is not None][:_TOP_N],
            total_bytes=sum(a.byte_length or 0 for a in merged),
            counts=dict(Counter(a.kind for a in merged)),
            errors=sum(1 for a in merged if a.broken),
            no_cache_control=sum(1 for a in merged if "No Cache-Control header." in a.notes),
            no_validators=sum(1 for a in merged if "No validators (ETag/Last-Modified)." in a.notes),
            uncompressed_text=sum(1 for a in merged if a.status is not None and a.uncompressed_text),
        )
        logger.info(
            "Assets: %d probed, %d bytes known, %d errors", audit.scanned, audit.total_bytes, audit.errors
        )
        return audit
