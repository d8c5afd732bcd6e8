# File: seo_scout/audit/inlinks.py
"""seo_scout.audit.inlinks: sampling of internal pages that link to a target URL."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from seo_scout.crawler.prober import Prober
from seo_scout.errors import UpstreamError
from seo_scout.logger import logger
from seo_scout.parser.html_parser import parse_html
from seo_scout.utils import first_path_segment, try_normalize

__all__: Sequence[str] = ("InlinkRecord", "InlinkSample", "InlinkSampler", "prioritize")

ANCHOR_TEXT_LIMIT = 160


@dataclass(frozen=True, slots=True)
class InlinkRecord:
    referer_url: str
    anchor_text: str
    nofollow: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.referer_url, "anchor": self.anchor_text, "nofollow": self.nofollow}


@dataclass(slots=True)
class InlinkSample:
    searched: int = 0
    records: List[InlinkRecord] = field(default_factory=list)

    def to_dict(self, limit: int = 20) -> Dict[str, Any]:
        return {
            "searched": self.searched,
            "found": len(self.records),
            "referrers": [r.to_dict() for r in self.records[:limit]],
        }


def prioritize(candidates: Iterable[str], target: str) -> List[str]:
    """Drop the target itself and move pages under the target's first path segment to the front."""
    target_key = try_normalize(target)
    root = first_path_segment(target)
    related: List[str] = []
    others: List[str] = []
    for url in candidates:
        key = try_normalize(url)
        if key is None or key == target_key:
            continue
        (related if first_path_segment(key) == root else others).append(url)
    return related + others


class InlinkSampler:
    """Scans a bounded sample of pages for anchors that point at a target.

    Each page contributes at most one record: scanning of a page stops at the
    first matching anchor, so the result is a sample of referrers rather than
    a full link count.
    """

    def __init__(self, prober: Prober) -> None:
        self.prober = prober

    async def sample(self, candidate_pages: Iterable[str], target: str, sample_size: int) -> InlinkSample:
        result = InlinkSample()
        target_key = try_normalize(target)
        if target_key is None or sample_size <= 0:
            return result

        picks = prioritize(candidate_pages, target)[:sample_size]
        pages = await self.prober.fetch_many(picks)
        for url, page in zip(picks, pages):
            result.searched += 1
            if isinstance(page, UpstreamError):
                logger.debug("Inlink candidate %s skipped: %s", url, page.reason)
                continue
            if page.status >= 400:
                continue
            record = self._first_match(page, target_key)
            if record is not None:
                result.records.append(record)

        logger.info("Inlinks: %d pages searched, %d referrers to %s", result.searched, len(result.records), target)
        return result

    @staticmethod
    def _first_match(page: Any, target_key: str) -> Optional[InlinkRecord]:
        parsed = parse_html(page)
        for anchor in parsed.anchors:
            if try_normalize(anchor.href) == target_key:
                return InlinkRecord(
                    referer_url=page.final_url,
                    anchor_text=anchor.text[:ANCHOR_TEXT_LIMIT],
                    nofollow=anchor.nofollow,
                )
        return None
