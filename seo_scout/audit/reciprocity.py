# File: seo_scout/audit/reciprocity.py
"""seo_scout.audit.reciprocity: canonical, AMP and hreflang back-reference checks.

All three kinds run through :meth:`ReciprocityVerifier.verify`: fetch the
declared target, extract *its* declared pointers, then apply a comparison
that decides whether the target points back at the source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from seo_scout.crawler.pool import bounded_map
from seo_scout.crawler.prober import Prober
from seo_scout.errors import UpstreamError
from seo_scout.logger import logger
from seo_scout.parser.html_parser import Alternate, ParsedPage, parse_html
from seo_scout.utils import same_url, try_normalize

__all__: Sequence[str] = ("ReciprocityCheck", "ReciprocityVerifier", "reciprocity_conflicts")

CANONICAL = "canonical"
AMP = "amp"
HREFLANG = "hreflang"

# source URL, fetched target URL, parsed target -> fields of the check
Comparison = Callable[[str, str, ParsedPage], Dict[str, Any]]


@dataclass(frozen=True, slots=True)
class ReciprocityCheck:
    """Result of following one declared pointer and looking for the way back."""

    kind: str
    declared_target: str
    target_status: Optional[int] = None
    back_reference_found: bool = False
    final_url: Optional[str] = None
    lang: Optional[str] = None
    back_reference: Optional[str] = None
    self_canonical: bool = False
    loop_back: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def bad_status(self) -> bool:
        return self.target_status is not None and self.target_status >= 400

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind,
            "declaredTarget": self.declared_target,
            "url": self.final_url,
            "status": self.target_status,
            "backReferenceFound": self.back_reference_found,
            "error": self.error,
        }
        if self.kind == CANONICAL:
            data.update(selfCanonical=self.self_canonical, loopBack=self.loop_back)
        if self.kind == HREFLANG:
            data.update(lang=self.lang, ok=self.back_reference_found)
        return data


def _compare_canonical(source: str, target_url: str, parsed: ParsedPage) -> Dict[str, Any]:
    back = parsed.canonical
    loop_back = same_url(back, source)
    return {
        "back_reference": back,
        "back_reference_found": loop_back,
        "loop_back": loop_back,
        "self_canonical": same_url(back, target_url),
    }


def _compare_amp(source: str, target_url: str, parsed: ParsedPage) -> Dict[str, Any]:
    return {"back_reference": parsed.canonical, "back_reference_found": same_url(parsed.canonical, source)}


def _compare_hreflang(source: str, target_url: str, parsed: ParsedPage) -> Dict[str, Any]:
    back = next((alt.href for alt in parsed.alternates if same_url(alt.href, source)), None)
    return {"back_reference": back, "back_reference_found": back is not None}


class ReciprocityVerifier:
    """Runs reciprocity checks through a shared :class:`Prober`."""

    def __init__(self, prober: Prober, hreflang_sample: int = 5) -> None:
        self.prober = prober
        self.hreflang_sample = hreflang_sample

    async def verify(
        self,
        kind: str,
        source: str,
        target: str,
        compare: Comparison,
        *,
        lang: Optional[str] = None,
    ) -> ReciprocityCheck:
        """Fetch *target*, parse its declarations and apply *compare*.

        Fetch failures and 4xx/5xx answers are recorded on the check, never
        raised.
        """
        try:
            page = await self.prober.fetch_page(target)
        except UpstreamError as exc:
            logger.warning("%s target %s unreachable: %s", kind, target, exc.reason)
            return ReciprocityCheck(kind=kind, declared_target=target, lang=lang, error=exc.reason)

        base = {"kind": kind, "declared_target": target, "target_status": page.status,
                "final_url": page.final_url, "lang": lang}
        if page.status >= 400:
            return ReciprocityCheck(**base)
        parsed = parse_html(page)
        return ReciprocityCheck(**base, **compare(source, page.final_url, parsed))

    async def canonical(self, source: str, declared: Optional[str]) -> Optional[ReciprocityCheck]:
        """Check a declared canonical; None when absent or pointing at the source itself."""
        if not declared or same_url(declared, source):
            return None
        return await self.verify(CANONICAL, source, declared, _compare_canonical)

    async def amp(self, source: str, declared: Optional[str]) -> Optional[ReciprocityCheck]:
        if not declared:
            return None
        return await self.verify(AMP, source, declared, _compare_amp)

    async def hreflang(self, source: str, alternates: Iterable[Alternate]) -> List[ReciprocityCheck]:
        """Check up to ``hreflang_sample`` distinct alternates concurrently.

        An alternate that is the source itself is reciprocal without a fetch.
        """
        picks: List[Alternate] = []
        seen: set[tuple[str, str]] = set()
        for alt in alternates:
            if len(picks) >= self.hreflang_sample:
                break
            key = (alt.lang.lower(), try_normalize(alt.href) or alt.href)
            if key in seen:
                continue
            seen.add(key)
            picks.append(alt)

        async def _one(alt: Alternate) -> ReciprocityCheck:
            if same_url(alt.href, source):
                return ReciprocityCheck(
                    kind=HREFLANG, declared_target=alt.href, lang=alt.lang,
                    final_url=alt.href, back_reference=source, back_reference_found=True,
                )
            return await self.verify(HREFLANG, source, alt.href, _compare_hreflang, lang=alt.lang)

        return await bounded_map(picks, _one, self.prober.client.concurrency)


def reciprocity_conflicts(
    canonical: Optional[ReciprocityCheck],
    amp: Optional[ReciprocityCheck],
    hreflang: Sequence[ReciprocityCheck],
) -> List[str]:
    """Turn failed reciprocity checks into report conflicts."""
    conflicts: List[str] = []
    if canonical is not None:
        if canonical.failed:
            conflicts.append("Canonical target fetch failed.")
        elif canonical.bad_status:
            conflicts.append(f"Canonical target returns {canonical.target_status}.")
        elif canonical.loop_back:
            conflicts.append("Canonical loop: page canonicalizes to a URL that canonicalizes back here.")
    if amp is not None:
        if amp.failed:
            conflicts.append("AMP page fetch failed.")
        elif amp.bad_status:
            conflicts.append(f"AMP page returns {amp.target_status}.")
        elif not amp.back_reference_found:
            conflicts.append("AMP page missing canonical back-link to this URL.")
    missing = [check.lang or check.declared_target for check in hreflang if not check.back_reference_found]
    if missing:
        conflicts.append(f"Hreflang reciprocity missing for: {', '.join(missing)}.")
    return conflicts
