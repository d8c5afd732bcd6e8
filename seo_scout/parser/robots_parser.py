# File: seo_scout/parser/robots_parser.py
"""seo_scout.parser.robots_parser: robots.txt parsing for the wildcard agent and longest-match evaluation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlsplit

from seo_scout.errors import ParseError, UpstreamError
from seo_scout.logger import logger
from seo_scout.utils import origin_of

if TYPE_CHECKING:
    from seo_scout.crawler.prober import Prober

__all__ = (
    "Decision",
    "RobotsRule",
    "RobotsRuleSet",
    "parse_robots",
    "match",
    "winning_rule",
    "robots_path",
    "robots_url_for",
    "load_robots",
    "rule_set_to_dict",
)

_WILDCARD_RE = re.compile(r"[*$]")
_HTML_MARKERS = ("<!doctype html", "<html", "<head", "<body")


class Decision(str, Enum):
    ALLOWED = "allowed"
    DISALLOWED = "disallowed"
    UNSPECIFIED = "unspecified"

    @property
    def blocked(self) -> bool:
        return self is Decision.DISALLOWED


@dataclass(frozen=True, slots=True)
class RobotsRule:
    """One ``Allow``/``Disallow`` line of the wildcard group."""

    type: str
    path_prefix: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "path": self.path_prefix}


@dataclass(slots=True)
class RobotsRuleSet:
    """Rules that apply to ``User-agent: *`` plus every declared sitemap."""

    rules: List[RobotsRule] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)
    url: Optional[str] = None
    error: Optional[str] = None


@dataclass(slots=True)
class _Group:
    agents: List[str] = field(default_factory=list)
    rules: List[RobotsRule] = field(default_factory=list)
    sealed: bool = False


def parse_robots(text: str, url: Optional[str] = None) -> RobotsRuleSet:
    """Parse robots.txt *text* and keep the wildcard group.

    Consecutive ``User-agent`` lines share one group. Directives that appear
    before any ``User-agent`` line form an implicit ``*`` group. Empty
    ``Allow``/``Disallow`` values are ignored. Raises ParseError when the body
    is an HTML page rather than robots text.
    """
    head = text.lstrip()[:512].lower()
    if any(head.startswith(marker) for marker in _HTML_MARKERS):
        raise ParseError("robots.txt body is an HTML document", url)

    groups: List[_Group] = []
    sitemaps: List[str] = []
    current: Optional[_Group] = None

    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        key, sep, val = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        val = val.strip()

        if key == "user-agent":
            if current is None or current.sealed:
                current = _Group()
                groups.append(current)
            current.agents.append(val.lower())
        elif key in ("allow", "disallow", "crawl-delay"):
            if current is None:
                current = _Group(agents=["*"])
                groups.append(current)
            current.sealed = True
            if key != "crawl-delay" and val:
                current.rules.append(RobotsRule(key, val))
        elif key == "sitemap" and val:
            sitemaps.append(val)

    rules = [rule for group in groups if "*" in group.agents for rule in group.rules]
    logger.debug("robots.txt %s: %d wildcard rules, %d sitemaps", url or "", len(rules), len(sitemaps))
    return RobotsRuleSet(rules=rules, sitemaps=sitemaps, url=url)


@lru_cache(maxsize=512)
def _pattern(rule: str) -> re.Pattern[str]:
    anchored = rule.endswith("$")
    body = rule[:-1] if anchored else rule
    esc = re.escape(body).replace(r"\*", ".*")
    return re.compile("^" + esc + ("$" if anchored else ""))


def _rule_len(rule: str) -> int:
    return len(_WILDCARD_RE.sub("", rule))


def winning_rule(path: str, rule_set: RobotsRuleSet) -> Optional[RobotsRule]:
    """Longest matching rule, or None when nothing matches or allow/disallow tie."""
    path = path or "/"
    best: Optional[RobotsRule] = None
    best_len = -1
    tie = False
    for rule in rule_set.rules:
        if not _pattern(rule.path_prefix).match(path):
            continue
        length = _rule_len(rule.path_prefix)
        if length > best_len:
            best, best_len, tie = rule, length, False
        elif length == best_len and best is not None and rule.type != best.type:
            tie = True
    return None if tie else best


def match(path: str, rule_set: RobotsRuleSet) -> Decision:
    rule = winning_rule(path, rule_set)
    if rule is None:
        return Decision.UNSPECIFIED
    return Decision.ALLOWED if rule.type == "allow" else Decision.DISALLOWED


def robots_path(url: str) -> str:
    """Path plus query of *url*, the part robots rules are matched against."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def robots_url_for(url: str) -> str:
    return f"{origin_of(url)}/robots.txt"


async def load_robots(prober: "Prober", page_url: str) -> RobotsRuleSet:
    """Fetch and parse the robots.txt of *page_url*'s origin.

    A missing, unreachable or malformed file yields an empty rule set with
    ``error`` filled in; the audit carries on as if everything were allowed.
    """
    robots_url = robots_url_for(page_url)
    try:
        page = await prober.fetch_document(robots_url)
        return parse_robots(str(page.content), url=robots_url)
    except (UpstreamError, ParseError) as exc:
        logger.warning("robots.txt unavailable (%s)", exc)
        return RobotsRuleSet(url=robots_url, error=str(exc))


def rule_set_to_dict(rule_set: RobotsRuleSet) -> Dict[str, Any]:
    return {
        "robotsUrl": rule_set.url,
        "rules": [r.to_dict() for r in rule_set.rules],
        "sitemaps": list(rule_set.sitemaps),
        "error": rule_set.error,
    }
