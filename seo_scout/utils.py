# File: seo_scout/utils.py
"""seo_scout.utils: URL normalization and small URL helpers shared by every audit stage."""

from __future__ import annotations

from typing import Collection, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlsplit, urlunsplit

from seo_scout.errors import InvalidURL
from seo_scout.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "try_normalize",
    "same_url",
    "origin_of",
    "first_path_segment",
    "remove_duplicates",
)

_DEFAULT_PORTS: Dict[str, int] = {"http": 80, "https": 443}


def normalize_url(raw: str, base: Optional[str] = None) -> str:
    """Return the canonical string key of *raw*, resolved against *base*.

    Rules, in order: resolve relative to *base*; lower-case scheme and host;
    drop the fragment; drop the scheme's default port; collapse trailing
    slashes of a non-root path. The query string is kept verbatim.

    Raises :class:`~seo_scout.errors.InvalidURL` when the result is not an
    absolute http(s) URL.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURL(str(raw), "empty value")
    candidate = raw.strip()
    try:
        if base:
            candidate = urljoin(base, candidate)
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidURL(raw, str(exc)) from exc

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise InvalidURL(raw, "scheme must be http or https")
    host = parts.hostname
    if not host:
        raise InvalidURL(raw, "missing host")
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if parts.username:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{userinfo}@{host}"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    # every trailing slash, so a key normalizes to itself: "/a//" -> "/a", never "/a/"
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def try_normalize(raw: Optional[str], base: Optional[str] = None) -> Optional[str]:
    """Same as :func:`normalize_url` but returns None for unusable input."""
    if not raw:
        return None
    try:
        return normalize_url(raw, base)
    except InvalidURL as exc:
        logger.debug("Skipping URL: %s", exc)
        return None


def same_url(a: Optional[str], b: Optional[str]) -> bool:
    """Audit equality: both URLs normalize to the same key."""
    left, right = try_normalize(a), try_normalize(b)
    return left is not None and left == right


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` of *url* (normalized)."""
    parts = urlsplit(normalize_url(url))
    return f"{parts.scheme}://{parts.netloc}"


def first_path_segment(url: str) -> str:
    """First non-empty path segment, ``""`` for the site root."""
    path = urlsplit(url).path
    return next((seg for seg in path.split("/") if seg), "")


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Drop URLs whose normalized key was already seen, keeping order and first spelling."""
    seen: set[str] = set()
    unique: List[str] = []
    for url in urls:
        key = try_normalize(url) or url
        if key in seen:
            continue
        seen.add(key)
        unique.append(url)
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
