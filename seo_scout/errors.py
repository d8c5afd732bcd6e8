# File: seo_scout/errors.py
"""seo_scout.errors: exception hierarchy shared by the engine and the CLI."""

from __future__ import annotations

from typing import Optional

__all__ = ("SeoScoutError", "InvalidURL", "UpstreamError", "ParseError")


class SeoScoutError(Exception):
    """Base class for every error raised by SeoScout."""


class InvalidURL(SeoScoutError, ValueError):
    """Input that cannot be turned into an absolute http(s) URL."""

    def __init__(self, raw: str, reason: str = "cannot be parsed") -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid URL {raw!r}: {reason}")


class UpstreamError(SeoScoutError):
    """Timeout, connection failure or unusable HTTP status from a remote host."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"{url}: {reason}")


class ParseError(SeoScoutError):
    """A robots.txt or sitemap document that cannot be decoded."""

    def __init__(self, reason: str, url: Optional[str] = None) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}" if url else reason)
