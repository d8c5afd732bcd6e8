# seo_scout/crawler/models.py
"""
Data models for the SeoScout network layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass(slots=True)
class PageData:
    """A fully fetched document: requested URL, content (text or binary) and response metadata."""

    url: str
    content: Union[str, bytes]
    final_url: str = ""
    status: int = 0
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.final_url:
            self.final_url = self.url


@dataclass(slots=True)
class ProbeResult:
    """Outcome of a lightweight existence/metadata request.

    Exactly one of ``status`` and ``error`` is set. ``byte_length`` is None
    when the server did not reveal the size.
    """

    url: str
    status: Optional[int] = None
    final_url: Optional[str] = None
    content_type: Optional[str] = None
    byte_length: Optional[int] = None
    error: Optional[str] = None
    method: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not None and self.status < 400

    @property
    def broken(self) -> bool:
        return self.error is not None or (self.status is not None and self.status >= 400)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status,
            "finalUrl": self.final_url,
            "contentType": self.content_type,
            "byteLength": self.byte_length,
            "error": self.error,
            "via": self.method,
        }


@dataclass(slots=True)
class RedirectHop:
    """One request of a redirect chain, issued without following ``Location``."""

    url: str
    status: Optional[int] = None
    location: Optional[str] = None
    final: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status,
            "location": self.location,
            "final": self.final,
            "error": self.error,
        }
