# seo_scout/crawler/prober.py
"""
Prober: HTTP existence/metadata checks and document fetches under one client
configuration. Probes fall back from HEAD to a ranged GET; failed attempts
get at most one retry.
"""
from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar
from urllib.parse import urljoin

from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout

from seo_scout.config import ClientConfig
from seo_scout.crawler.models import PageData, ProbeResult, RedirectHop
from seo_scout.crawler.pool import bounded_map
from seo_scout.errors import UpstreamError
from seo_scout.logger import logger

__all__ = ("Prober",)

_T = TypeVar("_T", PageData, ProbeResult, RedirectHop)

_CONTENT_RANGE_TOTAL = re.compile(r"/\s*(\d+)\s*$")
_KEPT_HEADERS = ("cache-control", "content-encoding", "etag", "last-modified", "vary", "x-robots-tag")
_ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class Prober:
    """Issues probes and fetches through a single ``aiohttp`` session."""

    _RETRY_STATUS: Sequence[int] = tuple(s for s in range(500, 600) if s != 501) + (429,)
    _FALLBACK_STATUS: Sequence[int] = (405, 501)

    def __init__(self, client: Optional[ClientConfig] = None, session: Optional[ClientSession] = None) -> None:
        self.client = client or ClientConfig()
        self.session = session
        self._owns_session = session is None
        # caps in-flight requests across every pool sharing this prober
        self._gate = asyncio.Semaphore(self.client.concurrency)

    async def __aenter__(self) -> Prober:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.client.timeout),
                headers={"User-Agent": self.client.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # Probing                                                              #
    # ------------------------------------------------------------------ #

    async def probe(self, url: str, timeout: Optional[float] = None) -> ProbeResult:
        """HEAD *url*; on 405/501 retry as a single-byte ranged GET.

        Never raises for network problems: failures come back as a
        ProbeResult with ``error`` set and no ``status``.
        """
        try:
            result = await self._with_retries(url, lambda: self._probe_once("HEAD", url, None, timeout))
            if result.status in self._FALLBACK_STATUS:
                logger.debug("HEAD %s -> %s, falling back to ranged GET", url, result.status)
                result = await self._with_retries(
                    url, lambda: self._probe_once("GET", url, {"Range": "bytes=0-0"}, timeout)
                )
            return result
        except asyncio.TimeoutError:
            return ProbeResult(url=url, error=f"timeout after {timeout or self.client.timeout:g}s")
        except ClientError as exc:
            return ProbeResult(url=url, error=_describe(exc))

    async def probe_many(
        self,
        urls: Iterable[str],
        concurrency: Optional[int] = None,
        per_request_timeout: Optional[float] = None,
    ) -> List[ProbeResult]:
        """Probe every URL through the bounded pool; output order equals input order."""
        return await bounded_map(
            urls,
            lambda u: self.probe(u, timeout=per_request_timeout),
            concurrency or self.client.concurrency,
        )

    async def redirect_chain(
        self, url: str, max_hops: int = 10, timeout: Optional[float] = None
    ) -> List[RedirectHop]:
        """Walk the redirects of *url* one hop at a time.

        Each hop is a HEAD (ranged GET on 405/501) with redirects disabled.
        A 3xx ``Location`` is resolved against the current URL and followed
        until a non-redirect answer, an error, a repeated URL or *max_hops*.
        A failed hop is recorded with ``error`` set and ends the chain.
        """
        hops: List[RedirectHop] = []
        visited: set[str] = set()
        current = url
        while len(hops) < max_hops:
            visited.add(current)
            try:
                hop = await self._with_retries(current, lambda: self._hop_once("HEAD", current, None, timeout))
                if hop.status in self._FALLBACK_STATUS:
                    hop = await self._with_retries(
                        current, lambda: self._hop_once("GET", current, {"Range": "bytes=0-0"}, timeout)
                    )
            except asyncio.TimeoutError:
                hops.append(RedirectHop(url=current, error=f"timeout after {timeout or self.client.timeout:g}s"))
                break
            except ClientError as exc:
                hops.append(RedirectHop(url=current, error=_describe(exc)))
                break
            hops.append(hop)
            if hop.location is None:
                break
            current = urljoin(current, hop.location)
            if current in visited:
                logger.info("Redirect loop at %s", current)
                break
        return hops

    # ------------------------------------------------------------------ #
    # Full fetches                                                         #
    # ------------------------------------------------------------------ #

    async def fetch_page(self, url: str, binary: bool = False, timeout: Optional[float] = None) -> PageData:
        """GET *url* following redirects. Raises UpstreamError on timeout or connection failure."""
        try:
            return await self._with_retries(url, lambda: self._get_once(url, binary, timeout))
        except asyncio.TimeoutError as exc:
            raise UpstreamError(url, f"timeout after {timeout or self.client.timeout:g}s") from exc
        except ClientError as exc:
            raise UpstreamError(url, _describe(exc)) from exc

    async def fetch_document(self, url: str, binary: bool = False) -> PageData:
        """Like :meth:`fetch_page`, but a 4xx/5xx answer is an UpstreamError too."""
        page = await self.fetch_page(url, binary=binary)
        if page.status >= 400:
            raise UpstreamError(url, f"HTTP {page.status}", status=page.status)
        return page

    async def fetch_many(self, urls: Iterable[str], binary: bool = False) -> List[PageData | UpstreamError]:
        """Fetch pages through the pool; failures are returned in place, not raised."""

        async def _one(u: str) -> PageData | UpstreamError:
            try:
                return await self.fetch_page(u, binary=binary)
            except UpstreamError as exc:
                logger.debug("Fetch failed: %s", exc)
                return exc

        return await bounded_map(urls, _one, self.client.concurrency)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    async def _with_retries(self, url: str, attempt: Callable[[], Awaitable[_T]]) -> _T:
        attempts = 0
        while True:
            try:
                result = await attempt()
            except asyncio.TimeoutError:
                # no retry on timeout
                raise
            except ClientError as exc:
                attempts += 1
                if attempts > self.client.max_retries:
                    raise
                await self._backoff(url, attempts, exc)
                continue
            if result.status in self._RETRY_STATUS and attempts < self.client.max_retries:
                attempts += 1
                await self._backoff(url, attempts, f"HTTP {result.status}")
                continue
            return result

    async def _backoff(self, url: str, attempt: int, reason: object) -> None:
        delay = self.client.retry_backoff * 2 ** (attempt - 1)
        logger.debug("Retry %d/%d for %s after %.2f s (%s)", attempt, self.client.max_retries, url, delay, reason)
        await asyncio.sleep(delay)

    def _session(self) -> ClientSession:
        if self.session is None:
            raise RuntimeError("Session not initialized")
        return self.session

    def _timeout_kwargs(self, timeout: Optional[float]) -> Dict[str, ClientTimeout]:
        return {"timeout": ClientTimeout(total=timeout)} if timeout else {}

    async def _probe_once(
        self, method: str, url: str, headers: Optional[Dict[str, str]], timeout: Optional[float]
    ) -> ProbeResult:
        async with self._gate, self._session().request(
            method, url, headers=headers, allow_redirects=True, **self._timeout_kwargs(timeout)
        ) as resp:
            return ProbeResult(
                url=url,
                status=resp.status,
                final_url=str(resp.url),
                content_type=resp.headers.get("Content-Type"),
                byte_length=_byte_length(resp, ranged=headers is not None) if resp.status < 400 else None,
                method=method,
                headers=_kept_headers(resp),
            )

    async def _hop_once(
        self, method: str, url: str, headers: Optional[Dict[str, str]], timeout: Optional[float]
    ) -> RedirectHop:
        async with self._gate, self._session().request(
            method, url, headers=headers, allow_redirects=False, **self._timeout_kwargs(timeout)
        ) as resp:
            location = resp.headers.get("Location") if 300 <= resp.status < 400 else None
            return RedirectHop(
                url=url, status=resp.status, location=location, final=location is None and resp.status < 400
            )

    async def _get_once(self, url: str, binary: bool, timeout: Optional[float]) -> PageData:
        async with self._gate, self._session().get(
            url, headers={"Accept": _ACCEPT_HTML}, allow_redirects=True, **self._timeout_kwargs(timeout)
        ) as resp:
            raw = await resp.read()
            return PageData(
                url=url,
                content=raw if binary else _decode(raw, resp.charset),
                final_url=str(resp.url),
                status=resp.status,
                headers={k.lower(): v for k, v in resp.headers.items()},
            )


def _byte_length(resp: ClientResponse, ranged: bool) -> Optional[int]:
    """Total size from ``Content-Range`` (ranged 206) or ``Content-Length``."""
    if ranged and resp.status == 206:
        match = _CONTENT_RANGE_TOTAL.search(resp.headers.get("Content-Range", ""))
        return int(match.group(1)) if match else None
    length = resp.headers.get("Content-Length")
    if length is None or not length.strip().isdigit():
        return None
    return int(length)


def _kept_headers(resp: ClientResponse) -> Dict[str, str]:
    return {name: resp.headers[name] for name in _KEPT_HEADERS if name in resp.headers}


def _decode(raw: bytes, charset: Optional[str]) -> str:
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
