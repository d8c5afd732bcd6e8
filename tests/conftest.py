# File: tests/conftest.py
from typing import Awaitable, Callable, Dict, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from seo_scout.config import AuditConfig, ClientConfig, SitemapSettings
from seo_scout.crawler.prober import Prober


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: tests that wait on timeouts")


ServeFn = Callable[[web.Application], Awaitable[str]]


@pytest_asyncio.fixture()
async def serve_app(unused_tcp_port_factory) -> ServeFn:
    """
    Start aiohttp applications on free local ports.
    Returns an async callable: ``base_url = await serve_app(app)``.
    """
    runners = []

    async def _serve(app: web.Application) -> str:
        port = unused_tcp_port_factory()
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{port}"

    yield _serve

    for runner in runners:
        await runner.cleanup()


def _html_app(pages: Dict[str, str], headers: Optional[Dict[str, Dict[str, str]]] = None) -> web.Application:
    """Build an app serving static bodies keyed by path; ``{base}`` expands to the server origin."""
    headers = headers or {}
    app = web.Application()

    def _handler(path: str):
        async def _h(request: web.Request) -> web.Response:
            body = pages[path].replace("{base}", f"{request.scheme}://{request.host}")
            content_type = "text/plain" if path.endswith(".txt") else (
                "application/xml" if path.endswith(".xml") else "text/html"
            )
            return web.Response(text=body, content_type=content_type, headers=headers.get(path))

        return _h

    for path in pages:
        app.router.add_get(path, _handler(path))
    return app


@pytest.fixture()
def html_app():
    """Factory: ``html_app({"/": "<html>...</html>"}, headers={"/": {...}})``."""
    return _html_app


@pytest.fixture()
def client_config() -> ClientConfig:
    """Fast client settings: short timeout, no retries."""
    return ClientConfig(user_agent="TestAgent/1.0", timeout=2.0, max_retries=0, retry_backoff=0.0, concurrency=4)


@pytest.fixture()
def audit_config(client_config) -> AuditConfig:
    return AuditConfig(
        client=client_config,
        sitemap=SitemapSettings(max_files=5, max_children=25, max_urls=150),
        audit_timeout=20.0,
    )


@pytest_asyncio.fixture()
async def prober(client_config):
    async with Prober(client_config) as p:
        yield p

