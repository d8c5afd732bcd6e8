# File: tests/test_engine.py
import asyncio
import json

import pytest
from aiohttp import web

from seo_scout.engine import Engine
from seo_scout.errors import InvalidURL, UpstreamError


def urlset(*paths: str) -> str:
    body = "".join(f"<url><loc>{{base}}{p}</loc><lastmod>2024-05-01</lastmod></url>" for p in paths)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{body}</urlset>'


SITE = {
    "/robots.txt": "User-agent: *\nDisallow: /private\nSitemap: {base}/sitemap.xml\n",
    "/sitemap.xml": urlset("/article", "/noindexed", "/blog/one", "/private/page", "/header-noindex"),
    "/article": (
        '<html><head><title>Article</title>'
        '<link rel="amphtml" href="{base}/article/amp">'
        '<link rel="stylesheet" href="/style.css">'
        '</head><body><a href="/list?utm_source=x">List</a><a href="/blog/one">Blog</a></body></html>'
    ),
    "/article/amp": '<html><head><link rel="canonical" href="{base}/article"></head></html>',
    "/noindexed": '<html><head><meta name="robots" content="noindex,follow"></head></html>',
    "/header-noindex": "<html><head></head></html>",
    "/blog/one": '<html><body><a href="/article" rel="nofollow">Read the article</a></body></html>',
    "/private/page": "<html><body>secret</body></html>",
    "/orphan": "<html><head><title>Orphan</title></head></html>",
    "/style.css": "body { color: red }",
}
HEADERS = {"/header-noindex": {"X-Robots-Tag": "noindex"}}


@pytest.mark.asyncio()
async def test_amp_back_canonical_without_page_canonical(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    report = await Engine(audit_config).touchpoints(f"{base}/article")
    data = report.to_dict()

    assert data["source"] == {"url": f"{base}/article", "finalUrl": f"{base}/article", "status": 200}
    assert data["canonical"] == {"pageCanonical": None, "declaredCount": 0, "target": {}}
    assert data["amp"]["backCanonicalOk"] is True
    assert data["amp"]["ampUrl"] == f"{base}/article/amp"
    assert not [c for c in data["conflicts"] if c.startswith("AMP")]
    assert data["conflicts"] == []

    assert data["robots"]["blocked"] is False
    assert data["robots"]["sitemaps"][0] == f"{base}/sitemap.xml"
    assert data["sitemap"]["found"] is True
    assert data["sitemap"]["sample"] == f"{base}/sitemap.xml"
    assert data["inlinks"]["found"] == 1
    assert data["inlinks"]["referrers"][0] == {
        "url": f"{base}/blog/one", "anchor": "Read the article", "nofollow": True,
    }
    assert data["pointers"]["parameterizedLinksSample"] == [f"{base}/list?utm_source=x"]
    assert data["heavy"]["scanned"] == 1
    json.loads(report.json(pretty=True))


@pytest.mark.asyncio()
async def test_noindex_page_in_sitemap_is_conflict(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    engine = Engine(audit_config)

    meta = await engine.touchpoints(f"{base}/noindexed")
    assert any("noindex but in sitemap" in c for c in meta.conflicts)

    header = await engine.touchpoints(f"{base}/header-noindex")
    assert header.conflicts == ["URL is noindex but in sitemap (X-Robots-Tag)."]
    assert header.to_dict()["headers"]["xRobotsTag"] == "noindex"


@pytest.mark.asyncio()
async def test_robots_blocked_page_in_sitemap(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    report = await Engine(audit_config).touchpoints(f"{base}/private/page")
    assert report.decision.blocked
    assert report.to_dict()["robots"]["matchedRule"] == {"type": "disallow", "path": "/private"}
    assert "URL is disallowed in robots.txt but present in sitemap." in report.conflicts


@pytest.mark.asyncio()
async def test_page_outside_sitemap_has_no_sitemap_conflicts(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    report = await Engine(audit_config).touchpoints(f"{base}/orphan")
    assert report.sitemap.found is False
    assert report.to_dict()["sitemap"]["tested"] == 1
    assert report.conflicts == []


@pytest.mark.asyncio()
async def test_request_level_failures(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    engine = Engine(audit_config)
    with pytest.raises(UpstreamError):
        await engine.touchpoints(f"{base}/does-not-exist")
    with pytest.raises(InvalidURL):
        await engine.touchpoints("notaurl")


@pytest.mark.asyncio()
async def test_discover_sitemap_and_robots(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    engine = Engine(audit_config)

    discovery = (await engine.discover_sitemap(f"{base}/anything", limit=3)).to_dict()
    assert discovery["origin"] == base
    assert discovery["sitemaps"] == [f"{base}/sitemap.xml"]
    assert discovery["count"] == 3
    assert discovery["urls"][0] == {"loc": f"{base}/article", "lastmod": "2024-05-01"}

    verdict = (await engine.robots(f"{base}/private/x?y=1")).to_dict()
    assert verdict["decision"] == "disallowed"
    assert verdict["path"] == "/private/x?y=1"
    assert verdict["robotsUrl"] == f"{base}/robots.txt"


@pytest.mark.asyncio()
async def test_assets_and_links_operations(serve_app, html_app, audit_config):
    base = await serve_app(html_app(SITE, HEADERS))
    engine = Engine(audit_config)

    audit = await engine.assets(f"{base}/article")
    assert [a.url for a in audit.assets] == [f"{base}/style.css"]
    assert audit.assets[0].render_blocking is True

    links = await engine.links(f"{base}/article", limit=10)
    assert links.summary() == {"total": 2, "internal": 2, "external": 0, "broken": 1, "nofollow": 0}


def test_run_rejects_unknown_operation_and_bad_url(audit_config):
    engine = Engine(audit_config)
    with pytest.raises(ValueError):
        engine.run("explode", "https://example.com")
    with pytest.raises(InvalidURL):
        engine.run("robots", "ftp://example.com/")


def test_run_enforces_audit_timeout(audit_config, monkeypatch):
    async def never_done(self, url):
        await asyncio.sleep(5)

    monkeypatch.setattr(Engine, "robots", never_done)
    with pytest.raises(asyncio.TimeoutError):
        Engine(audit_config).run("robots", "https://example.com/", audit_timeout=0.05)


DIR_SITE = {
    "/robots.txt": "User-agent: *\nDisallow: /dir/\n",
    "/dir/": (
        '<html><head><link rel="canonical" href="{base}/dir/"><link rel="canonical" href="{base}/other">'
        '<link rel="stylesheet" href="style.css"></head>'
        '<body><a href="/dir/missing">Missing</a></body></html>'
    ),
    "/dir/style.css": "p {}",
}


@pytest.mark.asyncio()
async def test_trailing_slash_url_is_fetched_as_given(serve_app, html_app, audit_config):
    base = await serve_app(html_app(DIR_SITE))
    engine = Engine(audit_config)

    report = await engine.touchpoints(f"  {base}/dir/ ")
    assert report.status == 200
    assert report.final_url == f"{base}/dir"
    assert report.decision.blocked
    assert report.to_dict()["robots"]["matchedRule"] == {"type": "disallow", "path": "/dir/"}
    assert report.to_dict()["canonical"]["target"] == {}
    assert report.conflicts == ["Multiple canonical tags found (2)."]

    audit = await engine.assets(f"{base}/dir/")
    assert [a.url for a in audit.assets] == [f"{base}/dir/style.css"]
    assert audit.assets[0].status == 200

    links = await engine.links(f"{base}/dir/")
    assert links.summary()["broken"] == 1

    verdict = (await engine.robots(f"{base}/dir/")).to_dict()
    assert verdict["path"] == "/dir/"
    assert verdict["decision"] == "disallowed"


@pytest.mark.asyncio()
async def test_discover_sitemap_keeps_cross_origin_locs(serve_app, html_app, audit_config):
    pages = {
        "/robots.txt": "Sitemap: {base}/sitemap.xml\n",
        "/sitemap.xml": urlset("/a").replace("</urlset>", "<url><loc>https://cdn.example.net/b</loc></url></urlset>"),
    }
    base = await serve_app(html_app(pages))
    discovery = (await Engine(audit_config).discover_sitemap(base)).to_dict()
    assert [u["loc"] for u in discovery["urls"]] == [f"{base}/a", "https://cdn.example.net/b"]


def redirect_app() -> web.Application:
    async def moved(request):
        return web.Response(status=301, headers={"Location": "/hop"})

    async def hop(request):
        return web.Response(status=302, headers={"Location": f"{request.scheme}://{request.host}/landing"})

    async def landing(request):
        return web.Response(text="<html></html>", content_type="text/html")

    async def loop(request):
        return web.Response(status=301, headers={"Location": "/loop"})

    app = web.Application()
    app.router.add_get("/old", moved)
    app.router.add_get("/hop", hop)
    app.router.add_get("/landing", landing)
    app.router.add_get("/loop", loop)
    return app


@pytest.mark.asyncio()
async def test_redirects_operation(serve_app, audit_config):
    base = await serve_app(redirect_app())
    engine = Engine(audit_config)

    data = (await engine.redirects(f"{base}/old")).to_dict()
    assert data["hops"] == 3
    assert data["finalUrl"] == f"{base}/landing"
    assert data["loop"] is False and data["truncated"] is False
    assert data["chain"][0] == {
        "url": f"{base}/old", "status": 301, "location": "/hop", "final": False, "error": None,
    }

    capped = await engine.redirects(f"{base}/old", max_hops=2)
    assert capped.truncated and capped.final_url is None

    looped = await engine.redirects(f"{base}/loop")
    assert looped.loop
    assert len(looped.hops) == 1
