# File: tests/test_links.py
import pytest

from seo_scout.audit.links import LinkChecker
from seo_scout.parser.html_parser import parse_html
from seo_scout.crawler.models import PageData

PAGE = """
<a href="/ok">Fine</a>
<a href="/ok/">Same target</a>
<a href="/gone" rel="nofollow sponsored">Broken</a>
<a href="#section">Jump</a>
<a href="mailto:hi@example.com">Mail</a>
<a href="tel:+100">Call</a>
<a href="javascript:void(0)">JS</a>
<a href="ftp://files.example.com/x">FTP</a>
<a href="{dead}/elsewhere">External</a>
"""


@pytest.mark.asyncio()
async def test_link_summary(serve_app, html_app, unused_tcp_port_factory, prober):
    base = await serve_app(html_app({"/ok": "<p>ok</p>"}))
    dead = f"http://127.0.0.1:{unused_tcp_port_factory()}"
    page = parse_html(PageData(url=f"{base}/page", content=PAGE.replace("{dead}", dead)))

    report = await LinkChecker(prober).check(page, max_links=60)
    assert [link.url for link in report.links] == [f"{base}/ok", f"{base}/gone", f"{dead}/elsewhere"]
    assert report.summary() == {"total": 3, "internal": 2, "external": 1, "broken": 2, "nofollow": 1}
    data = report.to_dict()
    assert data["links"][0]["status"] == 200
    assert data["links"][1]["status"] == 404
    assert data["links"][2]["error"]


@pytest.mark.asyncio()
async def test_max_links(serve_app, html_app, prober):
    base = await serve_app(html_app({"/ok": "<p>ok</p>"}))
    page = parse_html(PageData(url=f"{base}/", content="".join(f'<a href="/p{i}">{i}</a>' for i in range(10))))
    report = await LinkChecker(prober).check(page, max_links=4)
    assert report.summary()["total"] == 4
