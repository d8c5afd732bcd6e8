# File: tests/test_robots.py
import pytest

from seo_scout.errors import ParseError
from seo_scout.parser.robots_parser import (
    Decision,
    RobotsRule,
    RobotsRuleSet,
    load_robots,
    match,
    parse_robots,
    robots_path,
    winning_rule,
)

ROBOTS = """
# comment line
User-agent: Googlebot
Disallow: /google-only

User-agent: Bingbot
User-agent: *
Disallow: /private   # trailing comment
Allow: /private/public
Disallow:
Crawl-delay: 5

Sitemap: https://example.com/sitemap.xml
User-agent: Other
Disallow: /other-only
Sitemap: https://example.com/news.xml
"""


def test_parse_keeps_only_wildcard_group_and_all_sitemaps():
    rules = parse_robots(ROBOTS)
    assert rules.rules == [RobotsRule("disallow", "/private"), RobotsRule("allow", "/private/public")]
    assert rules.sitemaps == ["https://example.com/sitemap.xml", "https://example.com/news.xml"]


def test_longest_prefix_wins():
    rules = parse_robots(ROBOTS)
    assert match("/private/public/x", rules) is Decision.ALLOWED
    assert match("/private/x", rules) is Decision.DISALLOWED
    assert match("/other", rules) is Decision.UNSPECIFIED
    assert match("/google-only", rules) is Decision.UNSPECIFIED


def test_rules_before_user_agent_form_implicit_group():
    rules = parse_robots("Disallow: /tmp\nUser-agent: bot\nDisallow: /bot")
    assert rules.rules == [RobotsRule("disallow", "/tmp")]
    assert match("/tmp/file", rules).blocked


def test_tie_between_allow_and_disallow_is_unspecified():
    rules = RobotsRuleSet(rules=[RobotsRule("allow", "/page"), RobotsRule("disallow", "/page")])
    assert match("/page", rules) is Decision.UNSPECIFIED
    assert winning_rule("/page", rules) is None


def test_wildcards_and_end_anchor():
    rules = parse_robots("User-agent: *\nDisallow: /*.pdf$\nDisallow: /search*q=\nAllow: /search/help")
    assert match("/docs/file.pdf", rules).blocked
    assert match("/docs/file.pdf?download=1", rules) is Decision.UNSPECIFIED
    assert match("/search?q=shoes", rules).blocked
    assert match("/search/help", rules) is Decision.ALLOWED
    assert winning_rule("/search?q=shoes", rules) == RobotsRule("disallow", "/search*q=")


def test_html_body_is_rejected():
    with pytest.raises(ParseError):
        parse_robots("<!DOCTYPE html><html><body>Not found</body></html>")


def test_robots_path_includes_query():
    assert robots_path("https://example.com/a/b?x=1") == "/a/b?x=1"
    assert robots_path("https://example.com") == "/"


@pytest.mark.asyncio()
async def test_load_robots_from_server(serve_app, html_app, prober):
    base = await serve_app(html_app({"/robots.txt": "User-agent: *\nDisallow: /admin\nSitemap: {base}/sm.xml"}))
    rules = await load_robots(prober, f"{base}/admin/panel")
    assert rules.error is None
    assert rules.url == f"{base}/robots.txt"
    assert rules.sitemaps == [f"{base}/sm.xml"]
    assert match("/admin/panel", rules).blocked


@pytest.mark.asyncio()
async def test_missing_robots_is_empty_rule_set(serve_app, html_app, prober):
    base = await serve_app(html_app({"/": "<html></html>"}))
    rules = await load_robots(prober, f"{base}/page")
    assert rules.rules == []
    assert rules.error
    assert match("/page", rules) is Decision.UNSPECIFIED
