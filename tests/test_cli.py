# File: tests/test_cli.py
"""CLI tests with click.testing.CliRunner.
Engine.run is patched so no network access happens.
"""
import asyncio
import json

import pytest
from click.testing import CliRunner

import seo_scout.cli as cli_module
from seo_scout.cli import cli
from seo_scout.errors import InvalidURL, UpstreamError
from seo_scout.logger import init_logging


class DummyResult:
    def __init__(self, payload):
        self.payload = payload

    def to_dict(self):
        return self.payload


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI binds log handlers to the runner streams; rebind them afterwards."""
    yield
    init_logging(level="WARNING")


@pytest.fixture()
def calls(monkeypatch):
    """Record engine calls and answer with a fixed payload."""
    recorded = []

    def fake_run(self, operation, *args, audit_timeout=None):
        recorded.append((operation, args, audit_timeout))
        if args and args[0] == "bad":
            raise InvalidURL("bad", "scheme must be http or https")
        if args and args[0] == "https://down.example":
            raise UpstreamError("https://down.example", "HTTP 503 on page", status=503)
        if args and args[0] == "https://slow.example":
            raise asyncio.TimeoutError()
        return DummyResult({"operation": operation})

    monkeypatch.setattr(cli_module.Engine, "run", fake_run)
    return recorded


@pytest.fixture()
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "SeoScout" in result.output


def test_show_config(isolated):
    cfg_file = isolated / "custom.yaml"
    cfg_file.write_text("max_links: 12\nclient:\n  concurrency: 3\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["max_links"] == 12
    assert data["client"]["concurrency"] == 3


def test_bad_config_exits_with_error(isolated):
    cfg_file = isolated / "broken.yaml"
    cfg_file.write_text("client:\n  max_retries: 9\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 1
    assert '"ok": false' in result.output


@pytest.mark.parametrize(
    "argv,operation,args",
    [
        (["touchpoints", "https://example.com/a"], "touchpoints", ("https://example.com/a",)),
        (["sitemap", "https://example.com", "--limit", "5"], "discover_sitemap", ("https://example.com", 5)),
        (["robots", "https://example.com/x"], "robots", ("https://example.com/x",)),
        (["assets", "https://example.com", "-l", "9"], "assets", ("https://example.com", 9)),
        (["links", "https://example.com"], "links", ("https://example.com", None)),
        (["redirects", "https://example.com", "-m", "3"], "redirects", ("https://example.com", 3)),
    ],
)
def test_commands_print_envelope(isolated, calls, argv, operation, args):
    result = CliRunner().invoke(cli, argv)
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"ok": True, "data": {"operation": operation}}
    assert calls == [(operation, args, None)]


def test_pretty_and_timeout_forwarded(isolated, calls):
    result = CliRunner().invoke(cli, ["robots", "https://example.com", "--pretty", "--audit-timeout", "2.5"])
    assert result.exit_code == 0
    assert result.output.startswith("{\n  ")
    assert calls[0][2] == 2.5


def test_json_output_file(isolated, calls):
    out = isolated / "reports" / "tp.json"
    result = CliRunner().invoke(cli, ["touchpoints", "https://example.com", "--json", str(out)])
    assert result.exit_code == 0
    assert "JSON report:" in result.output
    assert json.loads(out.read_text(encoding="utf-8"))["ok"] is True


@pytest.mark.parametrize(
    "url,code,fragment",
    [
        ("bad", 2, "Invalid URL"),
        ("https://down.example", 1, "HTTP 503 on page"),
        ("https://slow.example", 1, "audit timeout"),
    ],
)
def test_request_level_failures(isolated, calls, url, code, fragment):
    result = CliRunner().invoke(cli, ["touchpoints", url])
    assert result.exit_code == code
    assert '"ok": false' in result.output
    assert fragment in result.output
