# === FILE: seo_scout/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of the SeoScout auditor.

Commands:
  touchpoints URL     Canonical/AMP/hreflang reciprocity, robots, sitemap, inlinks, asset weight
  sitemap URL         URLs listed by the site's sitemaps
  robots URL          robots.txt verdict for the URL
  assets URL          Asset weight and caching audit
  links URL           Status of every link on the page
  redirects URL       Redirect chain of the URL, hop by hop
  config              Show the active configuration

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml when present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when omitted)
  --log-format FORMAT Logging format string

Command options:
  --json PATH         Save the JSON envelope to a file
  --pretty            Indent JSON output
  --audit-timeout SEC Deadline for the whole audit (seconds)

Example:
  seo-scout touchpoints https://example.com/page --pretty
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError

from seo_scout import __version__
from seo_scout.config import load_config
from seo_scout.engine import Engine
from seo_scout.errors import InvalidURL, SeoScoutError
from seo_scout.logger import init_logging
from seo_scout.report.json_report import dumps, envelope, render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str, code: int = 1) -> None:
    click.secho(dumps(envelope(error=message)), fg="red", err=True)
    sys.exit(code)


def output_options(func):
    func = click.option(
        "--audit-timeout", "audit_timeout",
        type=click.FloatRange(min=0, min_open=True),
        default=None,
        help="Deadline for the whole audit (seconds); overrides audit_timeout from the config",
    )(func)
    func = click.option("--pretty", is_flag=True, help="Indent JSON output (2 spaces)")(func)
    func = click.option(
        "--json", "-j", "json_output",
        default=None,
        type=click.Path(writable=True, dir_okay=False, path_type=Path),
        help="Save the JSON envelope to a file",
    )(func)
    return func


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SeoScout, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to a YAML/JSON config file.",
)
@click.option(
    "--log-level", "log_level",
    default="WARNING", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Log file (stderr only when omitted)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Logging format string",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SeoScout command group."""
    init_logging(level=log_level, log_file=log_file, log_format=log_format)
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError, ValidationError) as e:
        print_error(f"Failed to load config: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


def _execute(
    ctx: click.Context,
    operation: str,
    *args: Any,
    json_output: Optional[Path],
    pretty: bool,
    audit_timeout: Optional[float],
) -> None:
    engine = Engine(ctx.obj["config"])
    try:
        result = engine.run(operation, *args, audit_timeout=audit_timeout)
    except InvalidURL as e:
        print_error(str(e), code=2)
    except asyncio.TimeoutError:
        print_error(f"{operation} did not finish within the audit timeout")
    except SeoScoutError as e:
        print_error(str(e))

    payload = envelope(result)
    if json_output:
        saved = render_json(payload, json_output, pretty=pretty)
        click.echo(f"JSON report: {saved}")
        return
    click.echo(dumps(payload, pretty=pretty))


@cli.command("touchpoints", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@output_options
@click.pass_context
def touchpoints(ctx, url, json_output, pretty, audit_timeout):
    """Audit canonical, AMP, hreflang, robots, sitemap and inlink touchpoints of URL."""
    _execute(ctx, "touchpoints", url, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("sitemap", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=None, help="Max URLs to collect")
@output_options
@click.pass_context
def sitemap(ctx, url, limit, json_output, pretty, audit_timeout):
    """List the URLs published in the sitemaps of URL's site."""
    _execute(ctx, "discover_sitemap", url, limit, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("robots", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@output_options
@click.pass_context
def robots(ctx, url, json_output, pretty, audit_timeout):
    """Evaluate robots.txt rules for URL."""
    _execute(ctx, "robots", url, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("assets", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=None, help="Max assets to probe")
@output_options
@click.pass_context
def assets(ctx, url, limit, json_output, pretty, audit_timeout):
    """Probe the assets of URL and rank them by size."""
    _execute(ctx, "assets", url, limit, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("links", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=None, help="Max links to probe")
@output_options
@click.pass_context
def links(ctx, url, limit, json_output, pretty, audit_timeout):
    """Check the status of the links on URL."""
    _execute(ctx, "links", url, limit, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("redirects", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@click.option("--max-hops", "-m", type=click.IntRange(min=1, max=50), default=None, help="Max requests in the chain")
@output_options
@click.pass_context
def redirects(ctx, url, max_hops, json_output, pretty, audit_timeout):
    """Trace the redirect chain of URL hop by hop."""
    _execute(ctx, "redirects", url, max_hops, json_output=json_output, pretty=pretty, audit_timeout=audit_timeout)


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the active configuration as JSON."""
    cfg = ctx.obj["config"]
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
