# File: seo_scout/report/__init__.py
"""seo_scout.report: JSON envelope and report files used by the CLI and tests."""

from seo_scout.report.json_report import dumps, envelope, render_json

__all__ = ["dumps", "envelope", "render_json"]
