# seo_scout/__init__.py
"""
SeoScout package initializer.
Defines package version; the CLI entry point is ``seo_scout.cli:cli``.
"""
__version__ = "0.1.0"
