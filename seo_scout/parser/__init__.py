# File: seo_scout/parser/__init__.py
"""seo_scout.parser: robots.txt, sitemap XML and declared-pointer HTML parsing."""
