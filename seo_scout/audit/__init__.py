# File: seo_scout/audit/__init__.py
"""seo_scout.audit: sitemap resolution, reciprocity, inlink sampling, asset and link checks."""
