# === FILE: seo_scout/config.py ===
"""
Loading and validation of the SeoScout audit configuration.
Pydantic describes the schema and validates the data.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from seo_scout.logger import logger

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SeoScoutBot/1.0; +https://github.com/seo-scout/seo-scout)"


class ClientConfig(BaseModel):
    """HTTP client settings shared by every request of one audit."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="User-Agent header.")
    timeout: float = Field(15.0, gt=0, description="Per-request timeout (seconds).")
    max_retries: int = Field(1, ge=0, le=1, description="Extra attempts on connection errors and 429/5xx.")
    retry_backoff: float = Field(0.5, ge=0, description="Base delay before a retry (seconds).")
    concurrency: int = Field(6, ge=1, le=32, description="Worker pool size for probes and page fetches.")


class SitemapSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_files: int = Field(5, ge=1, description="Top-level sitemap documents to fetch.")
    max_children: int = Field(25, ge=0, description="Child sitemaps followed per sitemap index.")
    max_urls: int = Field(150, ge=1, description="Hard limit on collected page URLs.")


class AuditConfig(BaseModel):
    """Configuration of one audit run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    client: ClientConfig = Field(default_factory=ClientConfig)
    sitemap: SitemapSettings = Field(default_factory=SitemapSettings)
    hreflang_sample: int = Field(5, ge=0, description="Hreflang alternates checked for reciprocity.")
    inlink_sample: int = Field(40, ge=0, description="Sitemap pages scanned for inlinks.")
    max_assets: int = Field(80, ge=1, description="Assets probed by the weight audit.")
    max_links: int = Field(60, ge=1, description="Anchors probed by the link checker.")
    max_redirect_hops: int = Field(10, ge=1, le=50, description="Requests made when tracing a redirect chain.")
    audit_timeout: Optional[float] = Field(60.0, gt=0, description="Deadline of a whole audit (seconds).")


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML: {exc}") from exc


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc


_PARSERS: Dict[str, Callable[[str], Any]] = {
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".json": _parse_json,
}


def _read_mapping(path: Path) -> Dict[str, Any]:
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ValueError(f"Unsupported config format: {path.suffix or '<none>'}")
    data = parser(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise TypeError(f"{path.name}: top level must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> AuditConfig:
    """
    Read YAML or JSON and return a validated AuditConfig.

    Without *path* the project default ``configs/default.yaml`` is used when it
    exists, built-in defaults otherwise. An explicit missing path raises
    FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.is_file():
            logger.debug("No %s, using built-in defaults", DEFAULT_CONFIG_PATH)
            return AuditConfig()
        source = DEFAULT_CONFIG_PATH
    else:
        source = Path(path).expanduser().resolve()
        if not source.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(source))

    data = _read_mapping(source)
    try:
        return AuditConfig.model_validate(data)
    except ValidationError as exc:
        logger.error("Config %s failed validation with %d error(s)", source, exc.error_count())
        raise
