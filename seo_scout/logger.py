# === FILE: seo_scout/logger.py ===
"""Logging for **SeoScout**.

One named logger, ``"SeoScout"``, shared by every module::

    from seo_scout.logger import logger
    logger.info("Audit started")

Console output goes to *stderr*: *stdout* is reserved for the JSON envelope
printed by the CLI. An optional rotating log file can be added through
:func:`configure` or :func:`init_logging`.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "SeoScout"
_MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _resolve_level(level: _LevelT) -> int:
    """Accept ``logging`` constants or level names in any case."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _build_handlers(fmt: str, log_file: str | Path | None) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the project logger.

    Parameters
    ----------
    level
        Numeric level or level name (``"debug"`` and ``"DEBUG"`` both work).
    log_file
        Rotating log file; *None* keeps output on stderr only.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* closes and drops existing handlers first.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(_resolve_level(level))
    if replace_handlers:
        for old in list(lg.handlers):
            lg.removeHandler(old)
            old.close()
    for handler in _build_handlers(log_format, log_file):
        lg.addHandler(handler)
    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Entry point used by the CLI: fresh handlers at *level*."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


logger: logging.Logger = init_logging(level="WARNING")

__all__ = ["logger", "configure", "init_logging"]
