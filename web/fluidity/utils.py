"""
Utility helpers: directory setup, logging config, collector file loading, time utils.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import yaml
from flask import Flask


def ensure_dirs(*paths: Path) -> None:
    """Ensure each directory exists."""
    for p in paths:
        p.mkdir(parents=True, exist_ok=True)


def init_logging(app: Flask) -> logging.Logger:
    """Configure a console logger + rotating file handler."""
    log_level = getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO)
    logger = logging.getLogger("fluidity")
    logger.setLevel(log_level)
    logger.propagate = False  # avoid duplicate logs if root has handlers
    for h in list(logger.handlers):  # app factory may run more than once (tests)
        logger.removeHandler(h)
        h.close()

    fmt = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # File (rotating)
    log_file = Path(app.config["LOG_FILE"])
    ensure_dirs(log_file.parent)
    fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
    fh.setLevel(log_level)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    if not (app.config.get("TLS_CERT") and app.config.get("TLS_KEY")) and not app.config.get("TESTING"):
        logger.warning("No TLS_CERT/TLS_KEY configured; serve behind a TLS terminator in production.")

    return logger


def load_collector_configs(
    path: str | Path,
    logger: logging.Logger,
    *,
    default_site: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Read raw collector mappings from a YAML file.

    Layout:
        site: north            # optional default for every collector
        targets: [...]         # optional default for every collector
        collectors:
          - label: gauge1
            collectorType: generic-serial
            ...

    Top-level `site`/`targets` only fill in items that do not set them. A
    missing or unreadable file yields an empty list (logged); per-item
    validation happens later, in the collector manager.
    """
    if not path:
        return []
    p = Path(path)
    if not p.exists():
        logger.info("No collectors file at %s; running without local collectors", p)
        return []

    try:
        with p.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Cannot read collectors file %s: %s", p, e)
        return []

    if not isinstance(doc, dict) or not isinstance(doc.get("collectors", []), list):
        logger.error("Collectors file %s must be a mapping with a 'collectors' list", p)
        return []

    site = doc.get("site", default_site)
    targets = doc.get("targets")
    items: List[Dict[str, Any]] = []
    for raw in doc.get("collectors", []):
        if not isinstance(raw, dict):
            logger.error("Skipping non-mapping collector entry in %s: %r", p, raw)
            continue
        item = dict(raw)
        if site is not None:
            item.setdefault("site", site)
        if targets is not None:
            item.setdefault("targets", targets)
        items.append(item)
    return items


def utcnow_iso() -> str:
    """Return current UTC timestamp in ISO 8601 format."""
    return datetime.now(timezone.utc).isoformat()
