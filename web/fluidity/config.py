"""
Configuration objects for the Flask application.

Override via environment variables. Collector definitions live in a separate
YAML file (COLLECTORS_FILE); see `fluidity.utils.load_collector_configs`.
"""

from __future__ import annotations
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration (safe defaults)."""

    TESTING = False

    # Identity
    SITE = os.getenv("FLUIDITY_SITE", "local")

    # Collectors
    COLLECTORS_FILE = os.getenv("FLUIDITY_COLLECTORS_FILE", "collectors.yaml")
    START_COLLECTORS = _env_bool("FLUIDITY_START_COLLECTORS", "true")

    # Distribution
    HISTORY_SIZE = int(os.getenv("FLUIDITY_HISTORY_SIZE", "500"))
    SUBSCRIBER_QUEUE_SIZE = int(os.getenv("FLUIDITY_SUBSCRIBER_QUEUE_SIZE", "1000"))
    SSE_KEEPALIVE_SECONDS = float(os.getenv("FLUIDITY_SSE_KEEPALIVE_SECONDS", "15"))
    HTTP_CACHE_TTL_SECONDS = int(os.getenv("FLUIDITY_HTTP_CACHE_TTL_SECONDS", "0"))

    # Publishing
    TARGET_TIMEOUT_SECONDS = float(os.getenv("FLUIDITY_TARGET_TIMEOUT_SECONDS", "10"))
    DISPATCH_WORKERS = int(os.getenv("FLUIDITY_DISPATCH_WORKERS", "4"))

    # Requests
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(1024 * 1024)))  # 1 MiB

    # TLS (dev server only; production terminates TLS in front of gunicorn)
    TLS_CERT = os.getenv("FLUIDITY_TLS_CERT")
    TLS_KEY = os.getenv("FLUIDITY_TLS_KEY")
    PORT = int(os.getenv("FLUIDITY_PORT", "8443"))

    # Logging
    LOG_FOLDER = os.getenv("LOG_FOLDER", "logs")
    LOG_FILE = os.getenv("APP_LOG_FILE", "logs/app.log")
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")


class ProductionConfig(Config):
    """Production overrides."""
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development overrides."""
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    """Used by the test-suite: no devices, no background collectors."""
    TESTING = True
    START_COLLECTORS = False
    COLLECTORS_FILE = ""
    SSE_KEEPALIVE_SECONDS = 0.05
    LOG_LEVEL = "DEBUG"
