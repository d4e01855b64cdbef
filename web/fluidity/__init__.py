"""
Flask app factory: registers config, logging, the packet pipeline, blueprints, and error handlers.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Type

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from packet_pipeline.config import PublisherConfig
from packet_pipeline.publisher import HttpsTransport, Publisher
from fluidity.config import Config, DevelopmentConfig, ProductionConfig
from fluidity.utils import ensure_dirs, init_logging, load_collector_configs, utcnow_iso
from fluidity.managers.collector_manager import CollectorManager
from fluidity.managers.stream_hub import StreamHub
from fluidity.routes import collectors as collectors_bp
from fluidity.routes import fifo as fifo_bp
from fluidity.routes import stream as stream_bp


def create_app(config_class: Type[Config] | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Config selection
    cfg: Type[Config]
    env = os.getenv("FLASK_ENV", "production").lower()
    if config_class is not None:
        cfg = config_class
    elif env.startswith("dev"):
        cfg = DevelopmentConfig
    else:
        cfg = ProductionConfig
    app.config.from_object(cfg)

    ensure_dirs(Path(app.config["LOG_FOLDER"]))

    # Logging
    logger = init_logging(app)
    app.logger = logger  # align Flask's logger with ours

    # Distribution boundary -> publisher -> collectors
    hub = StreamHub(
        logger=logger,
        history_size=app.config["HISTORY_SIZE"],
        queue_size=app.config["SUBSCRIBER_QUEUE_SIZE"],
    )
    publisher = Publisher(
        distribution=hub,
        transport=HttpsTransport(timeout=app.config["TARGET_TIMEOUT_SECONDS"]),
        logger=logger,
        cfg=PublisherConfig(
            target_timeout_seconds=app.config["TARGET_TIMEOUT_SECONDS"],
            dispatch_workers=app.config["DISPATCH_WORKERS"],
        ),
    )
    collector_mgr = CollectorManager(logger=logger, publisher=publisher)
    collector_mgr.load(
        load_collector_configs(app.config["COLLECTORS_FILE"], logger, default_site=app.config["SITE"])
    )
    if app.config["START_COLLECTORS"]:
        collector_mgr.start()

    app.extensions["stream_hub"] = hub
    app.extensions["publisher"] = publisher
    app.extensions["collector_mgr"] = collector_mgr

    # Security-ish headers
    @app.after_request
    def set_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp

    # Error handlers
    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(_e):
        return jsonify({"success": False, "error": "Request too large"}), 413

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({"success": False, "error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(e: Exception):
        app.logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    # Blueprints
    app.register_blueprint(fifo_bp.bp)
    app.register_blueprint(stream_bp.bp)
    app.register_blueprint(collectors_bp.bp)

    # Health
    @app.route("/healthz")
    def healthz():
        return jsonify(
            {"status": "ok", "time": utcnow_iso(), "publisher": publisher.stats(), "stream": hub.snapshot()}
        ), 200

    return app
