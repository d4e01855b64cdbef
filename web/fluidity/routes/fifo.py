"""
FIFO routes: read the history backlog, accept packets from remote publishers.

Remote packets are re-sequenced locally and go to stream clients only; they
are not fanned out to this server's own targets.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from packet_pipeline.publisher import Publisher
from packet_pipeline.wire import draft_from_wire, packet_to_wire
from fluidity.managers.stream_hub import StreamHub

bp = Blueprint("fifo", __name__, url_prefix="/fifo")


@bp.route("", methods=["GET"])
def get_history():
    """Return the packets a new session would start from."""
    hub: StreamHub = current_app.extensions["stream_hub"]
    packets = [packet_to_wire(p) for p in hub.history_for()]
    resp = jsonify({"success": True, "packets": packets})
    ttl = int(current_app.config.get("HTTP_CACHE_TTL_SECONDS", 0))
    resp.headers["Cache-Control"] = f"max-age={ttl}" if ttl > 0 else "no-store"
    return resp


@bp.route("", methods=["POST"])
def post_packets():
    """
    Accept one wire packet or a list of them.

    Body (JSON):
      { "site": "north", "collectorId": "gauge1", "description": "...",
        "formattedFields": [{"value": "12.5", "kind": "STRING", "styleHint": 0}] }
    """
    body = request.get_json(silent=True)
    if body is None:
        return jsonify({"success": False, "error": "Expected a JSON body"}), 400

    items = body if isinstance(body, list) else [body]
    try:
        drafts = [draft_from_wire(item) for item in items]
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False)
        current_app.logger.warning("Rejected remote packet(s): %s", details)
        return jsonify({"success": False, "error": "Invalid packet", "details": details}), 400

    publisher: Publisher = current_app.extensions["publisher"]
    sequences = [publisher.publish(d).sequence for d in drafts]
    return jsonify({"success": True, "sequences": sequences}), 201
