"""
Collector routes: status of every configured collector and line push for
collectors that have no device.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from packet_pipeline.wire import packet_to_wire
from fluidity.managers.collector_manager import CollectorManager, DeviceBoundCollector, UnknownCollector

bp = Blueprint("collectors", __name__, url_prefix="/collectors")


@bp.route("", methods=["GET"])
def list_collectors():
    mgr: CollectorManager = current_app.extensions["collector_mgr"]
    return jsonify({"success": True, "collectors": mgr.status()})


@bp.route("/<label>/lines", methods=["POST"])
def push_lines(label: str):
    """
    Feed raw lines to a collector without a device.

    Body: JSON {"lines": ["...", ...]} or text/plain, one line per row.
    """
    data = request.get_json(silent=True)
    if isinstance(data, dict) and isinstance(data.get("lines"), list):
        lines = [str(x) for x in data["lines"]]
    else:
        lines = [ln for ln in request.get_data(as_text=True).splitlines() if ln]
    if not lines:
        return jsonify({"success": False, "error": "No lines given"}), 400

    mgr: CollectorManager = current_app.extensions["collector_mgr"]
    try:
        packets = mgr.feed(label, lines)
    except UnknownCollector:
        return jsonify({"success": False, "error": f"Unknown collector '{label}'"}), 404
    except DeviceBoundCollector as e:
        return jsonify({"success": False, "error": str(e)}), 409

    return jsonify({"success": True, "packets": [packet_to_wire(p) for p in packets]})
