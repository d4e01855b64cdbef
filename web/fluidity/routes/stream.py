"""
Streaming route: server-sent events carrying the history backlog, then live packets.

Event sequence per connection:
  event: history   data: [<wire packet>, ...]
  event: packet    data: <wire packet>          (repeated)
  : keepalive                                    (comment, when idle)
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from flask import Blueprint, Response, current_app, stream_with_context

from packet_pipeline.wire import packet_to_wire
from fluidity.managers.stream_hub import StreamHub

bp = Blueprint("stream", __name__, url_prefix="/stream")


def sse_event(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, separators=(',', ':'))}\n\n"


@bp.route("/sse")
def sse():
    """Open one stream session; it lasts until the client disconnects."""
    hub: StreamHub = current_app.extensions["stream_hub"]
    keepalive = float(current_app.config["SSE_KEEPALIVE_SECONDS"])
    sub = hub.subscribe()

    def generate() -> Iterator[str]:
        try:
            yield sse_event("history", [packet_to_wire(p) for p in sub.history])
            while not sub.closed.is_set():
                packet = sub.next_packet(timeout=keepalive)
                if packet is None:
                    yield ": keepalive\n\n"
                    continue
                yield sse_event("packet", packet_to_wire(packet))
        finally:
            hub.unsubscribe(sub.id)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
