"""
Client session over the server-sent-event stream.

The server sends one `history` event (a JSON list of wire packets) followed
by `packet` events (one wire packet each). The session feeds them to a
ClientPacketStore and runs until the channel closes. Packets and filter
interactions are serialized behind one lock, so the engine always computes
visibility from a consistent snapshot of its indices.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, Iterator, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..dto import Packet
from ..wire import packet_from_wire
from .store import ClientPacketStore

SSE_PATH = "/stream/sse"


def iter_sse(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """Parse SSE text lines into (event, data) pairs; comments are skipped."""
    event = "message"
    data: List[str] = []
    for line in lines:
        if line == "":
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


class ClientSession:
    def __init__(
        self,
        store: ClientPacketStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self._logger = logger or logging.getLogger("fluidity.client")
        self._lock = threading.Lock()
        self.rejected = 0

    # ------------------------------ Events ------------------------------

    def handle_event(self, event: str, data: str) -> None:
        with self._lock:
            if event == "history":
                if self.store.initialized:
                    self._logger.warning("Ignoring repeated history event")
                    return
                self.store.initialize(self._parse_many(data))
            elif event == "packet":
                packet = self._parse_one(data)
                if packet is None:
                    return
                if not self.store.initialized:
                    # no history event: treat as empty backlog
                    self.store.initialize([])
                self.store.on_live_packet(packet)
            else:
                self._logger.debug("Ignoring SSE event %r", event)

    def interact(self, element_id: str) -> bool:
        """Apply a filter interaction and redraw."""
        with self._lock:
            handled = self.store.engine.handle_interaction(element_id)
            if handled:
                self.store.refresh()
            return handled

    # ------------------------------ Transport ------------------------------

    def run(self, base_url: str, *, client: Optional[httpx.Client] = None, timeout: float = 30.0) -> None:
        """Stream events from `base_url` until the server closes the channel."""
        own = client is None
        http = client or httpx.Client(timeout=httpx.Timeout(timeout, read=None))
        url = base_url.rstrip("/") + SSE_PATH
        try:
            with http.stream("GET", url, headers={"Accept": "text/event-stream"}) as resp:
                resp.raise_for_status()
                self._logger.info("Connected to %s", url)
                for event, data in iter_sse(resp.iter_lines()):
                    self.handle_event(event, data)
        finally:
            if own:
                http.close()
        self._logger.info("Stream from %s closed", url)

    # --------------------------- Private helpers ---------------------------

    def _parse_one(self, data: str) -> Optional[Packet]:
        try:
            return packet_from_wire(json.loads(data))
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            self.rejected += 1
            self._logger.warning("Rejected malformed packet: %s", e)
            return None

    def _parse_many(self, data: str) -> List[Packet]:
        try:
            items = json.loads(data)
        except json.JSONDecodeError as e:
            self._logger.warning("Rejected malformed history: %s", e)
            return []
        if not isinstance(items, list):
            self._logger.warning("Rejected history: expected a list, got %s", type(items).__name__)
            return []
        out: List[Packet] = []
        for item in items:
            try:
                out.append(packet_from_wire(item))
            except (ValidationError, ValueError) as e:
                self.rejected += 1
                self._logger.warning("Rejected malformed history packet: %s", e)
        return out
