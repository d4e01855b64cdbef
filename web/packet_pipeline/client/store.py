"""
Client packet store: history once, then live packets.

`initialize(history)` fixes the demarcation sequence (the last history
packet's sequence) and places the backlog as "history". A live packet is
placed as "current" when its sequence is above the demarcation and has not
been placed yet, so redeliveries from an at-least-once stream are dropped
while late, out-of-order packets still show up.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..dto import Packet
from ..ports import Placement, RendererPort
from .filtering import FilteringEngine


class ClientPacketStore:
    def __init__(
        self,
        engine: FilteringEngine,
        renderer: Optional[RendererPort] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.engine = engine
        self.renderer = renderer
        self._logger = logger or logging.getLogger("fluidity.client")
        self.packets: Dict[int, Packet] = {}
        self.placements: Dict[int, Placement] = {}
        self.demarcation_sequence: Optional[int] = None
        self.dropped = 0
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, history: Sequence[Packet]) -> int:
        """Place the backlog; must be called exactly once, before live packets."""
        if self._initialized:
            raise RuntimeError("store already initialized")
        self._initialized = True
        self.demarcation_sequence = history[-1].sequence if history else None
        for packet in history:
            self._place("history", packet)
        self._logger.info(
            "Session initialized with %d history packet(s), demarcation=%s",
            len(history),
            self.demarcation_sequence,
        )
        return len(history)

    def on_live_packet(self, packet: Packet) -> bool:
        """Place one live packet; returns False if it was dropped as a duplicate."""
        if not self._initialized:
            raise RuntimeError("live packet received before initialize()")
        demarc = self.demarcation_sequence
        if (demarc is not None and packet.sequence <= demarc) or packet.sequence in self.packets:
            self.dropped += 1
            self._logger.debug("Dropped #%d (demarcation %s)", packet.sequence, demarc)
            return False
        self._place("current", packet)
        return True

    def refresh(self) -> None:
        """Recompute visibility after a filter change and let the renderer redraw."""
        visibility = self.engine.compute_visible()
        if self.renderer is not None:
            self.renderer.refresh(visibility, self.engine.stats)

    def visible_packets(self) -> List[Packet]:
        visibility = self.engine.compute_visible()
        return [p for seq, p in self.packets.items() if seq in visibility]

    def _place(self, placement: Placement, packet: Packet) -> None:
        self.engine.index(packet)
        self.packets[packet.sequence] = packet
        self.placements[packet.sequence] = placement
        visible = self.engine.is_visible(packet)
        if self.renderer is not None:
            self.renderer.place(placement, packet, visible)
