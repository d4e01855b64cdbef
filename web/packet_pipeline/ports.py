"""
Hexagonal interfaces (Ports) for the packet pipeline.

These define the boundary between the core (collector, publisher, client
store, filtering) and its collaborators: devices, parsing strategies,
network transports, the distribution boundary and the renderer. Keep them
small so they are easy to fake in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List, Literal, Protocol, Sequence

from .config import PublishTarget
from .dto import FormattedField, Packet

if TYPE_CHECKING:
    from .client.filtering import FilterStats, Visibility

Placement = Literal["history", "current"]


class LineSourcePort(Protocol):
    """
    A device binding: owns a line-delimited read stream.

    `open()` acquires the device and raises DeviceError when that fails.
    `lines()` yields one decoded line at a time (delimiter stripped) until the
    stream ends or `close()` is called; a read failure raises DeviceError.
    """

    def open(self) -> None:
        ...

    def lines(self) -> Iterator[str]:
        ...

    def close(self) -> None:
        ...


class ParseStrategy(Protocol):
    """Turns one raw device line into formatted fields."""

    def format(self, raw: str) -> List[FormattedField]:
        ...


class TransportPort(Protocol):
    """Delivers one wire payload to one target; raises on delivery failure."""

    def send(self, target: PublishTarget, payload: dict) -> None:
        ...


class DistributionPort(Protocol):
    """Delivers finalized packets to connected clients in emission order."""

    def deliver(self, packet: Packet) -> None:
        ...

    def history_for(self, session_id: str) -> Sequence[Packet]:
        ...


class RendererPort(Protocol):
    """
    Presentation collaborator for the client side.

    `place` is called once per accepted packet with its visibility already
    decided; `refresh` after every filter change with the full visibility
    decision and stats.
    """

    def place(self, placement: Placement, packet: Packet, visible: bool) -> None:
        ...

    def refresh(self, visibility: "Visibility", stats: "FilterStats") -> None:
        ...
