"""
Text renderer for terminal clients.

Lines look like:

    h [14:02:11] north(gauge1): 12.5 | docs <https://example/doc>
    * [14:02:12] south(pump): rpm: 1200

`h` marks history placements, `*` live ones. Filtered-out packets are not
printed. A missing or closed output stream turns the renderer into a no-op.
"""

from __future__ import annotations

from datetime import datetime
from typing import IO, Optional

from ..dto import FormattedField, LinkRecord, Packet
from ..ports import Placement
from .filtering import FilterStats, Visibility

_MARKS = {"history": "h", "current": "*"}


def render_field(f: FormattedField) -> str:
    if f.kind == "LINK" and isinstance(f.value, LinkRecord):
        return f"{f.value.name} <{f.value.location}>"
    if f.kind == "DATE" and isinstance(f.value, str):
        try:
            return datetime.fromisoformat(f.value).strftime("%H:%M:%S")
        except ValueError:
            return f.value
    return str(f.value)


def render_packet(packet: Packet, *, show_raw: bool = False) -> str:
    ts = packet.timestamp.astimezone().strftime("%H:%M:%S") if packet.timestamp else "--:--:--"
    fields = " | ".join(render_field(f) for f in packet.formatted_fields)
    line = f"[{ts}] {packet.site}({packet.description}): {fields}"
    if show_raw and packet.raw_payload is not None:
        line += f"  raw={packet.raw_payload!r}"
    return line


class ConsoleRenderer:
    def __init__(self, stream: Optional[IO[str]] = None, *, show_raw: bool = False) -> None:
        self.stream = stream
        self.show_raw = show_raw
        self.printed = 0

    def place(self, placement: Placement, packet: Packet, visible: bool) -> None:
        if visible:
            self._write(f"{_MARKS[placement]} {render_packet(packet, show_raw=self.show_raw)}")
            self.printed += 1

    def refresh(self, visibility: Visibility, stats: FilterStats) -> None:
        self._write(f"-- {stats.visible_count} visible, {stats.filter_count} filter(s) active --")

    def _write(self, line: str) -> None:
        if self.stream is None:
            return
        try:
            self.stream.write(line + "\n")
            self.stream.flush()
        except (BrokenPipeError, ValueError):
            # closed pipe or closed file
            self.stream = None
