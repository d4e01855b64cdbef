"""
Data Transfer Objects (DTOs) shared by every stage of the packet pipeline.

These are immutable and independent of any I/O, transport or web library.
A `DraftPacket` is what a collector produces; the publisher turns it into a
`Packet` by stamping the stream sequence number.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Tuple, Union

FieldKind = Literal["STRING", "LINK", "DATE"]
FIELD_KINDS: Tuple[str, ...] = ("STRING", "LINK", "DATE")


@dataclass(frozen=True)
class LinkRecord:
    """Link shown by the renderer; only valid inside a LINK field."""
    name: str
    location: str


FieldValue = Union[str, LinkRecord]


@dataclass(frozen=True)
class FormattedField:
    """One rendered column of a packet."""
    value: FieldValue
    kind: FieldKind = "STRING"
    style_hint: int = 0   # presentation variant only

    def __post_init__(self) -> None:
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind: {self.kind!r}")
        if self.kind == "LINK" and not isinstance(self.value, LinkRecord):
            raise ValueError("LINK fields require a LinkRecord value")
        if self.kind != "LINK" and not isinstance(self.value, str):
            raise ValueError(f"{self.kind} fields require a string value")


# === Collector output (not yet in the stream) ===
@dataclass(frozen=True)
class DraftPacket:
    site: str
    collector_id: str
    description: str
    formatted_fields: Tuple[FormattedField, ...] = field(default_factory=tuple)
    raw_payload: Optional[str] = None
    timestamp: Optional[datetime] = None


# === Finalized, sequenced packet ===
@dataclass(frozen=True)
class Packet:
    sequence: int
    site: str
    collector_id: str
    description: str
    formatted_fields: Tuple[FormattedField, ...] = field(default_factory=tuple)
    raw_payload: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_draft(cls, draft: DraftPacket, sequence: int) -> "Packet":
        return cls(
            sequence=sequence,
            site=draft.site,
            collector_id=draft.collector_id,
            description=draft.description,
            formatted_fields=tuple(draft.formatted_fields),
            raw_payload=draft.raw_payload,
            timestamp=draft.timestamp,
        )
