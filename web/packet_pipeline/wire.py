"""
Packet wire shape, shared by target delivery, the FIFO endpoint and the
server-sent-event stream:

    { sequence, site, collectorId, description,
      formattedFields: [{ value, kind, styleHint }],
      rawPayload?, timestamp? }

`WirePacket` validates untrusted JSON (remote publishers, stream clients)
before it is turned back into DTOs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .dto import DraftPacket, FormattedField, LinkRecord, Packet


class WireLink(BaseModel):
    name: str
    location: str


class WireField(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: Union[WireLink, str]
    kind: Literal["STRING", "LINK", "DATE"] = "STRING"
    style_hint: int = Field(default=0, alias="styleHint")

    @model_validator(mode="after")
    def _value_matches_kind(self) -> "WireField":
        if self.kind == "LINK" and not isinstance(self.value, WireLink):
            raise ValueError("LINK fields need a {name, location} value")
        if self.kind != "LINK" and not isinstance(self.value, str):
            raise ValueError(f"{self.kind} fields need a string value")
        return self


class WirePacket(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sequence: Optional[int] = None
    site: str
    collector_id: str = Field(alias="collectorId")
    description: str
    formatted_fields: List[WireField] = Field(default_factory=list, alias="formattedFields")
    raw_payload: Optional[str] = Field(default=None, alias="rawPayload")
    timestamp: Optional[datetime] = None

    def fields(self) -> tuple[FormattedField, ...]:
        out = []
        for f in self.formatted_fields:
            value: Union[str, LinkRecord]
            if isinstance(f.value, WireLink):
                value = LinkRecord(name=f.value.name, location=f.value.location)
            else:
                value = f.value
            out.append(FormattedField(value=value, kind=f.kind, style_hint=f.style_hint))
        return tuple(out)


def field_to_wire(f: FormattedField) -> Dict[str, Any]:
    value: Any = f.value
    if isinstance(value, LinkRecord):
        value = {"name": value.name, "location": value.location}
    return {"value": value, "kind": f.kind, "styleHint": f.style_hint}


def packet_to_wire(packet: Packet, *, include_raw: bool = True) -> Dict[str, Any]:
    """Serialize a packet; optional keys are left out when absent."""
    out: Dict[str, Any] = {
        "sequence": packet.sequence,
        "site": packet.site,
        "collectorId": packet.collector_id,
        "description": packet.description,
        "formattedFields": [field_to_wire(f) for f in packet.formatted_fields],
    }
    if include_raw and packet.raw_payload is not None:
        out["rawPayload"] = packet.raw_payload
    if packet.timestamp is not None:
        out["timestamp"] = packet.timestamp.isoformat()
    return out


def packet_from_wire(obj: Any) -> Packet:
    """
    Parse a sequenced packet.

    Raises:
        pydantic.ValidationError: malformed payload.
        ValueError: the payload carries no sequence number.
    """
    wp = WirePacket.model_validate(obj)
    if wp.sequence is None:
        raise ValueError("packet has no sequence number")
    return Packet(
        sequence=wp.sequence,
        site=wp.site,
        collector_id=wp.collector_id,
        description=wp.description,
        formatted_fields=wp.fields(),
        raw_payload=wp.raw_payload,
        timestamp=wp.timestamp,
    )


def draft_from_wire(obj: Any) -> DraftPacket:
    """Parse a packet from a remote publisher; any sequence it carries is dropped."""
    wp = WirePacket.model_validate(obj)
    return DraftPacket(
        site=wp.site,
        collector_id=wp.collector_id,
        description=wp.description,
        formatted_fields=wp.fields(),
        raw_payload=wp.raw_payload,
        timestamp=wp.timestamp,
    )
