from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from packet_pipeline.dto import DraftPacket, FormattedField, LinkRecord, Packet
from packet_pipeline.wire import draft_from_wire, packet_from_wire, packet_to_wire


def test_formatted_field_rejects_mismatched_kind():
    with pytest.raises(ValueError):
        FormattedField(value="https://x", kind="LINK")
    with pytest.raises(ValueError):
        FormattedField(value=LinkRecord("doc", "https://x"), kind="STRING")
    with pytest.raises(ValueError):
        FormattedField(value="x", kind="NUMBER")


def test_packet_to_wire_shape():
    p = Packet(
        sequence=3,
        site="north",
        collector_id="gauge1",
        description="gauge",
        formatted_fields=(
            FormattedField(value="12.5"),
            FormattedField(value=LinkRecord("doc", "https://d"), kind="LINK", style_hint=2),
        ),
        raw_payload="12.5",
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    out = packet_to_wire(p)
    assert out == {
        "sequence": 3,
        "site": "north",
        "collectorId": "gauge1",
        "description": "gauge",
        "formattedFields": [
            {"value": "12.5", "kind": "STRING", "styleHint": 0},
            {"value": {"name": "doc", "location": "https://d"}, "kind": "LINK", "styleHint": 2},
        ],
        "rawPayload": "12.5",
        "timestamp": "2024-05-01T12:00:00+00:00",
    }
    assert "rawPayload" not in packet_to_wire(p, include_raw=False)


def test_optional_keys_are_left_out():
    p = Packet(sequence=1, site="s", collector_id="c", description="d")
    out = packet_to_wire(p)
    assert "rawPayload" not in out
    assert "timestamp" not in out


def test_packet_from_wire_parses_links_and_timestamp():
    p = packet_from_wire(
        {
            "sequence": 9,
            "site": "south",
            "collectorId": "pump",
            "description": "pump",
            "formattedFields": [{"value": {"name": "n", "location": "https://l"}, "kind": "LINK"}],
            "timestamp": "2024-05-01T12:00:00Z",
        }
    )
    assert p.sequence == 9
    assert p.formatted_fields[0].value == LinkRecord("n", "https://l")
    assert p.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_packet_from_wire_requires_sequence():
    with pytest.raises(ValueError):
        packet_from_wire({"site": "s", "collectorId": "c", "description": "d"})


def test_draft_from_wire_drops_sequence_and_validates():
    d = draft_from_wire({"sequence": 44, "site": "s", "collectorId": "c", "description": "d"})
    assert isinstance(d, DraftPacket)
    assert d.formatted_fields == ()

    with pytest.raises(ValidationError):
        draft_from_wire({"site": "s", "description": "d"})
    with pytest.raises(ValidationError):
        draft_from_wire(
            {"site": "s", "collectorId": "c", "description": "d", "formattedFields": [{"value": "x", "kind": "LINK"}]}
        )
