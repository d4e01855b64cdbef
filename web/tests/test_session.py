import io
import json

import httpx

from conftest import make_packet
from packet_pipeline.client import ConsoleRenderer, iter_sse
from packet_pipeline.client.cli import make_session
from packet_pipeline.client.render import render_field, render_packet
from packet_pipeline.dto import FormattedField, LinkRecord
from packet_pipeline.wire import packet_to_wire


def sse(event, payload):
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


def test_iter_sse_parses_events_and_skips_comments():
    lines = ["event: history", "data: []", "", ": keepalive", "", "data: a", "data: b", "", "event: x", "data: tail"]
    assert list(iter_sse(lines)) == [("history", "[]"), ("message", "a\nb"), ("x", "tail")]


def test_session_places_history_then_live():
    out = io.StringIO()
    session = make_session([], [], stream=out)
    session.handle_event("history", json.dumps([packet_to_wire(make_packet(1)), packet_to_wire(make_packet(2))]))
    session.handle_event("packet", json.dumps(packet_to_wire(make_packet(2))))
    session.handle_event("packet", json.dumps(packet_to_wire(make_packet(3, value="hello"))))

    assert session.store.demarcation_sequence == 2
    assert sorted(session.store.packets) == [1, 2, 3]
    lines = out.getvalue().splitlines()
    assert [ln[0] for ln in lines] == ["h", "h", "*"]
    assert lines[2].endswith("north(gauge1): hello")


def test_session_tolerates_bad_and_repeated_events():
    session = make_session([], [], stream=io.StringIO())
    session.handle_event("packet", "{not json")
    assert session.rejected == 1
    assert not session.store.initialized

    session.handle_event("packet", json.dumps(packet_to_wire(make_packet(4))))
    assert session.store.initialized
    assert session.store.demarcation_sequence is None

    session.handle_event("history", json.dumps([packet_to_wire(make_packet(1))]))
    assert sorted(session.store.packets) == [4]


def test_interact_filters_and_redraws():
    out = io.StringIO()
    session = make_session([], [], stream=out)
    session.handle_event(
        "history",
        json.dumps([packet_to_wire(make_packet(1, site="a")), packet_to_wire(make_packet(2, site="b"))]),
    )
    assert session.interact("filter-site-a")
    assert not session.interact("bogus")
    assert out.getvalue().splitlines()[-1] == "-- 1 visible, 1 filter(s) active --"


def test_cli_filters_apply_before_history():
    out = io.StringIO()
    session = make_session(["b"], [], stream=out)
    session.handle_event(
        "history",
        json.dumps([packet_to_wire(make_packet(1, site="a")), packet_to_wire(make_packet(2, site="b"))]),
    )
    lines = out.getvalue().splitlines()
    assert len(lines) == 1
    assert " b(gauge1)" in lines[0]


def test_run_consumes_stream():
    body = sse("history", [packet_to_wire(make_packet(1))]) + ": keepalive\n\n" + sse("packet", packet_to_wire(make_packet(2)))

    def handler(request):
        assert request.url.path == "/stream/sse"
        return httpx.Response(200, text=body, headers={"Content-Type": "text/event-stream"})

    session = make_session([], [], stream=io.StringIO())
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        session.run("https://server.test/", client=client)
    assert session.store.placements == {1: "history", 2: "current"}


def test_render_helpers():
    assert render_field(FormattedField(value=LinkRecord("doc", "https://d"), kind="LINK")) == "doc <https://d>"
    assert render_field(FormattedField(value="2024-05-01T08:09:10", kind="DATE")) == "08:09:10"
    assert render_field(FormattedField(value="not a date", kind="DATE")) == "not a date"

    p = make_packet(1)
    assert render_packet(p).endswith("north(gauge1): x")
    assert "raw=" not in render_packet(p, show_raw=True)


def test_console_renderer_without_stream_is_silent():
    r = ConsoleRenderer(None)
    r.place("current", make_packet(1), True)
    assert r.printed == 1
