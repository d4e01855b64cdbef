import pytest

from conftest import RecordingRenderer, make_packet
from packet_pipeline.client import ClientPacketStore, FilteringEngine


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def store(renderer):
    return ClientPacketStore(FilteringEngine(), renderer)


def test_history_then_live_with_demarcation(store, renderer):
    store.initialize([make_packet(5), make_packet(7)])
    assert store.demarcation_sequence == 7

    assert store.on_live_packet(make_packet(6)) is False
    assert store.on_live_packet(make_packet(7)) is False
    assert store.on_live_packet(make_packet(8)) is True
    assert store.on_live_packet(make_packet(8)) is False

    assert renderer.placed == [("history", 5, True), ("history", 7, True), ("current", 8, True)]
    assert store.placements == {5: "history", 7: "history", 8: "current"}
    assert store.dropped == 3


def test_empty_history_accepts_every_live_packet(store, renderer):
    store.initialize([])
    assert store.demarcation_sequence is None
    assert store.on_live_packet(make_packet(1))
    assert store.on_live_packet(make_packet(2))
    assert [p[0] for p in renderer.placed] == ["current", "current"]


def test_initialize_exactly_once_and_before_live(store):
    with pytest.raises(RuntimeError):
        store.on_live_packet(make_packet(1))
    store.initialize([])
    with pytest.raises(RuntimeError):
        store.initialize([])


def test_placement_honors_active_filters(renderer):
    engine = FilteringEngine()
    engine.set_site_filter("north", True)
    store = ClientPacketStore(engine, renderer)
    store.initialize([make_packet(1, site="north"), make_packet(2, site="south")])
    store.on_live_packet(make_packet(3, site="south"))

    assert renderer.placed == [("history", 1, True), ("history", 2, False), ("current", 3, False)]
    assert [p.sequence for p in store.visible_packets()] == [1]


def test_refresh_reports_stats(store, renderer):
    store.initialize([make_packet(1, site="a"), make_packet(2, site="b")])
    store.engine.handle_interaction("filter-site-b")
    store.refresh()
    visibility, stats = renderer.refreshes[-1]
    assert visibility.sequences == frozenset({2})
    assert (stats.visible_count, stats.filter_count) == (1, 1)


def test_store_without_renderer(store):
    bare = ClientPacketStore(FilteringEngine())
    bare.initialize([make_packet(1)])
    bare.refresh()
    assert [p.sequence for p in bare.visible_packets()] == [1]


def test_late_live_packet_above_demarcation_is_placed(store, renderer):
    store.initialize([make_packet(5), make_packet(7)])
    assert store.on_live_packet(make_packet(9)) is True
    assert store.on_live_packet(make_packet(8)) is True
    assert store.on_live_packet(make_packet(9)) is False

    assert [p[1] for p in renderer.placed] == [5, 7, 9, 8]
    assert store.placements[8] == "current"
