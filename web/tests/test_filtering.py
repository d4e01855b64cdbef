from conftest import make_packet
from packet_pipeline.client.filtering import ALL, FilteringEngine


def engine_with(*specs):
    engine = FilteringEngine()
    for seq, site, collector in specs:
        engine.index(make_packet(seq, site=site, collector=collector))
    return engine


def test_site_and_collector_filters_intersect():
    engine = engine_with((1, "A", "c1"), (2, "A", "c2"), (3, "B", "c2"), (4, "B", "c3"))
    engine.set_site_filter("A", True)
    engine.set_site_filter("B", True)
    engine.set_collector_filter("c2", True)

    visibility = engine.compute_visible()
    assert visibility.sequences == frozenset({2, 3})
    assert engine.stats.visible_count == 2
    assert engine.stats.filter_count == 3


def test_single_group_is_a_union():
    engine = engine_with((1, "A", "c1"), (2, "A", "c2"), (3, "B", "c2"))
    engine.set_collector_filter("c1", True)
    engine.set_collector_filter("c2", True)
    assert engine.compute_visible().sequences == frozenset({1, 2, 3})

    engine = engine_with((1, "A", "c1"), (2, "B", "c2"))
    engine.set_site_filter("B", True)
    assert engine.compute_visible().sequences == frozenset({2})


def test_no_filters_means_all():
    engine = engine_with((1, "A", "c1"), (2, "B", "c2"))
    visibility = engine.compute_visible()
    assert visibility is ALL
    assert 999 in visibility
    assert engine.stats.visible_count == 2
    assert engine.stats.filter_count == 0


def test_unknown_filter_identity_shows_nothing():
    engine = engine_with((1, "A", "c1"))
    engine.set_site_filter("Z", True)
    assert engine.compute_visible().sequences == frozenset()


def test_index_is_idempotent_and_reports_discoveries():
    engine = FilteringEngine()
    assert engine.index(make_packet(1, "A", "c1")) == {"site", "collector"}
    assert engine.index(make_packet(2, "A", "c2")) == {"collector"}
    assert engine.index(make_packet(2, "A", "c2")) == set()
    assert engine.site_index == {"A": {1, 2}}
    assert engine.known_count == 2


def test_toggles():
    engine = engine_with((1, "A", "c1"), (2, "B", "c1"))
    assert engine.toggle_site_filter("A") is True
    assert engine.compute_visible().sequences == frozenset({1})
    assert engine.toggle_site_filter("A") is False
    assert engine.compute_visible() is ALL
    assert engine.toggle_collector_filter("c1") is True
    assert engine.filters_active()


def test_handle_interaction_grammar():
    engine = engine_with((1, "A", "c1"), (2, "B", "c-2"))
    assert engine.handle_interaction("filter-collector-c-2")
    assert engine.active_collector_filters == {"c-2"}
    assert engine.handle_interaction("filter-site-A")
    assert engine.compute_visible().sequences == frozenset()
    assert engine.handle_interaction("clear-site-A")
    assert engine.compute_visible().sequences == frozenset({2})
    assert engine.handle_interaction("clear-site-never-set")

    assert not engine.handle_interaction("filter-sensor-A")
    assert not engine.handle_interaction("filter-site-")
    assert engine.filter_count == 1


def test_is_visible_tracks_current_filters():
    engine = engine_with((1, "A", "c1"))
    engine.set_site_filter("A", True)
    p = make_packet(2, "B", "c1")
    engine.index(p)
    assert not engine.is_visible(p)
    assert engine.visibility.sequences == frozenset({1})


def test_incremental_visibility_matches_full_recompute():
    engine = FilteringEngine()
    engine.set_site_filter("A", True)
    engine.set_collector_filter("c2", True)
    specs = [(1, "A", "c1"), (2, "A", "c2"), (3, "B", "c2"), (4, "A", "c2"), (5, "C", "c3")]

    decisions = []
    for seq, site, collector in specs:
        p = make_packet(seq, site=site, collector=collector)
        engine.index(p)
        decisions.append(engine.is_visible(p))

    assert decisions == [False, True, False, True, False]
    assert engine.visibility.sequences == frozenset({2, 4})
    assert engine.stats.visible_count == 2
    assert engine.compute_visible().sequences == frozenset({2, 4})


def test_filter_change_between_packets_is_picked_up():
    engine = engine_with((1, "A", "c1"), (2, "B", "c1"))
    p3 = make_packet(3, "A", "c1")
    engine.index(p3)
    assert engine.is_visible(p3)
    assert engine.stats.visible_count == 3

    engine.handle_interaction("filter-site-B")
    p4 = make_packet(4, "A", "c1")
    engine.index(p4)
    assert not engine.is_visible(p4)
    assert engine.visibility.sequences == frozenset({2})
