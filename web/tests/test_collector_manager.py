import pytest

from fluidity.managers.collector_manager import CollectorManager, DeviceBoundCollector, UnknownCollector


def raw(label, **overrides):
    cfg = {
        "site": "north",
        "label": label,
        "collectorType": "generic",
        "targets": [{"location": "https://x/y", "key": "k"}],
        "keepRaw": True,
    }
    cfg.update(overrides)
    return cfg


def test_load_records_invalid_entries(publisher, logger):
    mgr = CollectorManager(logger=logger, publisher=publisher)
    accepted = mgr.load(
        [
            raw("a"),
            raw("a"),
            raw("b", targets=[{"location": "http://plain"}]),
            raw("c", collectorType="nope"),
            {"label": "d"},
        ]
    )
    assert accepted == 1
    status = {(s["label"], s["state"]) for s in mgr.status()}
    assert status == {("a", "idle"), ("a", "invalid"), ("b", "invalid"), ("c", "invalid"), ("d", "invalid")}
    insecure = next(s for s in mgr.status() if s["label"] == "b")
    assert "https" in insecure["error"]


def test_feed_pushes_lines(publisher, distribution, logger):
    mgr = CollectorManager(logger=logger, publisher=publisher)
    mgr.load([raw("manual")])
    packets = mgr.feed("manual", ["one", "two"])
    assert [p.sequence for p in packets] == [1, 2]
    assert [p.raw_payload for p in distribution.packets] == ["one", "two"]
    assert mgr.get("manual").lines_seen == 2

    with pytest.raises(UnknownCollector):
        mgr.feed("missing", ["x"])


def test_device_collectors_run_on_threads(tmp_path, publisher, distribution, logger):
    cap = tmp_path / "cap.txt"
    cap.write_bytes(b"1\r\n2\r\n")
    mgr = CollectorManager(logger=logger, publisher=publisher)
    mgr.load([raw("dev", collectorType="generic-serial", deviceAddress=f"file://{cap}"), raw("manual")])

    with pytest.raises(DeviceBoundCollector):
        mgr.feed("dev", ["x"])

    assert mgr.start() == 1
    mgr.threads["dev"].join(timeout=5)
    mgr.stop()

    assert [p.formatted_fields[0].value for p in distribution.packets] == ["1", "2"]
    assert mgr.get("dev").state == "stopped"
    assert mgr.start() == 0


@pytest.mark.parametrize(
    "options",
    [
        {"replayInterval": "fast"},
        {"delimiter": ""},
        {"pairSeparator": 5},
    ],
)
def test_malformed_options_only_disable_that_collector(tmp_path, publisher, logger, options):
    mgr = CollectorManager(logger=logger, publisher=publisher)
    bad = raw(
        "bad",
        collectorType="keyvalue-serial",
        deviceAddress=f"file://{tmp_path / 'cap.txt'}",
        extendedOptions=options,
    )
    assert mgr.load([bad, raw("good")]) == 1

    states = {s["label"]: s["state"] for s in mgr.status()}
    assert states == {"bad": "invalid", "good": "idle"}
