import logging
from concurrent.futures import Executor, Future
from datetime import datetime, timezone

import httpx
import pytest

from packet_pipeline.config import PublishTarget
from packet_pipeline.dto import FormattedField, Packet
from packet_pipeline.publisher import Publisher


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        fut = Future()
        try:
            fut.set_result(fn(*args, **kwargs))
        except BaseException as e:  # propagate through the future like a pool would
            fut.set_exception(e)
        return fut


class RecordingDistribution:
    def __init__(self):
        self.packets = []

    def deliver(self, packet):
        self.packets.append(packet)

    def history_for(self, session_id):
        return list(self.packets)


class RecordingTransport:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, target, payload):
        if target.location in self.fail_for:
            raise httpx.ConnectError("connection refused")
        self.sent.append((target.location, payload))


class RecordingRenderer:
    def __init__(self):
        self.placed = []
        self.refreshes = []

    def place(self, placement, packet, visible):
        self.placed.append((placement, packet.sequence, visible))

    def refresh(self, visibility, stats):
        self.refreshes.append((visibility, stats))


FIXED_TS = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_packet(seq, site="north", collector="gauge1", value="x"):
    return Packet(
        sequence=seq,
        site=site,
        collector_id=collector,
        description=collector,
        formatted_fields=(FormattedField(value=value),),
        timestamp=FIXED_TS,
    )


@pytest.fixture
def logger():
    log = logging.getLogger("fluidity.tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def distribution():
    return RecordingDistribution()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def publisher(distribution, transport, logger):
    return Publisher(distribution=distribution, transport=transport, logger=logger, executor=InlineExecutor())


@pytest.fixture
def secure_target():
    return PublishTarget(location="https://x/y", key="k1")
