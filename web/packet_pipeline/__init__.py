"""
packet_pipeline: collect, sequence, publish and filter device packets.

Public API (stable):
- CollectorConfig, PublishTarget, PublisherConfig   (configuration)
- Collector, build_collector                        (device lines -> drafts)
- Publisher, HttpsTransport, SequenceCounter        (sequencing + fan-out)
- ClientPacketStore, FilteringEngine, Visibility    (client side)
- DTOs: Packet, DraftPacket, FormattedField, LinkRecord
- Errors: ConfigurationError, InsecureTargetError, DeviceError

Nothing in this package imports a web framework; the Flask application in
`fluidity` wires it to HTTP.
"""

from __future__ import annotations

# Configuration
from .config import CollectorConfig, PublisherConfig, PublishTarget, load_collector_config

# Collection and publishing
from .collector import Collector, build_collector
from .publisher import DispatchResult, HttpsTransport, Publisher, SequenceCounter

# Client side
from .client import ALL, ClientPacketStore, ClientSession, FilteringEngine, FilterStats, Visibility

# DTOs
from .dto import DraftPacket, FormattedField, LinkRecord, Packet

# Errors
from .errors import ConfigurationError, DeviceError, InsecureTargetError, PipelineError

__all__ = [
    "ALL",
    "ClientPacketStore",
    "ClientSession",
    "Collector",
    "CollectorConfig",
    "ConfigurationError",
    "DeviceError",
    "DispatchResult",
    "DraftPacket",
    "FilterStats",
    "FilteringEngine",
    "FormattedField",
    "HttpsTransport",
    "InsecureTargetError",
    "LinkRecord",
    "Packet",
    "PipelineError",
    "PublishTarget",
    "Publisher",
    "PublisherConfig",
    "SequenceCounter",
    "Visibility",
    "build_collector",
    "load_collector_config",
]
