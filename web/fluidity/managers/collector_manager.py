"""
Thread-safe collector orchestration.

Builds one Collector per configured entry, runs every device-bound collector
on its own daemon thread, and keeps per-collector status for the UI. Bad
configuration or a device that will not open only takes out the collector it
belongs to; the rest keep running.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import threading

from packet_pipeline.collector import Collector, build_collector
from packet_pipeline.dto import Packet
from packet_pipeline.errors import ConfigurationError
from packet_pipeline.publisher import Publisher


class UnknownCollector(KeyError):
    """No collector with that label is configured."""


class DeviceBoundCollector(ValueError):
    """Lines for device-bound collectors only come from their device."""


@dataclass
class CollectorManager:
    """
    Owns the collectors of this process:
      - load() validates and builds collectors (invalid ones are recorded, not raised),
      - start()/stop() control the device threads,
      - feed() pushes lines into collectors that have no device,
      - status() returns a snapshot for the API.
    """
    logger: logging.Logger
    publisher: Publisher

    collectors: Dict[str, Collector] = field(default_factory=dict)
    invalid: List[Dict[str, Any]] = field(default_factory=list)
    threads: Dict[str, threading.Thread] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    # ---------------------------- Control plane ----------------------------

    def load(self, raw_configs: Iterable[Mapping[str, Any]]) -> int:
        """Build collectors from raw mappings; returns how many were accepted."""
        accepted = 0
        for i, raw in enumerate(raw_configs):
            label = raw.get("label")
            try:
                if label in self.collectors:
                    raise ConfigurationError(f"Duplicate collector label '{label}'")
                collector = build_collector(raw, publisher=self.publisher, logger=self.logger)
            except ConfigurationError as e:
                self.logger.error("Collector #%d (%s) not created: %s", i, label or "unlabelled", e)
                with self._lock:
                    self.invalid.append(
                        {
                            "site": raw.get("site"),
                            "label": label,
                            "collectorType": raw.get("collectorType"),
                            "state": "invalid",
                            "lines": 0,
                            "error": str(e),
                        }
                    )
                continue

            with self._lock:
                self.collectors[collector.label] = collector
            accepted += 1
            self.logger.info(
                "Collector %s/%s (%s) configured", collector.site, collector.label, collector.cfg.collector_type
            )
        return accepted

    def start(self) -> int:
        """Start a reader thread for every idle device-bound collector."""
        started = 0
        with self._lock:
            for label, collector in self.collectors.items():
                if collector.binding is None or collector.state != "idle":
                    continue
                t = threading.Thread(target=collector.run, name=f"collector-{label}", daemon=True)
                self.threads[label] = t
                t.start()
                started += 1
        return started

    def stop(self, join_timeout: float = 2.0) -> None:
        with self._lock:
            collectors = list(self.collectors.values())
            threads = list(self.threads.values())
        for collector in collectors:
            collector.stop()
        for t in threads:
            t.join(timeout=join_timeout)

    # ------------------------------ Data plane ------------------------------

    def feed(self, label: str, lines: Iterable[str]) -> List[Packet]:
        """Push lines into a collector without a device; returns the packets produced."""
        with self._lock:
            collector = self.collectors.get(label)
        if collector is None:
            raise UnknownCollector(label)
        if collector.binding is not None:
            raise DeviceBoundCollector(f"Collector '{label}' reads from its device only")
        return [collector.on_line(line) for line in lines]

    # ------------------------------ Telemetry ------------------------------

    def get(self, label: str) -> Optional[Collector]:
        with self._lock:
            return self.collectors.get(label)

    def status(self) -> List[Dict[str, Any]]:
        with self._lock:
            out = [c.status() for c in self.collectors.values()]
            out.extend(dict(entry) for entry in self.invalid)
        return out
