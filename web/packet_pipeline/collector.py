"""
Collector: raw device lines in, draft packets out.

One concrete Collector composes a ParseStrategy (raw line -> fields) with an
optional device binding (address/speed -> line source). `on_line` is the
only entry point for data; for device-bound collectors `run()` drives it
from the binding's read stream, one line at a time, so invocations for a
given collector never overlap.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from .config import CollectorConfig, load_collector_config, require_secure
from .dto import DraftPacket, FormattedField, Packet
from .errors import DeviceError
from .intake.serial_binding import binding_for
from .parsing.strategies import resolve_collector_type
from .ports import LineSourcePort, ParseStrategy
from .publisher import Publisher

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Collector:
    """
    Turns raw lines from one source into packets handed to the publisher.

    State is one of: "idle" (built, not running), "running", "stopped"
    (stream ended or stop requested), "failed" (device error; no retry).
    """

    def __init__(
        self,
        cfg: CollectorConfig,
        *,
        strategy: ParseStrategy,
        publisher: Publisher,
        logger: logging.Logger,
        binding: Optional[LineSourcePort] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.cfg = cfg
        self.strategy = strategy
        self.binding = binding
        self._publisher = publisher
        self._logger = logger
        self._clock = clock
        self._line_lock = threading.Lock()

        self.state = "idle"
        self.error: Optional[str] = None
        self.lines_seen = 0

    @property
    def site(self) -> str:
        return self.cfg.site

    @property
    def label(self) -> str:
        return self.cfg.label

    @property
    def description(self) -> str:
        return str(self.cfg.extended_options.get("description", self.cfg.label))

    # ------------------------------ Data path ------------------------------

    def format(self, raw: str) -> List[FormattedField]:
        return self.strategy.format(raw)

    def draft(self, raw: str) -> DraftPacket:
        """Build the unsequenced packet for one raw line."""
        return DraftPacket(
            site=self.cfg.site,
            collector_id=self.cfg.label,
            description=self.description,
            formatted_fields=tuple(self.format(raw)),
            raw_payload=raw if self.cfg.keep_raw else None,
            timestamp=None if self.cfg.omit_timestamp else self._clock(),
        )

    def on_line(self, raw: str) -> Packet:
        """Handle one raw line: format, package, publish. Calls are serialized."""
        with self._line_lock:
            self.lines_seen += 1
            self._logger.debug("[%s/%s] line: %r", self.site, self.label, raw)
            return self._publisher.publish(self.draft(raw), self.cfg.targets, keep_raw=self.cfg.keep_raw)

    # ------------------------------ Device loop ------------------------------

    def run(self) -> None:
        """
        Open the binding and feed every line to `on_line` until the stream ends.

        Device errors, and any other error raised while handling a line, stop
        this collector only: they are logged and recorded in `state`/`error`,
        never raised.
        """
        if self.binding is None:
            raise RuntimeError(f"Collector '{self.label}' has no device binding")

        try:
            self.binding.open()
        except DeviceError as e:
            self._fail(e)
            return

        self.state = "running"
        self._logger.info("Collector %s/%s reading from %r", self.site, self.label, self.binding)
        try:
            for line in self.binding.lines():
                self.on_line(line)
        except DeviceError as e:
            self._fail(e)
            return
        except Exception as e:
            self._logger.exception("Collector %s/%s crashed while handling a line", self.site, self.label)
            self._fail(e)
            return
        finally:
            self.binding.close()

        if self.state == "running":
            self.state = "stopped"
        self._logger.info("Collector %s/%s stopped after %d line(s)", self.site, self.label, self.lines_seen)

    def stop(self) -> None:
        if self.state == "running":
            self.state = "stopped"
        if self.binding is not None:
            self.binding.close()

    def status(self) -> dict:
        return {
            "site": self.site,
            "label": self.label,
            "collectorType": self.cfg.collector_type,
            "deviceBound": self.binding is not None,
            "state": self.state,
            "lines": self.lines_seen,
            "error": self.error,
        }

    def _fail(self, e: Exception) -> None:
        self.state = "failed"
        self.error = str(e)
        self._logger.error("Collector %s/%s failed: %s", self.site, self.label, e)


def build_collector(
    raw: Mapping[str, Any] | CollectorConfig,
    *,
    publisher: Publisher,
    logger: logging.Logger,
    binding: Optional[LineSourcePort] = None,
    clock: Clock = utc_now,
) -> Collector:
    """
    Validate a collector configuration and assemble its strategy and binding.

    `binding` overrides the one derived from deviceAddress/deviceSpeed.

    Raises:
        ConfigurationError: missing/invalid options, unknown collectorType,
            insecure target, or missing device address/speed.
    """
    if isinstance(raw, CollectorConfig):
        cfg = raw
        for target in cfg.targets:
            require_secure(target)
    else:
        cfg = load_collector_config(raw)
    ctype = resolve_collector_type(cfg.collector_type)
    strategy = ctype.build(cfg.extended_options)
    if binding is None and ctype.device_bound:
        binding = binding_for(cfg, ctype.delimiter)
    return Collector(cfg, strategy=strategy, publisher=publisher, logger=logger, binding=binding, clock=clock)
