"""
Publisher: sequence assignment and fan-out.

`publish()` stamps the next stream sequence number on a draft and hands the
finalized packet to the distribution boundary while holding one lock, so the
order clients see is exactly the sequence order regardless of how many
collectors publish concurrently. Target delivery happens afterwards on a
small worker pool and never blocks the caller.

Every target has its own failure boundary: an insecure scheme or a network
error is logged for that target only and the rest of the pass continues.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import httpx

from .config import PublisherConfig, PublishTarget, require_secure
from .dto import DraftPacket, Packet
from .errors import InsecureTargetError
from .ports import DistributionPort, TransportPort
from .wire import packet_to_wire

KEY_HEADER = "X-Fluidity-Key"


class SequenceCounter:
    """Process-wide, strictly increasing counter (thread-safe)."""

    def __init__(self, start: int = 1) -> None:
        self._next = int(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    @property
    def last(self) -> Optional[int]:
        with self._lock:
            return self._next - 1 if self._next > 0 else None


class HttpsTransport:
    """POST wire packets to targets with httpx; non-2xx responses raise."""

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.Client] = None) -> None:
        self._client = client or httpx.Client(timeout=timeout, headers={"User-Agent": "fluidity-publisher"})

    def send(self, target: PublishTarget, payload: dict) -> None:
        resp = self._client.post(target.location, json=payload, headers={KEY_HEADER: target.key})
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


@dataclass(frozen=True)
class DispatchResult:
    location: str
    sequence: int
    ok: bool
    error: Optional[str] = None


class Publisher:
    """
    Finalizes drafts and fans them out.

    Parameters
    ----------
    distribution : DistributionPort
        Client-facing boundary; receives every packet, in sequence order.
    transport : TransportPort
        Delivers one payload to one target.
    logger : logging.Logger
    cfg : PublisherConfig
    executor : Executor, optional
        Runs target sends; a thread pool sized by `cfg.dispatch_workers` by default.
    """

    def __init__(
        self,
        *,
        distribution: DistributionPort,
        transport: TransportPort,
        logger: logging.Logger,
        cfg: Optional[PublisherConfig] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.cfg = cfg or PublisherConfig()
        self._distribution = distribution
        self._transport = transport
        self._logger = logger
        self._counter = SequenceCounter(self.cfg.sequence_start)
        self._emit_lock = threading.Lock()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.cfg.dispatch_workers, thread_name_prefix="dispatch"
        )
        self._stats_lock = threading.Lock()
        self._stats: Dict[str, int] = {"published": 0, "delivered": 0, "failed": 0, "rejected": 0}

    # ---------------------------- Public API ----------------------------

    def publish(
        self,
        draft: DraftPacket,
        targets: Sequence[PublishTarget] = (),
        *,
        keep_raw: bool = False,
    ) -> Packet:
        """Sequence `draft`, hand it to clients, then dispatch to `targets`."""
        with self._emit_lock:
            packet = Packet.from_draft(draft, self._counter.next())
            self._distribution.deliver(packet)

        with self._stats_lock:
            self._stats["published"] += 1
        self._logger.debug("Published #%d from %s/%s", packet.sequence, packet.site, packet.collector_id)

        if targets:
            self.dispatch(packet, targets, keep_raw=keep_raw)
        return packet

    def dispatch(
        self,
        packet: Packet,
        targets: Sequence[PublishTarget],
        *,
        keep_raw: bool = False,
    ) -> List["Future[DispatchResult]"]:
        """
        Send one packet to each target independently.

        Insecure targets are rejected synchronously (logged, no future);
        secure ones are queued on the executor.
        """
        payload = packet_to_wire(packet, include_raw=keep_raw)
        futures: List[Future[DispatchResult]] = []
        for target in targets:
            try:
                require_secure(target)
            except InsecureTargetError as e:
                self._logger.error("Dispatch of #%d skipped target: %s", packet.sequence, e)
                self._bump("rejected")
                continue
            futures.append(self._executor.submit(self._send_one, target, payload, packet.sequence))
        return futures

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            out = dict(self._stats)
        out["last_sequence"] = self._counter.last or 0
        return out

    def close(self) -> None:
        """Wait for queued deliveries and release the transport."""
        self._executor.shutdown(wait=True)
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()

    # --------------------------- Private helpers ---------------------------

    def _send_one(self, target: PublishTarget, payload: dict, sequence: int) -> DispatchResult:
        try:
            self._transport.send(target, payload)
        except httpx.HTTPError as e:
            self._logger.error("Delivery of #%d to %s failed: %s", sequence, target.location, e)
            self._bump("failed")
            return DispatchResult(target.location, sequence, ok=False, error=str(e))
        except Exception as e:
            self._logger.exception("Unexpected error delivering #%d to %s", sequence, target.location)
            self._bump("failed")
            return DispatchResult(target.location, sequence, ok=False, error=str(e))
        self._bump("delivered")
        return DispatchResult(target.location, sequence, ok=True)

    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1
