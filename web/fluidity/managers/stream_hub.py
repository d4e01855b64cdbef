"""
Thread-safe distribution boundary between the publisher and stream clients.

The hub keeps a bounded history of the most recent packets for sessions
that connect later, and one bounded queue per connected session. History
snapshot and subscription happen under the same lock as delivery, so a new
session sees every packet exactly once: either in its history or on its
queue, never both and never neither.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional
import logging
import queue
import threading
import uuid

from packet_pipeline.dto import Packet


@dataclass
class Subscription:
    """One connected stream session."""
    id: str
    history: List[Packet]
    inbox: "queue.Queue[Packet]"
    closed: threading.Event = field(default_factory=threading.Event)

    def next_packet(self, timeout: float) -> Optional[Packet]:
        """Block up to `timeout` seconds for the next live packet."""
        try:
            return self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None


@dataclass
class StreamHub:
    """
    Distribution boundary:
      - deliver() appends to history and to every subscriber queue,
      - history_for() returns the backlog a new session starts from,
      - subscribe()/unsubscribe() manage live sessions.

    A subscriber whose queue is full is dropped (its stream ends); the
    delivering collector is never blocked by a slow client.
    """
    logger: logging.Logger
    history_size: int = 500
    queue_size: int = 1000

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _history: Deque[Packet] = field(default_factory=deque, init=False, repr=False)
    _subs: Dict[str, Subscription] = field(default_factory=dict, init=False, repr=False)
    delivered: int = field(default=0, init=False)
    dropped_subscribers: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=max(0, int(self.history_size)))

    # ----------------------------- Delivery ------------------------------

    def deliver(self, packet: Packet) -> None:
        with self._lock:
            self._history.append(packet)
            self.delivered += 1
            for sub in list(self._subs.values()):
                try:
                    sub.inbox.put_nowait(packet)
                except queue.Full:
                    self.logger.warning("Subscriber %s is not keeping up; dropping it", sub.id)
                    self._drop(sub)

    def history_for(self, session_id: str = "") -> List[Packet]:
        with self._lock:
            return list(self._history)

    # ---------------------------- Sessions -------------------------------

    def subscribe(self, session_id: Optional[str] = None) -> Subscription:
        sid = session_id or uuid.uuid4().hex
        with self._lock:
            sub = Subscription(id=sid, history=list(self._history), inbox=queue.Queue(maxsize=self.queue_size))
            self._subs[sid] = sub
        self.logger.info("Stream session %s opened (%d history packet(s))", sid, len(sub.history))
        return sub

    def unsubscribe(self, session_id: str) -> None:
        with self._lock:
            sub = self._subs.pop(session_id, None)
        if sub is not None:
            sub.closed.set()
            self.logger.info("Stream session %s closed", session_id)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "history": len(self._history),
                "subscribers": len(self._subs),
                "delivered": self.delivered,
                "dropped_subscribers": self.dropped_subscribers,
            }

    def _drop(self, sub: Subscription) -> None:
        # caller holds the lock
        self._subs.pop(sub.id, None)
        sub.closed.set()
        self.dropped_subscribers += 1
