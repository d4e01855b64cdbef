from __future__ import annotations

from .filtering import ALL, FilteringEngine, FilterStats, Visibility
from .render import ConsoleRenderer
from .session import ClientSession, iter_sse
from .store import ClientPacketStore

__all__ = [
    "ALL",
    "ClientPacketStore",
    "ClientSession",
    "ConsoleRenderer",
    "FilterStats",
    "FilteringEngine",
    "Visibility",
    "iter_sse",
]
