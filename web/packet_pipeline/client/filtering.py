"""
Client-side filtering engine.

Keeps grow-only indices from site and collector identity to the sequence
numbers that carry them, plus the sets of filters the user has switched on,
and recomputes the visible sequence set from scratch on every change:

    no filters            -> ALL (unfiltered)
    only site filters     -> union of siteIndex[s] over active sites
    only collector filters-> union of collectorIndex[c] over active collectors
    both                  -> intersection of the two unions

The engine is not thread-safe; callers evaluate it from one logical thread
(see ClientSession, which serializes packets and interactions).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Set

from ..dto import Packet

_INTERACTION_RE = re.compile(r"^(filter|clear)-(site|collector)-(.+)$")


@dataclass(frozen=True)
class Visibility:
    """Result of a visibility computation; `sequences is None` means ALL."""
    sequences: Optional[FrozenSet[int]]

    @property
    def unfiltered(self) -> bool:
        return self.sequences is None

    def __contains__(self, sequence: object) -> bool:
        return self.sequences is None or sequence in self.sequences


ALL = Visibility(None)


@dataclass(frozen=True)
class FilterStats:
    visible_count: int
    filter_count: int


class FilteringEngine:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("fluidity.client")
        self.site_index: Dict[str, Set[int]] = {}
        self.collector_index: Dict[str, Set[int]] = {}
        self.active_site_filters: Set[str] = set()
        self.active_collector_filters: Set[str] = set()
        self._known: Set[int] = set()
        self._visible: Optional[Set[int]] = None
        self._visibility: Optional[Visibility] = ALL
        self._stale = False
        self.stats = FilterStats(visible_count=0, filter_count=0)

    # ------------------------------ Indexing ------------------------------

    def index(self, packet: Packet) -> Set[str]:
        """
        Record `packet` in both indices (idempotent).

        Returns the identity kinds ("site", "collector") seen for the first
        time, so the renderer can offer a filter for them.
        """
        discovered: Set[str] = set()
        if packet.site not in self.site_index:
            self.site_index[packet.site] = set()
            discovered.add("site")
        if packet.collector_id not in self.collector_index:
            self.collector_index[packet.collector_id] = set()
            discovered.add("collector")
        self.site_index[packet.site].add(packet.sequence)
        self.collector_index[packet.collector_id].add(packet.sequence)
        self._known.add(packet.sequence)
        return discovered

    @property
    def known_count(self) -> int:
        return len(self._known)

    # ------------------------------ Filters ------------------------------

    def toggle_site_filter(self, site: str) -> bool:
        """Flip a site filter; returns True if it is now active."""
        self._stale = True
        return _toggle(self.active_site_filters, site)

    def toggle_collector_filter(self, collector_id: str) -> bool:
        """Flip a collector filter; returns True if it is now active."""
        self._stale = True
        return _toggle(self.active_collector_filters, collector_id)

    def set_site_filter(self, site: str, active: bool) -> None:
        self._stale = True
        _set(self.active_site_filters, site, active)

    def set_collector_filter(self, collector_id: str, active: bool) -> None:
        self._stale = True
        _set(self.active_collector_filters, collector_id, active)

    def handle_interaction(self, element_id: str) -> bool:
        """
        Apply a click on a filter control identified by its element id:
        `filter-site-<id>` / `filter-collector-<id>` switch a filter on,
        `clear-site-<id>` / `clear-collector-<id>` switch it off.

        Returns False (and changes nothing) for ids outside that grammar.
        """
        m = _INTERACTION_RE.match(element_id)
        if not m:
            return False
        action, kind, identity = m.groups()
        if kind == "site":
            self.set_site_filter(identity, action == "filter")
        else:
            self.set_collector_filter(identity, action == "filter")
        return True

    @property
    def filter_count(self) -> int:
        return len(self.active_site_filters) + len(self.active_collector_filters)

    def filters_active(self) -> bool:
        return self.filter_count > 0

    # ------------------------------ Visibility ------------------------------

    def compute_visible(self) -> Visibility:
        """Full recomputation from the indices and active filters."""
        by_site = _union(self.site_index, self.active_site_filters)
        by_collector = _union(self.collector_index, self.active_collector_filters)

        if self.active_site_filters and self.active_collector_filters:
            visible: Optional[Set[int]] = by_site & by_collector
        elif self.active_site_filters:
            visible = by_site
        elif self.active_collector_filters:
            visible = by_collector
        else:
            visible = None

        self._visible = visible
        self._visibility = ALL if visible is None else Visibility(frozenset(visible))
        self._stale = False
        self._update_stats()
        self._logger.debug(
            "Visible: %s of %d (%d filter(s))",
            "ALL" if visible is None else len(visible),
            self.known_count,
            self.filter_count,
        )
        return self._visibility

    def is_visible(self, packet: Packet) -> bool:
        """
        Visibility of a newly indexed packet under the current filters.

        Only the packet's own identities are checked; the stored visible set
        is extended in place. A full recomputation happens only when filters
        changed since the last one.
        """
        if self._stale:
            return packet.sequence in self.compute_visible()
        visible = self.matches(packet)
        if visible and self._visible is not None and packet.sequence not in self._visible:
            self._visible.add(packet.sequence)
            self._visibility = None
        self._update_stats()
        return visible

    def matches(self, packet: Packet) -> bool:
        """Apply the filter rule to one packet's site and collector."""
        site_ok = packet.site in self.active_site_filters
        collector_ok = packet.collector_id in self.active_collector_filters
        if self.active_site_filters and self.active_collector_filters:
            return site_ok and collector_ok
        if self.active_site_filters:
            return site_ok
        if self.active_collector_filters:
            return collector_ok
        return True

    @property
    def visibility(self) -> Visibility:
        """Last computed visibility, including packets placed since."""
        if self._visibility is None:
            self._visibility = ALL if self._visible is None else Visibility(frozenset(self._visible))
        return self._visibility

    def _update_stats(self) -> None:
        visible_count = self.known_count if self._visible is None else len(self._visible)
        self.stats = FilterStats(visible_count=visible_count, filter_count=self.filter_count)


def _toggle(bucket: Set[str], identity: str) -> bool:
    if identity in bucket:
        bucket.discard(identity)
        return False
    bucket.add(identity)
    return True


def _set(bucket: Set[str], identity: str, active: bool) -> None:
    if active:
        bucket.add(identity)
    else:
        bucket.discard(identity)


def _union(index: Dict[str, Set[int]], active: Iterable[str]) -> Set[int]:
    out: Set[int] = set()
    for identity in active:
        out |= index.get(identity, set())
    return out
