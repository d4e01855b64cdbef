"""
Line parsing strategies and the `collectorType` registry.

A strategy turns one raw device line into formatted fields. Collector types
pair a strategy with the line delimiter their device protocol uses:

- generic          whole line, one STRING field, lines pushed in (no device)
- generic-serial   whole line, one STRING field, CRLF-terminated
- fieldmap-serial  separated columns mapped by `extendedOptions.fieldMap`
- keyvalue-serial  `key=value` pairs, optionally filtered by `extendedOptions.keys`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..dto import FIELD_KINDS, FormattedField, LinkRecord
from ..errors import ConfigurationError
from ..ports import ParseStrategy

PLAIN_STYLE = 0


class PlainLineStrategy:
    """Default formatting: the raw line as a single STRING field."""

    def __init__(self, style: int = PLAIN_STYLE) -> None:
        self.style = style

    def format(self, raw: str) -> List[FormattedField]:
        return [FormattedField(value=raw, kind="STRING", style_hint=self.style)]


@dataclass(frozen=True)
class FieldSpec:
    name: str
    index: int
    kind: str = "STRING"
    style: int = 0


class FieldMapStrategy:
    """
    Split a line on `separator` and map selected columns to fields.

    Columns missing from a short line are skipped. A line that produces no
    field at all falls back to the plain rendering so nothing is lost.
    """

    def __init__(self, field_map: Sequence[FieldSpec], separator: str = ",") -> None:
        if not field_map:
            raise ConfigurationError("fieldMap must declare at least one field")
        if not separator:
            raise ConfigurationError("separator must not be empty")
        self.field_map = list(field_map)
        self.separator = separator
        self._fallback = PlainLineStrategy()

    def format(self, raw: str) -> List[FormattedField]:
        cols = [c.strip() for c in raw.split(self.separator)]
        out: List[FormattedField] = []
        for spec in self.field_map:
            if spec.index >= len(cols) or cols[spec.index] == "":
                continue
            col = cols[spec.index]
            if spec.kind == "LINK":
                out.append(
                    FormattedField(value=LinkRecord(name=spec.name, location=col), kind="LINK", style_hint=spec.style)
                )
            else:
                out.append(FormattedField(value=col, kind=spec.kind, style_hint=spec.style))  # type: ignore[arg-type]
        return out or self._fallback.format(raw)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "FieldMapStrategy":
        raw_map = options.get("fieldMap")
        if not isinstance(raw_map, list):
            raise ConfigurationError("fieldmap collectors require extendedOptions.fieldMap (a list)")
        specs: List[FieldSpec] = []
        for i, entry in enumerate(raw_map):
            if not isinstance(entry, Mapping) or "index" not in entry:
                raise ConfigurationError(f"fieldMap[{i}] needs at least an 'index'")
            kind = str(entry.get("kind", "STRING")).upper()
            if kind not in FIELD_KINDS:
                raise ConfigurationError(f"fieldMap[{i}] has unknown kind {kind!r}")
            try:
                index = int(entry["index"])
                style = int(entry.get("style", i))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"fieldMap[{i}] index/style must be integers") from e
            if index < 0:
                raise ConfigurationError(f"fieldMap[{i}] index must be >= 0")
            specs.append(FieldSpec(name=str(entry.get("name", f"field{index}")), index=index, kind=kind, style=style))
        separator = options.get("separator", ",")
        if not isinstance(separator, str) or not separator:
            raise ConfigurationError("extendedOptions.separator must be a non-empty string")
        return cls(specs, separator=separator)


class KeyValueStrategy:
    """Parse `k=v` pairs; each kept pair renders as a `"k: v"` STRING field."""

    def __init__(self, keys: Optional[Sequence[str]] = None, pair_separator: Optional[str] = None) -> None:
        self.keys = list(keys) if keys else None
        self.pair_separator = pair_separator
        self._fallback = PlainLineStrategy()

    def format(self, raw: str) -> List[FormattedField]:
        pairs: Dict[str, str] = {}
        for token in raw.split(self.pair_separator):
            if "=" not in token:
                continue
            k, v = token.split("=", 1)
            pairs[k.strip()] = v.strip()

        order = self.keys if self.keys is not None else list(pairs)
        out = [
            FormattedField(value=f"{k}: {pairs[k]}", kind="STRING", style_hint=i)
            for i, k in enumerate(order)
            if k in pairs
        ]
        return out or self._fallback.format(raw)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "KeyValueStrategy":
        keys = options.get("keys")
        if keys is not None and not isinstance(keys, list):
            raise ConfigurationError("extendedOptions.keys must be a list")
        pair_separator = options.get("pairSeparator")
        if pair_separator is not None and (not isinstance(pair_separator, str) or not pair_separator):
            raise ConfigurationError("extendedOptions.pairSeparator must be a non-empty string")
        return cls(keys=[str(k) for k in keys] if keys is not None else None, pair_separator=pair_separator)


# ---- collectorType registry ----

@dataclass(frozen=True)
class CollectorType:
    name: str
    delimiter: str
    device_bound: bool
    build: Callable[[Mapping[str, Any]], ParseStrategy]


_REGISTRY: Dict[str, CollectorType] = {
    "generic": CollectorType("generic", "\n", False, lambda _o: PlainLineStrategy()),
    "generic-serial": CollectorType("generic-serial", "\r\n", True, lambda _o: PlainLineStrategy()),
    "fieldmap-serial": CollectorType("fieldmap-serial", "\r\n", True, FieldMapStrategy.from_options),
    "keyvalue-serial": CollectorType("keyvalue-serial", "\r\n", True, KeyValueStrategy.from_options),
}


def collector_types() -> List[str]:
    return sorted(_REGISTRY)


def resolve_collector_type(name: str) -> CollectorType:
    """Look up a collector type; unknown names are a configuration error."""
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown collectorType '{name}'. Known: {', '.join(collector_types())}"
        ) from None
