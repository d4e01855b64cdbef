from __future__ import annotations

from .strategies import (
    CollectorType,
    FieldMapStrategy,
    FieldSpec,
    KeyValueStrategy,
    PlainLineStrategy,
    collector_types,
    resolve_collector_type,
)

__all__ = [
    "CollectorType",
    "FieldMapStrategy",
    "FieldSpec",
    "KeyValueStrategy",
    "PlainLineStrategy",
    "collector_types",
    "resolve_collector_type",
]
