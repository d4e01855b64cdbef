"""
Configuration schema for collectors, publish targets and the publisher.

Option names on the wire/YAML side are the camelCase names operators write
(`collectorType`, `keepRaw`, ...); Python code uses the snake_case attributes.
Validation failures surface as `ConfigurationError` so callers only handle one
exception family.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError, InsecureTargetError

SECURE_SCHEME = "https"


class PublishTarget(BaseModel):
    """A remote subscriber endpoint for published packets."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(description="Absolute URL packets are POSTed to.")
    key: str = Field(default="", description="Shared key sent with each delivery.")

    @property
    def scheme(self) -> str:
        return urlsplit(self.location).scheme.lower()

    def is_secure(self) -> bool:
        return self.scheme == SECURE_SCHEME


def require_secure(target: PublishTarget) -> None:
    """Raise InsecureTargetError unless the target uses https."""
    if not target.is_secure():
        raise InsecureTargetError(target.location)


class CollectorConfig(BaseModel):
    """Validated configuration for one collector."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    site: str = Field(min_length=1)
    label: str = Field(min_length=1, description="Becomes the packet collectorId.")
    collector_type: str = Field(alias="collectorType", min_length=1)
    targets: List[PublishTarget] = Field(min_length=1)
    keep_raw: bool = Field(alias="keepRaw")
    omit_timestamp: bool = Field(default=False, alias="omitTimestamp")
    device_address: Optional[str] = Field(default=None, alias="deviceAddress")
    device_speed: Optional[int] = Field(default=None, alias="deviceSpeed", gt=0)
    extended_options: Dict[str, Any] = Field(default_factory=dict, alias="extendedOptions")

    @field_validator("extended_options", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class PublisherConfig(BaseModel):
    """Knobs for sequence assignment and target dispatch."""

    model_config = ConfigDict(frozen=True)

    sequence_start: int = Field(default=1, ge=0)
    target_timeout_seconds: float = Field(default=10.0, gt=0)
    dispatch_workers: int = Field(default=4, ge=1)


def load_collector_config(raw: Mapping[str, Any]) -> CollectorConfig:
    """
    Validate one raw collector mapping.

    Raises:
        ConfigurationError: a required option is missing or malformed.
        InsecureTargetError: a target does not use https.
    """
    try:
        cfg = CollectorConfig.model_validate(dict(raw))
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors() if err["type"] == "missing"]
        if missing:
            raise ConfigurationError(f"Missing required collector option(s): {', '.join(missing)}") from e
        raise ConfigurationError(f"Invalid collector configuration: {e}") from e

    for target in cfg.targets:
        require_secure(target)
    return cfg
