"""
Exception hierarchy for the packet pipeline.

Configuration errors are fatal to the thing being configured (one collector,
one target in a dispatch pass) and never to the process.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PipelineError):
    """A collector or target is misconfigured; not retryable."""


class InsecureTargetError(ConfigurationError):
    """A publish target does not use the https scheme."""

    def __init__(self, location: str) -> None:
        super().__init__(f"Publish target must use https: {location}")
        self.location = location


class DeviceError(PipelineError):
    """The device could not be opened or its read stream failed."""
