"""
Device bindings: the line sources collectors read from.

- `SerialDeviceBinding` owns a pyserial port at (address, speed) and frames
  its byte stream into lines with the collector type's delimiter.
- `ReplayBinding` reads a recorded capture from a text file, for bench
  replays without hardware. Selected with a `file://` device address.

Opening is a scoped acquisition: failure raises DeviceError and only the
owning collector is affected.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import serial

from ..config import CollectorConfig
from ..errors import ConfigurationError, DeviceError
from .framing import LineFramer

REPLAY_PREFIX = "file://"


class SerialDeviceBinding:
    """
    Line-delimited reader over a serial port.

    Parameters
    ----------
    address : str
        Port name, e.g. "/dev/ttyUSB0" or "COM4".
    speed : int
        Baud rate.
    delimiter : str
        Protocol line terminator ("\\n" or "\\r\\n").
    serial_factory : callable
        Builds the port object; defaults to `serial.Serial`. Tests inject fakes.
    """

    def __init__(
        self,
        address: str,
        speed: int,
        delimiter: str = "\r\n",
        *,
        read_size: int = 256,
        timeout: float = 0.2,
        max_line_bytes: int = 4096,
        serial_factory: Callable[..., Any] = serial.Serial,
    ) -> None:
        self.address = address
        self.speed = int(speed)
        self.delimiter = delimiter
        self.read_size = int(read_size)
        self.timeout = float(timeout)
        self._framer = LineFramer(delimiter, max_line_bytes=max_line_bytes)
        self._factory = serial_factory
        self._ser: Optional[Any] = None
        self._stop = threading.Event()

    def open(self) -> None:
        try:
            self._ser = self._factory(self.address, self.speed, timeout=self.timeout)
        except (serial.SerialException, OSError, ValueError) as e:
            raise DeviceError(f"Cannot open {self.address} @ {self.speed}: {e}") from e

    def lines(self) -> Iterator[str]:
        if self._ser is None:
            raise DeviceError(f"{self.address} is not open")
        while not self._stop.is_set():
            try:
                chunk = self._ser.read(self.read_size)
            except (serial.SerialException, OSError) as e:
                if self._stop.is_set():
                    break
                raise DeviceError(f"Read error on {self.address}: {e}") from e
            if not chunk:
                continue
            for line in self._framer.feed(chunk):
                yield line

    def close(self) -> None:
        self._stop.set()
        try:
            if self._ser is not None:
                self._ser.close()
        except (serial.SerialException, OSError):
            pass

    def __repr__(self) -> str:
        return f"SerialDeviceBinding({self.address!r}, {self.speed})"


class ReplayBinding:
    """Yield the lines of a recorded capture file, optionally paced."""

    def __init__(self, path: str | Path, delimiter: str = "\n", *, interval: float = 0.0) -> None:
        self.path = Path(path)
        self.delimiter = delimiter
        self.interval = float(interval)
        self._framer = LineFramer(delimiter)
        self._fh = None
        self._stop = threading.Event()

    def open(self) -> None:
        try:
            self._fh = self.path.open("rb")
        except OSError as e:
            raise DeviceError(f"Cannot open replay file {self.path}: {e}") from e

    def lines(self) -> Iterator[str]:
        if self._fh is None:
            raise DeviceError(f"{self.path} is not open")
        try:
            while not self._stop.is_set():
                chunk = self._fh.read(4096)
                if not chunk:
                    break
                for line in self._framer.feed(chunk):
                    if self._stop.is_set():
                        return
                    yield line
                    if self.interval:
                        time.sleep(self.interval)
        except (OSError, ValueError) as e:
            if self._stop.is_set():
                return
            raise DeviceError(f"Read error on {self.path}: {e}") from e
        for line in self._framer.flush():
            yield line

    def close(self) -> None:
        self._stop.set()
        if self._fh is not None:
            self._fh.close()

    def __repr__(self) -> str:
        return f"ReplayBinding({str(self.path)!r})"


def binding_for(cfg: CollectorConfig, delimiter: str) -> SerialDeviceBinding | ReplayBinding:
    """
    Build the device binding a collector config asks for.

    Raises:
        ConfigurationError: address or speed missing for a device-bound collector,
            or a malformed delimiter/replayInterval option.
    """
    options = cfg.extended_options
    delimiter = options.get("delimiter", delimiter)
    if not isinstance(delimiter, str) or not delimiter:
        raise ConfigurationError(f"Collector '{cfg.label}': extendedOptions.delimiter must be a non-empty string")
    address = cfg.device_address
    if not address:
        raise ConfigurationError(f"Collector '{cfg.label}' needs deviceAddress")
    if address.startswith(REPLAY_PREFIX):
        interval = options.get("replayInterval", 0.0)
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
            raise ConfigurationError(
                f"Collector '{cfg.label}': extendedOptions.replayInterval must be a non-negative number"
            )
        return ReplayBinding(address[len(REPLAY_PREFIX):], delimiter, interval=float(interval))
    if cfg.device_speed is None:
        raise ConfigurationError(f"Collector '{cfg.label}' needs deviceSpeed for {address}")
    return SerialDeviceBinding(address, cfg.device_speed, delimiter)
