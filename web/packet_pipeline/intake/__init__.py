from __future__ import annotations

from .framing import LineFramer
from .serial_binding import ReplayBinding, SerialDeviceBinding, binding_for

__all__ = ["LineFramer", "ReplayBinding", "SerialDeviceBinding", "binding_for"]
