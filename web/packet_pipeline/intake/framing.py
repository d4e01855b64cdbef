"""
Byte-stream line framing.

Devices hand us arbitrary chunks; the collector wants whole lines. The
framer buffers bytes until the protocol delimiter shows up and returns the
decoded lines without it. A line that grows past `max_line_bytes` without a
delimiter is discarded up to the next delimiter, so a device configured with
the wrong delimiter cannot grow the buffer without bound.
"""

from __future__ import annotations

from typing import List


class LineFramer:
    def __init__(self, delimiter: str = "\n", *, max_line_bytes: int = 4096, encoding: str = "utf-8") -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.delimiter = delimiter.encode(encoding)
        self.max_line_bytes = int(max_line_bytes)
        self.encoding = encoding
        self.overflows = 0
        self._buf = bytearray()
        self._discarding = False

    def feed(self, chunk: bytes) -> List[str]:
        """Append a chunk and return every line it completed, in order."""
        self._buf.extend(chunk)
        lines: List[str] = []
        while True:
            idx = self._buf.find(self.delimiter)
            if idx < 0:
                break
            raw = bytes(self._buf[:idx])
            del self._buf[: idx + len(self.delimiter)]
            if self._discarding:
                self._discarding = False
                continue
            if len(raw) > self.max_line_bytes:
                self.overflows += 1
                continue
            lines.append(raw.decode(self.encoding, errors="replace"))

        if len(self._buf) > self.max_line_bytes:
            if not self._discarding:
                self.overflows += 1
            self._discarding = True
            # keep a possible partial delimiter at the tail
            keep = len(self.delimiter) - 1
            self._buf = bytearray(self._buf[len(self._buf) - keep:]) if keep else bytearray()
        return lines

    def flush(self) -> List[str]:
        """Return the trailing partial line (if any) and reset the buffer."""
        raw = bytes(self._buf)
        discarding = self._discarding
        self._buf.clear()
        self._discarding = False
        if not raw or discarding:
            return []
        return [raw.decode(self.encoding, errors="replace")]
