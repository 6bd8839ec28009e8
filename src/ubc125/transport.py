"""Byte stream protocol definition.

This module defines the :class:`ByteStream` protocol, the interface that the
scanner connection uses to reach the device. Byte streams handle the
physical layer only; framing lives in :class:`ubc125.ScannerConnection`.

Implementations include:
- :class:`ubc125.SerialPort`: pyserial-backed port for real hardware
- :class:`ubc125.ScannerEmulator`: in-process emulator for tests
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ByteStream(Protocol):
    """Protocol for a bidirectional byte stream to the scanner.

    This is a structural subtyping protocol (duck typing). Any class that
    implements ``write()``, ``read()``, and ``close()`` with the signatures
    below is a valid byte stream.

    Example:
        >>> class LoopbackStream:
        ...     def __init__(self) -> None:
        ...         self.buffer = bytearray()
        ...     def write(self, data: bytes) -> int:
        ...         self.buffer.extend(data)
        ...         return len(data)
        ...     def read(self, size: int = 1) -> bytes:
        ...         chunk = bytes(self.buffer[:size])
        ...         del self.buffer[:size]
        ...         return chunk
        ...     def close(self) -> None:
        ...         pass
        ...
        >>> stream: ByteStream = LoopbackStream()  # Type checks OK
    """

    def write(self, data: bytes) -> int | None:
        """Write *data* to the device.

        Args:
            data: Bytes to send.

        Returns:
            Number of bytes written, or None if the implementation does not
            report it.
        """
        ...

    def read(self, size: int = 1) -> bytes:
        """Read up to *size* bytes.

        Returns:
            The bytes read; empty if nothing arrived within the stream's own
            poll timeout.
        """
        ...

    def close(self) -> None:
        """Close the stream and release resources."""
        ...
