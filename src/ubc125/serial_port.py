"""pyserial byte stream for the scanner's USB serial port.

The UBC125XLT enumerates as a CDC-ACM device (``/dev/ttyACM0`` on Linux,
``COMx`` on Windows) and talks at 115200 baud.
"""

from __future__ import annotations

import logging
from typing import Any

import serial

from ubc125.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115_200
DEFAULT_POLL_TIMEOUT = 0.1


class SerialPort:
    """Byte stream backed by a pyserial port.

    Implements the :class:`ByteStream` protocol. Every pyserial failure is
    re-raised as :class:`TransportError`.

    Attributes:
        device_path: Path or name of the serial device.
        is_open: Whether the port is currently open.

    Args:
        device_path: Serial device (e.g. ``"/dev/ttyACM0"``).
        baudrate: Line speed. Defaults to 115200.
        poll_timeout: Seconds a single ``read()`` may block before returning
            an empty chunk. Defaults to 0.1.

    Example:
        >>> port = SerialPort("/dev/ttyACM0")
        >>> port.open()
        >>> conn = ScannerConnection(port)
        >>> print(conn.get_model())
        >>> conn.close()
    """

    def __init__(
        self,
        device_path: str,
        *,
        baudrate: int = DEFAULT_BAUDRATE,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
    ) -> None:
        self._device_path = device_path
        self._baudrate = baudrate
        self._poll_timeout = poll_timeout
        self._port: Any = None

    # -- Properties ----------------------------------------------------------

    @property
    def device_path(self) -> str:
        """The serial device path."""
        return self._device_path

    @property
    def is_open(self) -> bool:
        """Return True if the port is currently open."""
        return self._port is not None

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port and discard anything already buffered.

        Raises:
            TransportError: If the port cannot be opened.
        """
        if self._port is not None:
            return
        try:
            self._port = serial.Serial(
                self._device_path,
                self._baudrate,
                timeout=self._poll_timeout,
            )
            self._port.reset_input_buffer()
            self._port.reset_output_buffer()
        except serial.SerialException as exc:
            self._port = None
            raise TransportError(
                f"Failed to open serial port {self._device_path!r}: {exc}"
            ) from exc
        logger.info("Opened %s at %d baud", self._device_path, self._baudrate)

    def close(self) -> None:
        """Close the port. Safe to call multiple times."""
        if self._port is None:
            return
        try:
            self._port.close()
        except serial.SerialException as exc:
            logger.warning("Error closing %s: %s", self._device_path, exc)
        finally:
            self._port = None
            logger.info("Closed %s", self._device_path)

    # -- Byte stream interface -------------------------------------------------

    def write(self, data: bytes) -> int | None:
        """Write *data* to the port.

        Raises:
            TransportError: If the port is not open or the write fails.
        """
        port = self._require_open()
        try:
            written: int | None = port.write(data)
            port.flush()
        except serial.SerialException as exc:
            raise TransportError(f"Write to {self._device_path!r} failed: {exc}") from exc
        return written

    def read(self, size: int = 1) -> bytes:
        """Read up to *size* bytes, returning early on the poll timeout.

        Raises:
            TransportError: If the port is not open or the read fails.
        """
        port = self._require_open()
        try:
            data: bytes = port.read(size)
        except serial.SerialException as exc:
            raise TransportError(f"Read from {self._device_path!r} failed: {exc}") from exc
        return data

    def _require_open(self) -> Any:
        if self._port is None:
            raise TransportError(f"Serial port {self._device_path!r} is not open")
        return self._port
