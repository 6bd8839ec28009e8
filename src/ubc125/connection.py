"""Scanner connection with request/response framing.

This module provides the :class:`ScannerConnection` class, which wraps a
byte stream to frame ``\\r``-terminated ASCII commands and responses, and
offers typed methods for the commands the client uses.

Typical usage::

    from ubc125 import SerialPort, ScannerConnection

    port = SerialPort("/dev/ttyACM0")
    port.open()
    conn = ScannerConnection(port)

    model = conn.get_model()
    channel = conn.read_channel(52)
    conn.set_squelch(3)

    conn.close()
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from ubc125.codec import (
    ScanReport,
    decode_bank_mask,
    decode_channel,
    decode_scan_status,
    encode_bank_mask,
    encode_channel_delete,
    encode_channel_read,
    encode_channel_write,
)
from ubc125.errors import TransportError, TransportWriteError, ValidationError
from ubc125.types import BankMask, Channel, validate_channel_index

if TYPE_CHECKING:
    from ubc125.transport import ByteStream

logger = logging.getLogger(__name__)

TERMINATOR = b"\r"
DEFAULT_RESPONSE_TIMEOUT = 0.5
MAX_AUDIO_LEVEL = 15


def _validate_audio_level(name: str, level: int) -> int:
    if not 0 <= level <= MAX_AUDIO_LEVEL:
        raise ValidationError(f"{name} level must be between 0 and {MAX_AUDIO_LEVEL}, got {level}")
    return level


class ScannerConnection:
    """High-level scanner connection wrapping a byte stream.

    Only one exchange may be in flight at a time: every method sends one
    command and waits for its response (or the response timeout) before
    returning. Callers sharing a connection across threads must serialise
    access themselves (see :class:`ubc125.server.SharedScanner`).

    Args:
        stream: An open :class:`ByteStream`.
        response_timeout: Seconds to wait for a ``\\r`` terminator before
            returning whatever has been received. Defaults to 0.5.
        clock: Monotonic clock used for the response deadline.
    """

    def __init__(
        self,
        stream: ByteStream,
        *,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stream = stream
        self._response_timeout = response_timeout
        self._clock = clock

    # -- Framing -------------------------------------------------------------

    def send_and_receive(self, command: str) -> str:
        """Send one command and return its response line.

        The command is sent with a single ``\\r`` terminator. Bytes are then
        read one at a time until a ``\\r`` arrives or the response timeout
        elapses; ``\\n`` bytes are dropped. A timeout is not an error, since
        the scanner answers slowly or not at all for unsupported commands.

        Args:
            command: Command text without terminator (e.g. ``"GLG"``).

        Returns:
            The response with surrounding whitespace stripped, possibly empty.

        Raises:
            TransportWriteError: If the command was not written in full.
            TransportError: If the byte stream fails.
        """
        payload = command.encode("ascii") + TERMINATOR
        try:
            written = self._stream.write(payload)
        except OSError as exc:
            raise TransportError(f"Write of {command!r} failed: {exc}") from exc
        if written is not None and written != len(payload):
            raise TransportWriteError(
                f"Short write for {command!r}: {written} of {len(payload)} bytes"
            )

        response = bytearray()
        deadline = self._clock() + self._response_timeout
        while self._clock() <= deadline:
            try:
                chunk = self._stream.read(1)
            except OSError as exc:
                raise TransportError(f"Read after {command!r} failed: {exc}") from exc
            if not chunk:
                continue
            if chunk == TERMINATOR:
                break
            if chunk != b"\n":
                response += chunk
        else:
            logger.debug("Timed out waiting for response to %r", command)

        text = response.decode("ascii", errors="replace").strip()
        logger.debug("%s -> %s", command, text)
        return text

    # -- Identification and audio ----------------------------------------------

    def get_model(self) -> str:
        """Query the model string (``MDL``)."""
        return self.send_and_receive("MDL")

    def get_firmware_version(self) -> str:
        """Query the firmware version string (``VER``)."""
        return self.send_and_receive("VER")

    def get_volume(self) -> str:
        """Query the volume setting (``VOL``)."""
        return self.send_and_receive("VOL")

    def set_volume(self, level: int) -> str:
        """Set the volume level.

        Args:
            level: Volume level, 0-15.

        Raises:
            ValidationError: If *level* is out of range. Nothing is sent.
        """
        _validate_audio_level("Volume", level)
        return self.send_and_receive(f"VOL,{level}")

    def get_squelch(self) -> str:
        """Query the squelch setting (``SQL``)."""
        return self.send_and_receive("SQL")

    def set_squelch(self, level: int) -> str:
        """Set the squelch level.

        Args:
            level: Squelch level, 0-15.

        Raises:
            ValidationError: If *level* is out of range. Nothing is sent.
        """
        _validate_audio_level("Squelch", level)
        return self.send_and_receive(f"SQL,{level}")

    # -- Program mode and scanning -------------------------------------------

    def enter_program_mode(self) -> str:
        """Enter program mode (``PRG``). Scanning stops."""
        return self.send_and_receive("PRG")

    def exit_program_mode(self) -> str:
        """Leave program mode (``EPG``)."""
        return self.send_and_receive("EPG")

    def resume_scan(self) -> str:
        """Press the Scan key (``KEY,S,P``).

        Only valid after program mode has been left.
        """
        return self.send_and_receive("KEY,S,P")

    def hold_scan(self) -> str:
        """Press the Hold key (``KEY,H,P``)."""
        return self.send_and_receive("KEY,H,P")

    def get_scan_status(self) -> tuple[str, ScanReport]:
        """Query the live scan status (``GLG``).

        Returns:
            The raw response line and its decoded report.

        Raises:
            DecodeError: If the response is malformed. The raw line is
                available as ``exc.response``.
        """
        raw = self.send_and_receive("GLG")
        return raw, decode_scan_status(raw)

    # -- Channels ------------------------------------------------------------

    def read_channel(self, index: int) -> Channel:
        """Fetch one channel (``CIN,<index>``). Requires program mode.

        Raises:
            ValidationError: If *index* is outside 1..500.
            DecodeError: If the response is malformed.
        """
        validate_channel_index(index)
        return decode_channel(self.send_and_receive(encode_channel_read(index)))

    def write_channel(self, index: int, name: str, frequency_code: str, modulation: str) -> str:
        """Program one channel. Requires program mode.

        Args:
            index: Channel slot (1-500).
            name: Channel name.
            frequency_code: 8-digit frequency code, or ``""``.
            modulation: Modulation code.

        Raises:
            ValidationError: If *index* is outside 1..500.
        """
        validate_channel_index(index)
        return self.send_and_receive(encode_channel_write(index, name, frequency_code, modulation))

    def delete_channel(self, index: int) -> str:
        """Delete one channel (``DCH,<index>``). Requires program mode.

        Raises:
            ValidationError: If *index* is outside 1..500.
        """
        validate_channel_index(index)
        return self.send_and_receive(encode_channel_delete(index))

    # -- Bank mask -------------------------------------------------------------

    def read_bank_mask(self) -> BankMask:
        """Fetch the bank scan mask (``SCG``). Requires program mode.

        Raises:
            DecodeError: If the response is malformed.
        """
        return decode_bank_mask(self.send_and_receive("SCG"))

    def write_bank_mask(self, mask: BankMask) -> str:
        """Write the bank scan mask. Requires program mode."""
        return self.send_and_receive(encode_bank_mask(mask))

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Close the underlying byte stream."""
        self._stream.close()
