"""Positional codec for scanner messages.

Scanner responses are comma-delimited positional fields whose first field is
the mnemonic echoed back from the request::

    CIN,52,BHX RADAR,01239750,AM,0,0,0,0
    GLG,01239750,AM,,0,,,BHX RADAR,1,0,,52,
    SCG,0000011111

Each response type has one validating parse function that checks the
mnemonic and the minimum field count and returns a frozen record, raising
:class:`DecodeError` on any mismatch. The functions are pure and
transport-independent.

Two frequency renderings exist and are intentionally different: channel
records strip trailing zeros from the sub-MHz digits (``"123.975"``), live
scan records keep all four (``"123.9750"``).
"""

from __future__ import annotations

from dataclasses import dataclass

from ubc125.errors import DecodeError
from ubc125.types import (
    BANK_COUNT,
    CHANNEL_COUNT,
    BankMask,
    Channel,
    ScanStatus,
    bank_of,
)

NO_FREQUENCY = "00000000"

_CHANNEL_MIN_FIELDS = 5
_SCAN_MIN_FIELDS = 8
_BANK_MASK_MIN_FIELDS = 2

# Trailing fields of a channel write: delay, lockout, priority, CTCSS/DCS.
_CHANNEL_WRITE_PADDING = "0,0,0,0"


def _split(response: str, mnemonic: str, min_fields: int) -> list[str]:
    """Split *response* and check its mnemonic and field count."""
    fields = response.split(",")
    if fields[0] != mnemonic:
        raise DecodeError(f"Expected {mnemonic} response, got {response!r}", response)
    if len(fields) < min_fields:
        raise DecodeError(
            f"{mnemonic} response needs at least {min_fields} fields, "
            f"got {len(fields)}: {response!r}",
            response,
        )
    return fields


def _mhz_digits(code: str) -> str:
    return code[:4].lstrip("0") or "0"


# ---------------------------------------------------------------------------
# Frequency formatting
# ---------------------------------------------------------------------------


def format_channel_frequency(code: str) -> str:
    """Render a channel record frequency code for display.

    Args:
        code: Frequency field from a ``CIN`` response.

    Returns:
        ``""`` for the ``"00000000"`` sentinel, ``MHz.kHz`` with trailing
        sub-MHz zeros stripped for any other 8-digit code (``"01285500"`` ->
        ``"128.55"``, ``"01280000"`` -> ``"128.0"``), or *code* unchanged if
        it is not an 8-digit code.
    """
    if len(code) != 8 or not code.isdigit():
        return code
    if code == NO_FREQUENCY:
        return ""
    khz = code[4:].rstrip("0") or "0"
    return f"{_mhz_digits(code)}.{khz}"


def format_scan_frequency(code: str) -> str:
    """Render a live scan frequency code for display.

    Unlike :func:`format_channel_frequency`, all four sub-MHz digits are kept
    (``"00881000"`` -> ``"88.1000"``). Codes shorter than 8 characters are
    returned unchanged.
    """
    if len(code) < 8:
        return code
    return f"{_mhz_digits(code)}.{code[4:8]}"


def normalize_frequency_input(text: str) -> str:
    """Convert user-typed frequency text into an 8-digit frequency code.

    The input is interpreted in one of three ways:

    - With a dot, as ``MHz.kHz``: MHz is left-padded to 4 digits and the
      fraction right-padded to 4 digits, each truncated if longer
      (``"123.45"`` -> ``"01234500"``).
    - Without a dot and at least 7 characters long, as a raw code,
      left-padded to 8 digits (``"1234500"`` -> ``"01234500"``).
    - Otherwise, as whole MHz (``"118"`` -> ``"01180000"``).

    Empty input yields ``""``, meaning no frequency.

    Args:
        text: Frequency as typed.

    Returns:
        The frequency code to send in a channel write.
    """
    if "." in text:
        mhz, _, khz = text.partition(".")
        return mhz.rjust(4, "0")[:4] + khz.ljust(4, "0")[:4]
    if len(text) >= 7:
        return text.rjust(8, "0")[:8]
    if text:
        return text.rjust(4, "0") + "0000"
    return ""


# ---------------------------------------------------------------------------
# Channel records
# ---------------------------------------------------------------------------


def decode_channel(response: str) -> Channel:
    """Parse a ``CIN`` channel info response.

    Format: ``CIN,<index>,<name>,<freq8>,<mod>,...``. Fields past the
    modulation are ignored.

    Args:
        response: The framed response line.

    Returns:
        The decoded channel.

    Raises:
        DecodeError: If the mnemonic or field count is wrong, or the index is
            not an integer in 1..500.
    """
    fields = _split(response, "CIN", _CHANNEL_MIN_FIELDS)
    try:
        index = int(fields[1])
    except ValueError:
        raise DecodeError(f"Invalid channel index in {response!r}", response) from None
    if not 1 <= index <= CHANNEL_COUNT:
        raise DecodeError(f"Channel index {index} out of range in {response!r}", response)
    return Channel(
        index=index,
        name=fields[2],
        frequency=format_channel_frequency(fields[3]),
        modulation=fields[4],
    )


def encode_channel_read(index: int) -> str:
    """Build the command that fetches one channel."""
    return f"CIN,{index}"


def encode_channel_write(index: int, name: str, frequency_code: str, modulation: str) -> str:
    """Build a ``CIN`` channel write command.

    Args:
        index: Channel slot (1-500).
        name: Channel name.
        frequency_code: 8-digit code from :func:`normalize_frequency_input`,
            or ``""`` to leave the frequency unset.
        modulation: Modulation code.

    Returns:
        ``CIN,<index>,<name>,<freq8>,<modulation>,0,0,0,0``.
    """
    return f"CIN,{index},{name},{frequency_code},{modulation},{_CHANNEL_WRITE_PADDING}"


def encode_channel_delete(index: int) -> str:
    """Build the command that deletes one channel."""
    return f"DCH,{index}"


# ---------------------------------------------------------------------------
# Live scan records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanReport:
    """Decoded ``GLG`` live scan response.

    Optional fields are None when the response did not carry them; applying
    the report keeps the previous value for those.

    Attributes:
        frequency: Display frequency.
        modulation: Modulation code.
        channel_name: Channel name, whitespace stripped.
        signal_detected: Squelch state, or None if absent.
        channel_index: Channel being received, or None if absent or invalid.
    """

    frequency: str
    modulation: str
    channel_name: str
    signal_detected: bool | None = None
    channel_index: int | None = None

    @property
    def bank(self) -> int | None:
        """Bank of the channel being received, if known."""
        if self.channel_index is None:
            return None
        return bank_of(self.channel_index)

    def apply_to(self, previous: ScanStatus, raw: str = "") -> ScanStatus:
        """Merge this report into *previous*, returning the new status."""
        return ScanStatus(
            frequency=self.frequency,
            bank=previous.bank if self.bank is None else self.bank,
            channel_name=self.channel_name,
            signal_detected=(
                previous.signal_detected if self.signal_detected is None else self.signal_detected
            ),
            raw=raw,
        )


def decode_scan_status(response: str) -> ScanReport:
    """Parse a ``GLG`` live scan response.

    Format: ``GLG,<freq8>,<mod>,,<?>,,,<name>,<signal>,<?>,,<index>,``.
    At least eight fields are required; the squelch flag (field 8) and the
    channel index (field 11) are optional.

    Args:
        response: The framed response line.

    Returns:
        The decoded scan report.

    Raises:
        DecodeError: If the mnemonic or field count is wrong.
    """
    fields = _split(response, "GLG", _SCAN_MIN_FIELDS)

    signal: bool | None = None
    if len(fields) > 8:
        signal = fields[8].strip() == "1"

    channel_index: int | None = None
    if len(fields) > 11:
        try:
            value = int(fields[11].strip())
        except ValueError:
            value = 0
        if value > 0:
            channel_index = value

    return ScanReport(
        frequency=format_scan_frequency(fields[1]),
        modulation=fields[2],
        channel_name=fields[7].strip(),
        signal_detected=signal,
        channel_index=channel_index,
    )


# ---------------------------------------------------------------------------
# Bank mask
# ---------------------------------------------------------------------------


def decode_bank_mask(response: str) -> BankMask:
    """Parse a ``SCG`` bank mask response.

    The scanner reports ``'0'`` for an enabled bank and ``'1'`` for a
    disabled one (``SCG,0000011111`` enables banks 1-5).

    Raises:
        DecodeError: If the mnemonic is wrong or the mask is shorter than
            ten characters.
    """
    fields = _split(response, "SCG", _BANK_MASK_MIN_FIELDS)
    mask = fields[1].strip()
    if len(mask) < BANK_COUNT:
        raise DecodeError(f"Bank mask needs {BANK_COUNT} flags, got {mask!r}", response)
    return BankMask(tuple(flag == "0" for flag in mask[:BANK_COUNT]))


def encode_bank_mask(mask: BankMask) -> str:
    """Build the ``SCG`` command that writes *mask*."""
    return "SCG," + "".join("0" if enabled else "1" for enabled in mask.enabled)
