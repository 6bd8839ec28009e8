"""Domain types for the scanner client.

This module provides the data structures shared by the codec, the device
state, the fetch scheduler and the mode/edit controller.

Constants:
    CHANNEL_COUNT: Number of channel slots on the scanner (500).
    BANK_COUNT: Number of scan banks (10).
    CHANNELS_PER_BANK: Contiguous channel slots per bank (50).

Classes:
    Channel: A programmed channel slot.
    SlotState: Fetch state of a channel slot.
    BankMask: Which banks are enabled for scanning.
    ScanStatus: Most recent live scan report.
    Mode: Top-level interaction mode.
    EditField: Which edit buffer receives character input.
    Idle, ConfirmingDelete, Editing: Input sub-states.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from ubc125.errors import ValidationError

CHANNEL_COUNT = 500
BANK_COUNT = 10
CHANNELS_PER_BANK = 50


def validate_channel_index(index: int) -> int:
    """Check that *index* is a valid channel slot.

    Args:
        index: Channel index (1-based).

    Returns:
        The index, unchanged.

    Raises:
        ValidationError: If *index* is outside 1..500.
    """
    if not 1 <= index <= CHANNEL_COUNT:
        raise ValidationError(f"Channel index must be 1-{CHANNEL_COUNT}, got {index}")
    return index


def validate_bank(bank: int) -> int:
    """Check that *bank* is a valid bank number.

    Args:
        bank: Bank number (1-based).

    Returns:
        The bank number, unchanged.

    Raises:
        ValidationError: If *bank* is outside 1..10.
    """
    if not 1 <= bank <= BANK_COUNT:
        raise ValidationError(f"Bank must be 1-{BANK_COUNT}, got {bank}")
    return bank


def bank_of(index: int) -> int:
    """Return the bank a channel index belongs to.

    Channel 52 is in bank 2: ``((52 - 1) // 50) + 1``.
    """
    return ((index - 1) // CHANNELS_PER_BANK) + 1


def bank_indices(bank: int) -> range:
    """Return the channel indices belonging to *bank*.

    Raises:
        ValidationError: If *bank* is outside 1..10.
    """
    validate_bank(bank)
    start = (bank - 1) * CHANNELS_PER_BANK + 1
    return range(start, start + CHANNELS_PER_BANK)


@dataclass(frozen=True)
class Channel:
    """A programmed channel slot.

    Attributes:
        index: Channel slot (1-500).
        name: Channel name as stored on the scanner.
        frequency: Display frequency (``"123.975"``); empty when no
            frequency is assigned.
        modulation: Modulation code (``AUTO``, ``AM``, ``FM``, ``NFM``).
    """

    index: int
    name: str
    frequency: str
    modulation: str

    @property
    def bank(self) -> int:
        """Bank this channel belongs to."""
        return bank_of(self.index)


class SlotState(Enum):
    """Fetch state of one channel slot in the device state.

    Attributes:
        UNKNOWN: Not fetched yet, or cleared by a delete.
        LOADED: A channel record is held for the slot.
        UNAVAILABLE: Fetching gave up after repeated decode failures.
    """

    UNKNOWN = "unknown"
    LOADED = "loaded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class BankMask:
    """Scan-enable flags for the ten banks.

    ``enabled[i]`` is True when bank ``i + 1`` is scanned. The tuple always
    holds exactly ten entries.
    """

    enabled: tuple[bool, ...] = (True,) * BANK_COUNT

    def __post_init__(self) -> None:
        if len(self.enabled) != BANK_COUNT:
            raise ValidationError(
                f"Bank mask must have {BANK_COUNT} entries, got {len(self.enabled)}"
            )

    def is_enabled(self, bank: int) -> bool:
        """Return True if *bank* (1-10) is enabled for scanning."""
        return self.enabled[validate_bank(bank) - 1]

    def toggled(self, bank: int) -> BankMask:
        """Return a copy of the mask with *bank* (1-10) flipped."""
        validate_bank(bank)
        flags = list(self.enabled)
        flags[bank - 1] = not flags[bank - 1]
        return BankMask(tuple(flags))


@dataclass(frozen=True)
class ScanStatus:
    """Most recent live scan status reported by the scanner.

    Attributes:
        frequency: Display frequency or ``"---"`` when unknown.
        bank: Bank of the channel being received, or None when unknown.
        channel_name: Name of the channel being received.
        signal_detected: True when the squelch is open.
        raw: Last raw ``GLG`` line, kept for diagnostics.
    """

    frequency: str = "---"
    bank: int | None = None
    channel_name: str = ""
    signal_detected: bool = False
    raw: str = ""

    @property
    def bank_label(self) -> str:
        """Bank number as displayed, ``"-"`` when unknown."""
        return "-" if self.bank is None else str(self.bank)

    def with_raw(self, raw: str) -> ScanStatus:
        """Return a copy with only the diagnostic raw line replaced."""
        return replace(self, raw=raw)


class Mode(Enum):
    """Top-level interaction mode.

    Attributes:
        MONITORING: Scanner is scanning; live status is polled.
        CONFIGURING: Scanner is in program mode; channels can be read and
            written.
    """

    MONITORING = "monitoring"
    CONFIGURING = "configuring"


class EditField(Enum):
    """Edit buffer that receives character input."""

    FREQUENCY = "frequency"
    NAME = "name"

    def other(self) -> EditField:
        return EditField.NAME if self is EditField.FREQUENCY else EditField.FREQUENCY


@dataclass(frozen=True)
class Idle:
    """Navigating the channel table."""


@dataclass(frozen=True)
class ConfirmingDelete:
    """Waiting for the user to confirm deletion of a channel."""

    index: int


@dataclass(frozen=True)
class Editing:
    """Editing the name and frequency of a channel.

    Attributes:
        index: Channel slot being edited.
        name: Name buffer.
        frequency: Frequency buffer, free text as typed.
        active_field: Buffer receiving character input.
    """

    index: int
    name: str = ""
    frequency: str = ""
    active_field: EditField = EditField.FREQUENCY

    def buffer(self) -> str:
        """Return the contents of the active buffer."""
        return self.frequency if self.active_field is EditField.FREQUENCY else self.name

    def with_buffer(self, text: str) -> Editing:
        """Return a copy with the active buffer replaced by *text*."""
        if self.active_field is EditField.FREQUENCY:
            return replace(self, frequency=text)
        return replace(self, name=text)


InputState = Union[Idle, ConfirmingDelete, Editing]
