"""In-memory model of what is known about the scanner.

The device state is mutated only by applying decoded responses. It does not
validate cross-field consistency; the codec is the sole gate for
well-formedness, and the state only rejects out-of-range channel indices.
"""

from __future__ import annotations

from ubc125.types import (
    CHANNEL_COUNT,
    BankMask,
    Channel,
    ScanStatus,
    SlotState,
    bank_indices,
    validate_channel_index,
)


class DeviceState:
    """Identification strings, audio levels, channels, bank mask and scan status.

    Channel slots start out unknown. A slot becomes loaded when a channel
    is applied, returns to unknown when cleared, and becomes unavailable when
    the fetch scheduler gives up on it.

    Attributes:
        model: Raw ``MDL`` response.
        firmware_version: Raw ``VER`` response.
        volume: Raw ``VOL`` response.
        squelch: Raw ``SQL`` response.
    """

    def __init__(self) -> None:
        self.model = ""
        self.firmware_version = ""
        self.volume = ""
        self.squelch = ""
        self._channels: dict[int, Channel] = {}
        self._unavailable: set[int] = set()
        self._bank_mask = BankMask()
        self._scan_status = ScanStatus()

    # -- Read accessors ------------------------------------------------------

    @property
    def bank_mask(self) -> BankMask:
        """Current bank scan mask (all enabled until read from the scanner)."""
        return self._bank_mask

    @property
    def scan_status(self) -> ScanStatus:
        """Most recent live scan status."""
        return self._scan_status

    @property
    def loaded_count(self) -> int:
        """Number of channel slots holding a record."""
        return len(self._channels)

    def channel(self, index: int) -> Channel | None:
        """Return the channel held for *index*, or None if not loaded."""
        return self._channels.get(validate_channel_index(index))

    def slot_state(self, index: int) -> SlotState:
        """Return the fetch state of channel slot *index*."""
        validate_channel_index(index)
        if index in self._channels:
            return SlotState.LOADED
        if index in self._unavailable:
            return SlotState.UNAVAILABLE
        return SlotState.UNKNOWN

    def bank_channels(self, bank: int) -> list[tuple[int, Channel | None]]:
        """Return ``(index, channel)`` pairs for the 50 slots of *bank*."""
        return [(index, self._channels.get(index)) for index in bank_indices(bank)]

    # -- Mutators ------------------------------------------------------------

    def apply_channel(self, channel: Channel) -> None:
        """Store *channel*, replacing whatever was known for its slot."""
        validate_channel_index(channel.index)
        self._channels[channel.index] = channel
        self._unavailable.discard(channel.index)

    def clear_channel(self, index: int) -> None:
        """Forget the channel in slot *index*."""
        validate_channel_index(index)
        self._channels.pop(index, None)
        self._unavailable.discard(index)

    def mark_unavailable(self, index: int) -> None:
        """Record that slot *index* could not be fetched."""
        validate_channel_index(index)
        self._channels.pop(index, None)
        self._unavailable.add(index)

    def apply_scan_status(self, status: ScanStatus) -> None:
        """Replace the live scan status."""
        self._scan_status = status

    def apply_bank_mask(self, mask: BankMask) -> None:
        """Replace the bank scan mask."""
        self._bank_mask = mask

    def __repr__(self) -> str:
        return (
            f"DeviceState(model={self.model!r}, channels={len(self._channels)}/{CHANNEL_COUNT}, "
            f"unavailable={len(self._unavailable)})"
        )
