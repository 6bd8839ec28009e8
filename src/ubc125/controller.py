"""Mode and edit state machine for the interactive console.

The controller owns the top-level :class:`Mode` and the nested input state,
and decides which scanner commands each user action or periodic tick sends.

Mode follows the active view. Moving from the monitor view to a bank view
puts the scanner in program mode (``PRG``) before any channel fetch is
scheduled; returning to the monitor view sends ``EPG`` then ``KEY,S,P`` and
discards pending fetches. Each transition sends its commands and flips the
mode as one unit: the mode only changes after the commands succeed, and a
failed transition is retried on the next :meth:`ScannerController.tick`.

Input sub-states only exist while configuring::

    Idle --request_delete--> ConfirmingDelete --confirm_delete--> Idle
                                              --cancel----------> Idle
    Idle --begin_edit------> Editing --toggle_field/type_char--> Editing
                                     --commit_edit-------------> Idle
                                     --cancel------------------> Idle

Events that are not legal in the current state are ignored and the event
method returns False.

Example:
    >>> controller = ScannerController(conn)
    >>> controller.initialize()
    >>> controller.select_view(2)   # enters program mode, queues bank 2
    >>> while controller.pending_fetches:
    ...     controller.tick()
    >>> controller.select_view(MONITOR_VIEW)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable

from ubc125.codec import format_channel_frequency, normalize_frequency_input
from ubc125.config import ScannerConfig
from ubc125.errors import DecodeError, ValidationError
from ubc125.scheduler import FetchScheduler
from ubc125.state import DeviceState
from ubc125.types import (
    BANK_COUNT,
    CHANNELS_PER_BANK,
    BankMask,
    Channel,
    ConfirmingDelete,
    Editing,
    Idle,
    InputState,
    Mode,
    ScanStatus,
    SlotState,
    bank_indices,
)

if TYPE_CHECKING:
    from ubc125.connection import ScannerConnection

logger = logging.getLogger(__name__)

MONITOR_VIEW = 0
VIEW_COUNT = BANK_COUNT + 1
DEFAULT_MODULATION = "AM"


@dataclass(frozen=True)
class ChannelRow:
    """One row of a bank table."""

    index: int
    channel: Channel | None
    slot_state: SlotState


@dataclass(frozen=True)
class ConsoleSnapshot:
    """Read-only view of the controller handed to the renderer each tick."""

    view: int
    mode: Mode
    input_state: InputState
    selected_row: int
    selected_index: int | None
    pending_fetches: int
    model: str
    firmware_version: str
    volume: str
    squelch: str
    scan_status: ScanStatus
    bank_mask: BankMask
    rows: tuple[ChannelRow, ...]

    @property
    def bank(self) -> int | None:
        """Bank shown in the current view, or None on the monitor view."""
        return None if self.view == MONITOR_VIEW else self.view


class ScannerController:
    """Interaction state machine over ``(Mode, InputState)``.

    Args:
        connection: Open scanner connection. The controller is its only user.
        config: Poll intervals and retry policy.
        state: Device state to update; a fresh one is created by default.
        clock: Monotonic clock used for the status poll interval.
    """

    def __init__(
        self,
        connection: ScannerConnection,
        *,
        config: ScannerConfig | None = None,
        state: DeviceState | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._conn = connection
        self._config = config or ScannerConfig()
        self._state = state or DeviceState()
        self._scheduler = FetchScheduler(
            connection, self._state, max_retries=self._config.max_fetch_retries
        )
        self._clock = clock
        self._mode = Mode.MONITORING
        self._input: InputState = Idle()
        self._view = MONITOR_VIEW
        self._row = 0
        self._last_poll: float | None = None

    # -- Properties ----------------------------------------------------------

    @property
    def state(self) -> DeviceState:
        """The device state kept by this controller."""
        return self._state

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def input_state(self) -> InputState:
        return self._input

    @property
    def view(self) -> int:
        """Active view: 0 for the monitor, 1-10 for a bank."""
        return self._view

    @property
    def current_bank(self) -> int | None:
        return None if self._view == MONITOR_VIEW else self._view

    @property
    def selected_row(self) -> int:
        return self._row

    @property
    def selected_index(self) -> int | None:
        """Channel index under the cursor, or None on the monitor view."""
        if self._view == MONITOR_VIEW:
            return None
        return (self._view - 1) * CHANNELS_PER_BANK + self._row + 1

    @property
    def pending_fetches(self) -> int:
        return len(self._scheduler)

    @property
    def poll_delay(self) -> float:
        """Seconds the caller should wait for input before the next tick."""
        if len(self._scheduler):
            return self._config.busy_poll_delay
        return self._config.idle_poll_delay

    # -- Startup -------------------------------------------------------------

    def initialize(self) -> None:
        """Read identification, audio levels and the bank mask.

        The bank mask can only be read in program mode, so this briefly
        enters it and then resumes scanning.

        Raises:
            TransportError: If any exchange fails.
        """
        self._state.model = self._conn.get_model()
        self._state.firmware_version = self._conn.get_firmware_version()
        self._state.volume = self._conn.get_volume()
        self._state.squelch = self._conn.get_squelch()

        self._conn.enter_program_mode()
        try:
            self._state.apply_bank_mask(self._conn.read_bank_mask())
        except DecodeError as exc:
            logger.warning("Keeping default bank mask: %s", exc)
        self._conn.exit_program_mode()
        self._conn.resume_scan()
        logger.info("Connected to %s (%s)", self._state.model, self._state.firmware_version)

    def shutdown(self) -> None:
        """Drop any pending edit and return the scanner to scanning."""
        self._input = Idle()
        self._view = MONITOR_VIEW
        self._sync_mode()

    # -- Periodic work -------------------------------------------------------

    def tick(self) -> None:
        """Run one scheduling step.

        Reconciles the mode with the active view, then either fetches one
        pending channel (configuring) or polls the live scan status when the
        poll interval has elapsed (monitoring).

        Raises:
            TransportError: If an exchange fails. No state is lost; the next
                tick tries again.
        """
        self._sync_mode()
        if self._mode is Mode.CONFIGURING:
            self._scheduler.tick(self._mode)
            return

        now = self._clock()
        if self._last_poll is not None and now - self._last_poll < self._config.status_poll_interval:
            return
        self._last_poll = now
        self._poll_scan_status()

    def _poll_scan_status(self) -> None:
        try:
            raw, report = self._conn.get_scan_status()
        except DecodeError as exc:
            logger.debug("Ignoring scan status: %s", exc)
            self._state.apply_scan_status(self._state.scan_status.with_raw(exc.response))
            return
        self._state.apply_scan_status(report.apply_to(self._state.scan_status, raw))

    # -- Views and mode ------------------------------------------------------

    def select_view(self, view: int) -> bool:
        """Switch to the monitor view (0) or a bank view (1-10).

        Raises:
            ValidationError: If *view* is outside 0..10.
            TransportError: If the resulting mode transition fails.
        """
        if not 0 <= view < VIEW_COUNT:
            raise ValidationError(f"View must be 0-{VIEW_COUNT - 1}, got {view}")
        if not isinstance(self._input, Idle):
            return self._ignored("select_view")
        self._view = view
        self._sync_mode()
        if self._mode is Mode.CONFIGURING and self.current_bank is not None:
            self._scheduler.enqueue_bank(self.current_bank)
        return True

    def next_view(self) -> bool:
        return self.select_view((self._view + 1) % VIEW_COUNT)

    def previous_view(self) -> bool:
        return self.select_view((self._view - 1) % VIEW_COUNT)

    def _sync_mode(self) -> None:
        wanted = Mode.MONITORING if self._view == MONITOR_VIEW else Mode.CONFIGURING
        if wanted is self._mode:
            return
        if wanted is Mode.CONFIGURING:
            self._enter_configuring()
        else:
            self._leave_configuring()

    def _enter_configuring(self) -> None:
        self._conn.enter_program_mode()
        self._mode = Mode.CONFIGURING
        self._input = Idle()
        logger.info("Entered program mode")
        if self.current_bank is not None:
            self._scheduler.enqueue_bank(self.current_bank)

    def _leave_configuring(self) -> None:
        # Scan can only be resumed once program mode has been left.
        self._conn.exit_program_mode()
        self._conn.resume_scan()
        self._scheduler.clear()
        self._mode = Mode.MONITORING
        self._input = Idle()
        self._last_poll = None
        logger.info("Left program mode, scanning resumed")

    # -- Bank table navigation -----------------------------------------------

    def next_row(self) -> bool:
        if not self._can_navigate():
            return self._ignored("next_row")
        self._row = (self._row + 1) % CHANNELS_PER_BANK
        return True

    def previous_row(self) -> bool:
        if not self._can_navigate():
            return self._ignored("previous_row")
        self._row = (self._row - 1) % CHANNELS_PER_BANK
        return True

    def _can_navigate(self) -> bool:
        return (
            self._mode is Mode.CONFIGURING
            and self.current_bank is not None
            and isinstance(self._input, Idle)
        )

    # -- Delete ----------------------------------------------------------------

    def request_delete(self) -> bool:
        """Ask for confirmation before deleting the selected channel."""
        index = self.selected_index
        if not self._can_navigate() or index is None:
            return self._ignored("request_delete")
        self._input = ConfirmingDelete(index)
        return True

    def confirm_delete(self) -> bool:
        """Delete the channel awaiting confirmation.

        The slot is cleared and queued again, so the scanner's own default
        for an empty slot is read back rather than assumed.
        """
        if not isinstance(self._input, ConfirmingDelete):
            return self._ignored("confirm_delete")
        index = self._input.index
        self._conn.delete_channel(index)
        self._state.clear_channel(index)
        self._scheduler.enqueue(index)
        self._input = Idle()
        logger.info("Deleted channel %d", index)
        return True

    def cancel(self) -> bool:
        """Leave delete confirmation or editing without sending anything."""
        if isinstance(self._input, Idle):
            return self._ignored("cancel")
        self._input = Idle()
        return True

    # -- Edit ------------------------------------------------------------------

    def begin_edit(self) -> bool:
        """Start editing the selected channel, prefilled from the device state."""
        index = self.selected_index
        if not self._can_navigate() or index is None:
            return self._ignored("begin_edit")
        channel = self._state.channel(index)
        if channel is None:
            self._input = Editing(index)
        else:
            self._input = Editing(index, name=channel.name, frequency=channel.frequency)
        return True

    def toggle_field(self) -> bool:
        """Switch which edit buffer receives typed characters."""
        if not isinstance(self._input, Editing):
            return self._ignored("toggle_field")
        self._input = replace(self._input, active_field=self._input.active_field.other())
        return True

    def type_char(self, char: str) -> bool:
        """Append one printable character to the active edit buffer.

        Commas are refused because they delimit protocol fields, and
        non-ASCII characters because the protocol is ASCII.
        """
        if not isinstance(self._input, Editing):
            return self._ignored("type_char")
        if len(char) != 1 or not (char.isascii() and char.isprintable()) or char == ",":
            return self._ignored("type_char")
        self._input = self._input.with_buffer(self._input.buffer() + char)
        return True

    def backspace(self) -> bool:
        if not isinstance(self._input, Editing):
            return self._ignored("backspace")
        self._input = self._input.with_buffer(self._input.buffer()[:-1])
        return True

    def commit_edit(self) -> bool:
        """Write the edited channel to the scanner.

        The typed frequency is normalized to an 8-digit code. After the write
        the edited values are applied to the device state right away; a later
        fetch of the slot replaces them with what the scanner reports.
        """
        if not isinstance(self._input, Editing):
            return self._ignored("commit_edit")
        edit = self._input
        code = normalize_frequency_input(edit.frequency)
        existing = self._state.channel(edit.index)
        modulation = existing.modulation if existing and existing.modulation else DEFAULT_MODULATION

        self._conn.write_channel(edit.index, edit.name, code, modulation)
        self._state.apply_channel(
            Channel(
                index=edit.index,
                name=edit.name,
                frequency=format_channel_frequency(code) if code else "",
                modulation=modulation,
            )
        )
        self._input = Idle()
        logger.info("Wrote channel %d (%s, %s)", edit.index, edit.name, code or "no frequency")
        return True

    # -- Monitoring actions ----------------------------------------------------

    def toggle_bank(self, bank: int) -> bool:
        """Flip one bank's scan flag and write the mask to the scanner.

        This sends ``PRG``, ``SCG,<mask>``, ``EPG`` and ``KEY,S,P`` as one
        sequence. The scanner makes a full program-mode round trip, but
        :attr:`mode` stays :attr:`Mode.MONITORING` throughout; it does not
        track this operation.

        Raises:
            ValidationError: If *bank* is outside 1..10.
        """
        mask = self._state.bank_mask.toggled(bank)
        if not self._can_act_while_monitoring():
            return self._ignored("toggle_bank")
        self._state.apply_bank_mask(mask)
        self._conn.enter_program_mode()
        self._conn.write_bank_mask(mask)
        self._conn.exit_program_mode()
        self._conn.resume_scan()
        logger.info("Bank %d %s", bank, "enabled" if mask.is_enabled(bank) else "disabled")
        return True

    def resume_scan(self) -> bool:
        if not self._can_act_while_monitoring():
            return self._ignored("resume_scan")
        self._conn.resume_scan()
        return True

    def hold_scan(self) -> bool:
        if not self._can_act_while_monitoring():
            return self._ignored("hold_scan")
        self._conn.hold_scan()
        return True

    def _can_act_while_monitoring(self) -> bool:
        return self._mode is Mode.MONITORING and self._view == MONITOR_VIEW

    # -- Rendering -------------------------------------------------------------

    def snapshot(self) -> ConsoleSnapshot:
        """Return a read-only snapshot for the renderer."""
        rows: tuple[ChannelRow, ...] = ()
        if self.current_bank is not None:
            rows = tuple(
                ChannelRow(index, self._state.channel(index), self._state.slot_state(index))
                for index in bank_indices(self.current_bank)
            )
        return ConsoleSnapshot(
            view=self._view,
            mode=self._mode,
            input_state=self._input,
            selected_row=self._row,
            selected_index=self.selected_index,
            pending_fetches=len(self._scheduler),
            model=self._state.model,
            firmware_version=self._state.firmware_version,
            volume=self._state.volume,
            squelch=self._state.squelch,
            scan_status=self._state.scan_status,
            bank_mask=self._state.bank_mask,
            rows=rows,
        )

    @staticmethod
    def _ignored(event: str) -> bool:
        logger.debug("Ignoring %s in current state", event)
        return False
