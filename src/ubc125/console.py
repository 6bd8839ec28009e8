"""Interactive terminal console.

The console is a single-threaded loop around a :class:`ScannerController`:
each iteration runs one controller tick, draws the controller snapshot, then
waits up to ``controller.poll_delay`` for a key. Rendering and key handling
are plain functions over the snapshot and the controller, so the curses
layer only moves text to the screen.

Keys:
    Monitor tab: ``s`` scan, ``h`` hold, ``1``-``9``/``0`` toggle banks 1-10.
    Bank tabs: Up/Down or ``k``/``j`` select, ``e``/Enter edit, ``d`` delete.
    Everywhere: Left/Right switch tabs, ``q`` quit.
    Delete prompt: ``y`` confirm, ``n``/Esc cancel.
    Edit form: Tab switch field, Backspace, Enter save, Esc cancel.
"""

from __future__ import annotations

import curses
import logging
from typing import TYPE_CHECKING, Any, Callable

from ubc125.config import ScannerConfig
from ubc125.connection import ScannerConnection
from ubc125.controller import MONITOR_VIEW, VIEW_COUNT, ConsoleSnapshot, ScannerController
from ubc125.errors import ScannerError, TransportError
from ubc125.serial_port import SerialPort
from ubc125.types import BANK_COUNT, ConfirmingDelete, EditField, Editing, Idle, Mode, SlotState

if TYPE_CHECKING:
    from ubc125.controller import ChannelRow

logger = logging.getLogger(__name__)

KEY_ESCAPE = 27
KEY_TAB = 9
ENTER_KEYS = frozenset({10, 13, curses.KEY_ENTER})
BACKSPACE_KEYS = frozenset({8, 127, curses.KEY_BACKSPACE})
SELECTED_PREFIX = ">> "

_MONITOR_HELP = "Left/Right: tabs  s: scan  h: hold  1-0: toggle banks  q: quit"
_BANK_HELP = "Left/Right: tabs  Up/Down or j/k: select  e: edit  d: delete  q: quit"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _tab_bar(view: int) -> str:
    labels = ["Monitor"] + [f"Bank {bank}" for bank in range(1, VIEW_COUNT)]
    return " | ".join(f"[{label}]" if i == view else label for i, label in enumerate(labels))


def _bank_flags(snapshot: ConsoleSnapshot) -> str:
    flags = []
    for bank in range(1, BANK_COUNT + 1):
        key = bank % 10
        flags.append(f"[{key}]" if snapshot.bank_mask.is_enabled(bank) else f" {key} ")
    return "Banks: " + " ".join(flags)


def _channel_row(row: ChannelRow, selected: bool) -> str:
    prefix = SELECTED_PREFIX if selected else " " * len(SELECTED_PREFIX)
    if row.slot_state is SlotState.UNAVAILABLE:
        body = "Unavailable"
    elif row.channel is None:
        body = "Loading..."
    else:
        ch = row.channel
        body = f"{ch.name:<16} {ch.frequency:<10} {ch.modulation}"
    return f"{prefix}{row.index:>3}  {body}"


def _overlay(snapshot: ConsoleSnapshot) -> list[str]:
    state = snapshot.input_state
    if isinstance(state, ConfirmingDelete):
        return [f"Delete channel {state.index}? (y) Yes / (n) No"]
    if isinstance(state, Editing):
        freq_cursor = "_" if state.active_field is EditField.FREQUENCY else ""
        name_cursor = "_" if state.active_field is EditField.NAME else ""
        return [
            f"Edit channel {state.index}",
            f"  Frequency (MHz): {state.frequency}{freq_cursor}",
            f"  Name:            {state.name}{name_cursor}",
            "  Tab: switch field  Enter: save  Esc: cancel",
        ]
    return []


def _row_window(selected: int, total: int, room: int) -> range:
    """Return the slice of *total* rows to show so that *selected* is visible."""
    room = max(1, min(room, total))
    start = max(0, min(selected - room // 2, total - room))
    return range(start, start + room)


def _status_text(snapshot: ConsoleSnapshot, message: str) -> str:
    mode_label = "Remote (PRG)" if snapshot.mode is Mode.CONFIGURING else "Monitor"
    if snapshot.pending_fetches:
        text = f"Loading... {snapshot.pending_fetches} remaining ({mode_label})"
    elif snapshot.view == MONITOR_VIEW and snapshot.scan_status.raw:
        text = f"{snapshot.scan_status.raw} ({mode_label})"
    else:
        text = f"Ready ({mode_label})"
    if message:
        text = f"{text}  {message}"
    return text


def render_lines(
    snapshot: ConsoleSnapshot, message: str = "", height: int | None = None
) -> list[str]:
    """Lay out a snapshot as screen lines.

    The selected channel row starts with ``">> "``. When *height* is given,
    only as many bank rows as fit are kept, scrolled so the selected row is
    shown; the prompt, help and status lines always stay on screen.

    Args:
        snapshot: Controller snapshot to draw.
        message: Optional message for the status line, such as the last
            error.
        height: Number of screen lines available, or None for no limit.

    Returns:
        Lines from the top of the screen down.
    """
    lines = [_tab_bar(snapshot.view), ""]
    overlay = _overlay(snapshot)
    if overlay:
        overlay = [""] + overlay

    if snapshot.view == MONITOR_VIEW:
        status = snapshot.scan_status
        lines += [
            f"Model:     {snapshot.model}",
            f"Version:   {snapshot.firmware_version}",
            f"Volume:    {snapshot.volume}",
            f"Squelch:   {snapshot.squelch}",
            "",
            f"Bank:      {status.bank_label}",
            f"Frequency: {status.frequency}",
            f"Channel:   {status.channel_name}",
            f"Signal:    {'DETECTED' if status.signal_detected else '-'}",
            "",
            _bank_flags(snapshot),
        ]
        help_text = _MONITOR_HELP
    else:
        lines.append(f"Bank {snapshot.view}")
        lines.append(f"{'':{len(SELECTED_PREFIX)}}Idx  {'Name':<16} {'Freq':<10} Mod")
        shown = range(len(snapshot.rows))
        if height is not None:
            # Rows get whatever the header, prompt and footer leave over.
            room = height - len(lines) - len(overlay) - 3
            shown = _row_window(snapshot.selected_row, len(snapshot.rows), room)
        for i in shown:
            lines.append(_channel_row(snapshot.rows[i], i == snapshot.selected_row))
        help_text = _BANK_HELP

    lines += overlay
    lines += ["", help_text, f"Status: {_status_text(snapshot, message)}"]
    return lines


# ---------------------------------------------------------------------------
# Key handling
# ---------------------------------------------------------------------------


def _bank_for_digit(char: str) -> int:
    return 10 if char == "0" else int(char)


def handle_key(controller: ScannerController, key: int) -> bool:
    """Translate one key press into a controller event.

    Args:
        controller: Controller receiving the event.
        key: Key code as returned by ``getch``.

    Returns:
        False when the console should quit, True otherwise.

    Raises:
        ScannerError: If the resulting command exchange fails.
    """
    state = controller.input_state
    char = chr(key) if 0 <= key < 256 else ""

    if isinstance(state, ConfirmingDelete):
        if char == "y":
            controller.confirm_delete()
        elif char == "n" or key == KEY_ESCAPE:
            controller.cancel()
        return True

    if isinstance(state, Editing):
        if key == KEY_ESCAPE:
            controller.cancel()
        elif key == KEY_TAB:
            controller.toggle_field()
        elif key in ENTER_KEYS:
            controller.commit_edit()
        elif key in BACKSPACE_KEYS:
            controller.backspace()
        elif char:
            controller.type_char(char)
        return True

    if not isinstance(state, Idle):
        return True
    if char == "q":
        return False
    if key == curses.KEY_RIGHT:
        controller.next_view()
    elif key == curses.KEY_LEFT:
        controller.previous_view()
    elif controller.view != MONITOR_VIEW:
        if key == curses.KEY_DOWN or char == "j":
            controller.next_row()
        elif key == curses.KEY_UP or char == "k":
            controller.previous_row()
        elif char == "d":
            controller.request_delete()
        elif char == "e" or key in ENTER_KEYS:
            controller.begin_edit()
    elif char == "s":
        controller.resume_scan()
    elif char == "h":
        controller.hold_scan()
    elif char and char in "0123456789":
        controller.toggle_bank(_bank_for_digit(char))
    return True


# ---------------------------------------------------------------------------
# Curses loop
# ---------------------------------------------------------------------------


class Console:
    """Curses front end for a scanner controller.

    Args:
        controller: Initialized controller to drive.
    """

    def __init__(self, controller: ScannerController) -> None:
        self._controller = controller
        self._message = ""

    def run(self) -> None:
        """Run until the user quits, then return the scanner to scanning."""
        try:
            curses.wrapper(self._loop)
        finally:
            try:
                self._controller.shutdown()
            except ScannerError as exc:
                logger.error("Could not resume scanning on exit: %s", exc)

    def _loop(self, stdscr: curses.window) -> None:
        curses.curs_set(0)
        while True:
            self._guarded(self._controller.tick)
            self._draw(stdscr)

            stdscr.timeout(max(1, int(self._controller.poll_delay * 1000)))
            key = stdscr.getch()
            if key == -1:
                continue
            self._message = ""
            if self._guarded(handle_key, self._controller, key) is False:
                return

    def _guarded(self, action: Callable[..., Any], *args: Any) -> Any:
        """Call *action*, showing a scanner error on the status line."""
        try:
            return action(*args)
        except ScannerError as exc:
            logger.warning("%s", exc)
            self._message = f"Error: {exc}"
            return None

    def _draw(self, stdscr: curses.window) -> None:
        height, width = stdscr.getmaxyx()
        stdscr.erase()
        rows = max(0, height - 1)
        lines = render_lines(self._controller.snapshot(), self._message, height=rows)
        for y, line in enumerate(lines[:rows]):
            attr = curses.A_REVERSE if line.startswith(SELECTED_PREFIX) else curses.A_NORMAL
            stdscr.addstr(y, 0, line[: max(0, width - 1)], attr)
        stdscr.refresh()


def run(config: ScannerConfig) -> int:
    """Open the scanner and run the interactive console.

    Returns:
        Exit status: 0 after the user quits, 1 if the scanner cannot be
        opened or initialized.
    """
    port = SerialPort(
        config.device_path, baudrate=config.baudrate, poll_timeout=config.port_poll_timeout
    )
    try:
        port.open()
    except TransportError as exc:
        logger.error("Cannot open scanner: %s", exc)
        return 1

    conn = ScannerConnection(port, response_timeout=config.response_timeout)
    try:
        controller = ScannerController(conn, config=config)
        try:
            controller.initialize()
        except TransportError as exc:
            logger.error("Cannot initialize scanner: %s", exc)
            return 1
        Console(controller).run()
    finally:
        conn.close()
    return 0
