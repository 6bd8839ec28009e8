"""Tests for console rendering and key handling."""

from __future__ import annotations

import curses
from unittest.mock import MagicMock, patch

import pytest

from ubc125 import console
from ubc125.config import ScannerConfig
from ubc125.connection import ScannerConnection
from ubc125.console import handle_key, render_lines
from ubc125.controller import ScannerController
from ubc125.emulator import ScannerEmulator
from ubc125.errors import TransportError
from ubc125.types import ConfirmingDelete, EditField, Editing, Idle


class FrozenClock:
    def __call__(self) -> float:
        return 0.0


@pytest.fixture
def controller(connection: ScannerConnection) -> ScannerController:
    ctrl = ScannerController(connection, clock=FrozenClock())
    ctrl.initialize()
    return ctrl


def _mock_controller(view: int = 0, input_state: object = None) -> MagicMock:
    ctrl = MagicMock(spec=ScannerController)
    ctrl.view = view
    ctrl.input_state = input_state if input_state is not None else Idle()
    return ctrl


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRenderMonitor:
    """Tests for the monitor view layout."""

    def test_tab_bar(self, controller: ScannerController) -> None:
        lines = render_lines(controller.snapshot())
        assert lines[0].startswith("[Monitor] | Bank 1 |")

    def test_identification(self, controller: ScannerController) -> None:
        lines = render_lines(controller.snapshot())
        assert "Model:     MDL,UBC125XLT" in lines
        assert "Squelch:   SQL,2" in lines

    def test_live_status(self, controller: ScannerController, emulator: ScannerEmulator) -> None:
        emulator.set_receiving(52)
        controller.tick()
        lines = render_lines(controller.snapshot())
        assert "Bank:      2" in lines
        assert "Frequency: 123.9750" in lines
        assert "Channel:   BHX RADAR" in lines
        assert "Signal:    DETECTED" in lines

    def test_disabled_bank_flag(self, controller: ScannerController) -> None:
        controller.toggle_bank(2)
        lines = render_lines(controller.snapshot())
        assert "Banks: [1]  2  [3]" in "\n".join(lines)

    def test_status_line(self, controller: ScannerController) -> None:
        lines = render_lines(controller.snapshot(), "Error: device disconnected")
        assert lines[-1] == "Status: Ready (Monitor)  Error: device disconnected"

    def test_status_line_shows_raw_scan_line(
        self, controller: ScannerController, emulator: ScannerEmulator
    ) -> None:
        emulator.set_receiving(52)
        controller.tick()
        lines = render_lines(controller.snapshot())
        assert lines[-1] == "Status: GLG,01239750,AM,,0,,,BHX RADAR,1,0,,52, (Monitor)"


class TestRenderBank:
    """Tests for the bank view layout."""

    def test_rows(self, controller: ScannerController) -> None:
        controller.select_view(1)
        controller.tick()
        lines = render_lines(controller.snapshot())
        selected = [line for line in lines if line.startswith(">> ")]
        assert len(selected) == 1
        assert "TWR" in selected[0]
        assert "118.1" in selected[0]
        assert any(line.strip().startswith("2  Loading...") for line in lines)

    def test_loading_status(self, controller: ScannerController) -> None:
        controller.select_view(1)
        lines = render_lines(controller.snapshot())
        assert lines[-1] == "Status: Loading... 50 remaining (Remote (PRG))"

    def test_unavailable_slot(self, controller: ScannerController) -> None:
        controller.state.mark_unavailable(3)
        controller.select_view(1)
        lines = render_lines(controller.snapshot())
        assert any("3  Unavailable" in line for line in lines)

    def test_delete_prompt(self, controller: ScannerController) -> None:
        controller.select_view(1)
        controller.request_delete()
        lines = render_lines(controller.snapshot())
        assert "Delete channel 1? (y) Yes / (n) No" in lines

    def test_edit_form(self, controller: ScannerController) -> None:
        controller.select_view(1)
        controller.tick()
        controller.begin_edit()
        lines = render_lines(controller.snapshot())
        assert "Edit channel 1" in lines
        assert "  Frequency (MHz): 118.1_" in lines
        assert "  Name:            TWR" in lines


class TestRenderHeight:
    """Tests for fitting a bank view onto a short screen."""

    @staticmethod
    def _select_row(controller: ScannerController, row: int) -> None:
        controller.select_view(1)
        for _ in range(row):
            controller.next_row()

    def test_unlimited_height_keeps_every_row(self, controller: ScannerController) -> None:
        controller.select_view(1)
        lines = render_lines(controller.snapshot())
        assert len(lines) == 4 + 50 + 3

    def test_delete_prompt_fits_with_selection(self, controller: ScannerController) -> None:
        self._select_row(controller, 31)
        controller.request_delete()

        lines = render_lines(controller.snapshot(), height=23)

        assert len(lines) == 23
        assert any(line.startswith(">>  32  ") for line in lines)
        assert "Delete channel 32? (y) Yes / (n) No" in lines
        assert lines[-1].startswith("Status: ")

    def test_edit_form_fits(self, controller: ScannerController) -> None:
        self._select_row(controller, 49)
        controller.begin_edit()

        lines = render_lines(controller.snapshot(), height=23)

        assert len(lines) == 23
        assert any(line.startswith(">>  50  ") for line in lines)
        assert "Edit channel 50" in lines
        assert lines[-1].startswith("Status: ")

    def test_first_row_window(self, controller: ScannerController) -> None:
        controller.select_view(1)
        lines = render_lines(controller.snapshot(), height=20)
        rows = [line for line in lines if line[3:6].strip().isdigit()]
        assert rows[0].startswith(">>    1  ")
        assert len(rows) == 20 - 4 - 3

    def test_tiny_screen_still_shows_selection(self, controller: ScannerController) -> None:
        self._select_row(controller, 10)
        lines = render_lines(controller.snapshot(), height=3)
        assert [line for line in lines if line.startswith(">> ")] == [">>  11  Loading..."]


# ---------------------------------------------------------------------------
# Key handling
# ---------------------------------------------------------------------------


class TestMonitorKeys:
    """Tests for keys on the monitor tab."""

    def test_quit(self) -> None:
        assert handle_key(_mock_controller(), ord("q")) is False

    @pytest.mark.parametrize(("char", "bank"), [("1", 1), ("5", 5), ("9", 9), ("0", 10)])
    def test_digits_toggle_banks(self, char: str, bank: int) -> None:
        ctrl = _mock_controller()
        assert handle_key(ctrl, ord(char))
        ctrl.toggle_bank.assert_called_once_with(bank)

    def test_scan_and_hold(self) -> None:
        ctrl = _mock_controller()
        handle_key(ctrl, ord("s"))
        handle_key(ctrl, ord("h"))
        ctrl.resume_scan.assert_called_once()
        ctrl.hold_scan.assert_called_once()

    def test_tabs(self) -> None:
        ctrl = _mock_controller()
        handle_key(ctrl, curses.KEY_RIGHT)
        handle_key(ctrl, curses.KEY_LEFT)
        ctrl.next_view.assert_called_once()
        ctrl.previous_view.assert_called_once()

    def test_row_keys_ignored(self) -> None:
        ctrl = _mock_controller()
        handle_key(ctrl, ord("j"))
        handle_key(ctrl, ord("d"))
        ctrl.next_row.assert_not_called()
        ctrl.request_delete.assert_not_called()


class TestBankKeys:
    """Tests for keys on a bank tab."""

    @pytest.mark.parametrize("key", [ord("j"), curses.KEY_DOWN])
    def test_down(self, key: int) -> None:
        ctrl = _mock_controller(view=1)
        handle_key(ctrl, key)
        ctrl.next_row.assert_called_once()

    @pytest.mark.parametrize("key", [ord("k"), curses.KEY_UP])
    def test_up(self, key: int) -> None:
        ctrl = _mock_controller(view=1)
        handle_key(ctrl, key)
        ctrl.previous_row.assert_called_once()

    @pytest.mark.parametrize("key", [ord("e"), 10, 13])
    def test_edit(self, key: int) -> None:
        ctrl = _mock_controller(view=1)
        handle_key(ctrl, key)
        ctrl.begin_edit.assert_called_once()

    def test_delete(self) -> None:
        ctrl = _mock_controller(view=1)
        handle_key(ctrl, ord("d"))
        ctrl.request_delete.assert_called_once()

    def test_digits_ignored(self) -> None:
        ctrl = _mock_controller(view=1)
        handle_key(ctrl, ord("3"))
        ctrl.toggle_bank.assert_not_called()


class TestPromptKeys:
    """Tests for keys while confirming a delete or editing."""

    def test_confirm(self) -> None:
        ctrl = _mock_controller(view=1, input_state=ConfirmingDelete(1))
        handle_key(ctrl, ord("y"))
        ctrl.confirm_delete.assert_called_once()

    @pytest.mark.parametrize("key", [ord("n"), 27])
    def test_decline(self, key: int) -> None:
        ctrl = _mock_controller(view=1, input_state=ConfirmingDelete(1))
        handle_key(ctrl, key)
        ctrl.cancel.assert_called_once()
        ctrl.confirm_delete.assert_not_called()

    def test_quit_key_ignored_while_confirming(self) -> None:
        ctrl = _mock_controller(view=1, input_state=ConfirmingDelete(1))
        assert handle_key(ctrl, ord("q")) is True

    def test_typing_q_while_editing(self) -> None:
        ctrl = _mock_controller(view=1, input_state=Editing(1))
        assert handle_key(ctrl, ord("q")) is True
        ctrl.type_char.assert_called_once_with("q")

    @pytest.mark.parametrize(
        ("key", "method"),
        [
            (27, "cancel"),
            (9, "toggle_field"),
            (10, "commit_edit"),
            (curses.KEY_ENTER, "commit_edit"),
            (127, "backspace"),
            (curses.KEY_BACKSPACE, "backspace"),
        ],
    )
    def test_edit_keys(self, key: int, method: str) -> None:
        ctrl = _mock_controller(view=1, input_state=Editing(1, active_field=EditField.NAME))
        handle_key(ctrl, key)
        getattr(ctrl, method).assert_called_once()
        ctrl.type_char.assert_not_called()

    def test_unknown_input_state_ignores_keys(self) -> None:
        ctrl = _mock_controller(view=1, input_state=object())
        assert handle_key(ctrl, ord("q")) is True
        assert handle_key(ctrl, ord("d")) is True
        ctrl.request_delete.assert_not_called()

    def test_arrow_keys_not_typed(self) -> None:
        ctrl = _mock_controller(view=1, input_state=Editing(1))
        handle_key(ctrl, curses.KEY_DOWN)
        ctrl.type_char.assert_not_called()

    def test_edit_round_trip(
        self, controller: ScannerController, emulator: ScannerEmulator
    ) -> None:
        controller.select_view(1)
        controller.tick()
        for key in [10, 127, 127, 127, 127, 127, *b"121.5", 9, 127, 127, 127, *b"GND", 10]:
            handle_key(controller, key)
        assert emulator.channel_fields(1) == ("GND", "01215000", "AM")


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class TestRun:
    """Tests for console.run."""

    def test_open_failure_returns_error(self) -> None:
        with patch.object(console, "SerialPort") as mock_port_cls:
            mock_port_cls.return_value.open.side_effect = TransportError("no such device")
            assert console.run(ScannerConfig()) == 1

    def test_initialize_failure_closes_port(self) -> None:
        with patch.object(console, "SerialPort") as mock_port_cls, patch.object(
            console, "ScannerController"
        ) as mock_controller_cls:
            mock_controller_cls.return_value.initialize.side_effect = TransportError("timeout")
            assert console.run(ScannerConfig()) == 1
        mock_port_cls.return_value.close.assert_called_once()

    def test_runs_console_and_closes(self) -> None:
        with patch.object(console, "SerialPort") as mock_port_cls, patch.object(
            console, "ScannerController"
        ), patch.object(console, "Console") as mock_console_cls:
            assert console.run(ScannerConfig()) == 0
        mock_console_cls.return_value.run.assert_called_once()
        mock_port_cls.return_value.close.assert_called_once()
