"""Tests for the incremental channel fetch scheduler."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from ubc125.connection import ScannerConnection
from ubc125.emulator import ScannerEmulator
from ubc125.errors import TransportError, ValidationError
from ubc125.scheduler import FetchScheduler
from ubc125.state import DeviceState
from ubc125.types import Channel, Mode, SlotState

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def state() -> DeviceState:
    return DeviceState()


@pytest.fixture
def scheduler(connection: ScannerConnection, state: DeviceState) -> FetchScheduler:
    """Scheduler over the emulator, already in program mode."""
    connection.enter_program_mode()
    return FetchScheduler(connection, state, max_retries=3)


# ---------------------------------------------------------------------------
# Queue management
# ---------------------------------------------------------------------------


class TestEnqueue:
    """Tests for enqueue and enqueue_bank."""

    def test_enqueue_appends(self, scheduler: FetchScheduler) -> None:
        assert scheduler.enqueue(5)
        assert scheduler.enqueue(2)
        assert scheduler.pending == (5, 2)
        assert len(scheduler) == 2

    def test_enqueue_is_idempotent(self, scheduler: FetchScheduler) -> None:
        scheduler.enqueue(5)
        assert not scheduler.enqueue(5)
        assert scheduler.pending == (5,)

    @pytest.mark.parametrize("index", [0, 501])
    def test_enqueue_invalid_index(self, scheduler: FetchScheduler, index: int) -> None:
        with pytest.raises(ValidationError):
            scheduler.enqueue(index)

    def test_enqueue_bank(self, scheduler: FetchScheduler) -> None:
        assert scheduler.enqueue_bank(2) == 50
        assert scheduler.pending == tuple(range(51, 101))

    def test_enqueue_bank_skips_loaded(
        self, scheduler: FetchScheduler, state: DeviceState
    ) -> None:
        state.apply_channel(Channel(51, "A", "118.1", "AM"))
        state.apply_channel(Channel(100, "B", "118.2", "AM"))
        assert scheduler.enqueue_bank(2) == 48
        assert 51 not in scheduler.pending
        assert 100 not in scheduler.pending

    def test_enqueue_bank_twice_adds_nothing(self, scheduler: FetchScheduler) -> None:
        scheduler.enqueue_bank(1)
        assert scheduler.enqueue_bank(1) == 0
        assert len(scheduler) == 50

    def test_enqueue_bank_requeues_unavailable(
        self, scheduler: FetchScheduler, state: DeviceState
    ) -> None:
        state.mark_unavailable(3)
        scheduler.enqueue_bank(1)
        assert 3 in scheduler.pending

    def test_clear(self, scheduler: FetchScheduler) -> None:
        scheduler.enqueue_bank(1)
        scheduler.clear()
        assert scheduler.pending == ()

    def test_invalid_retry_limit(self, connection: ScannerConnection, state: DeviceState) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            FetchScheduler(connection, state, max_retries=0)


# ---------------------------------------------------------------------------
# Ticks
# ---------------------------------------------------------------------------


class TestTick:
    """Tests for FetchScheduler.tick."""

    def test_idle_when_monitoring(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator
    ) -> None:
        scheduler.enqueue(1)
        emulator.received.clear()
        assert scheduler.tick(Mode.MONITORING) is None
        assert emulator.received == []
        assert scheduler.pending == (1,)

    def test_idle_when_empty(self, scheduler: FetchScheduler, emulator: ScannerEmulator) -> None:
        emulator.received.clear()
        assert scheduler.tick(Mode.CONFIGURING) is None
        assert emulator.received == []

    def test_fetches_one_channel_per_tick(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        scheduler.enqueue(1)
        scheduler.enqueue(2)
        emulator.received.clear()

        assert scheduler.tick(Mode.CONFIGURING) == 1
        assert emulator.received == ["CIN,1"]
        assert state.channel(1) == Channel(1, "TWR", "118.1", "AM")
        assert scheduler.pending == (2,)

    def test_empty_slot_is_loaded(
        self, scheduler: FetchScheduler, state: DeviceState
    ) -> None:
        scheduler.enqueue(3)
        scheduler.tick(Mode.CONFIGURING)
        assert state.slot_state(3) is SlotState.LOADED
        assert state.channel(3) == Channel(3, "", "", "AUTO")

    def test_loads_whole_bank(
        self, scheduler: FetchScheduler, state: DeviceState
    ) -> None:
        scheduler.enqueue_bank(2)
        while scheduler.tick(Mode.CONFIGURING) is not None:
            pass
        assert len(scheduler) == 0
        assert all(state.slot_state(i) is SlotState.LOADED for i in range(51, 101))
        channel = state.channel(52)
        assert channel is not None
        assert channel.name == "BHX RADAR"

    def test_malformed_response_requeued_at_tail(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        scheduler.enqueue(2)

        assert scheduler.tick(Mode.CONFIGURING) == 1
        assert scheduler.pending == (2, 1)
        assert state.slot_state(1) is SlotState.UNKNOWN

    def test_gives_up_after_retry_limit(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        for _ in range(3):
            scheduler.tick(Mode.CONFIGURING)
        assert scheduler.pending == ()
        assert state.slot_state(1) is SlotState.UNAVAILABLE

    def test_retry_after_bank_revisit(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        for _ in range(3):
            scheduler.tick(Mode.CONFIGURING)

        emulator.set_malformed_channel(1, False)
        scheduler.enqueue_bank(1)
        while scheduler.pending and scheduler.pending[0] != 1:
            scheduler.tick(Mode.CONFIGURING)
        scheduler.tick(Mode.CONFIGURING)
        assert state.slot_state(1) is SlotState.LOADED

    def test_unbounded_retries(
        self, connection: ScannerConnection, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        connection.enter_program_mode()
        scheduler = FetchScheduler(connection, state, max_retries=None)
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        for _ in range(20):
            scheduler.tick(Mode.CONFIGURING)
        assert scheduler.pending == (1,)
        assert state.slot_state(1) is SlotState.UNKNOWN

    def test_success_resets_failure_count(
        self, scheduler: FetchScheduler, emulator: ScannerEmulator, state: DeviceState
    ) -> None:
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        scheduler.tick(Mode.CONFIGURING)
        scheduler.tick(Mode.CONFIGURING)
        emulator.set_malformed_channel(1, False)
        scheduler.tick(Mode.CONFIGURING)
        assert state.slot_state(1) is SlotState.LOADED

        state.clear_channel(1)
        emulator.set_malformed_channel(1)
        scheduler.enqueue(1)
        scheduler.tick(Mode.CONFIGURING)
        scheduler.tick(Mode.CONFIGURING)
        assert scheduler.pending == (1,)

    def test_transport_error_keeps_index_and_propagates(self, state: DeviceState) -> None:
        conn = MagicMock(spec=ScannerConnection)
        conn.read_channel.side_effect = TransportError("device disconnected")
        scheduler = FetchScheduler(conn, state)
        scheduler.enqueue(1)

        with pytest.raises(TransportError):
            scheduler.tick(Mode.CONFIGURING)
        assert scheduler.pending == (1,)
        assert state.slot_state(1) is SlotState.UNKNOWN
