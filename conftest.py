"""Root conftest.py for ubc125.

This provides shared pytest configuration and fixtures for the test suite.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config


# Make the src layout importable without an install
PROJECT_ROOT = Path(__file__).parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from ubc125.connection import ScannerConnection  # noqa: E402
from ubc125.emulator import ScannerEmulator  # noqa: E402


def pytest_configure(config: Config) -> None:
    """Register custom markers.

    Args:
        config: pytest configuration object.
    """
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring a real scanner",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


class _SteppingClock:
    """Clock that advances ``step`` seconds on every call."""

    def __init__(self, step: float) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def emulator() -> ScannerEmulator:
    """Fresh scanner emulator with a few programmed channels."""
    emu = ScannerEmulator()
    emu.set_channel(1, "TWR", "01181000", "AM")
    emu.set_channel(2, "ATIS", "01274250", "AM")
    emu.set_channel(52, "BHX RADAR", "01239750", "AM")
    return emu


@pytest.fixture
def connection(emulator: ScannerEmulator) -> ScannerConnection:
    """Connection talking to the emulator.

    The clock advances 1 ms per poll, so a missing response times out after
    about five hundred polls without sleeping.
    """
    return ScannerConnection(emulator, clock=_SteppingClock(step=0.001))
