"""Tests for the command-line interface."""

from __future__ import annotations

import logging
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

from ubc125 import cli
from ubc125.config import ScannerConfig, ServiceConfig

_setup_logging = cli.setup_logging


@pytest.fixture(autouse=True)
def no_logging_setup() -> Iterator[MagicMock]:
    """Keep basicConfig from touching the test run's logging."""
    with patch.object(cli, "setup_logging") as mock_setup:
        yield mock_setup


class TestServe:
    """Tests for the serve command."""

    def test_defaults(self) -> None:
        with patch.object(cli.server, "run", return_value=0) as mock_run:
            assert cli.main(["serve"]) == 0

        mock_run.assert_called_once_with(
            ScannerConfig(device_path="/dev/ttyACM0"),
            ServiceConfig(host="127.0.0.1", port=50051),
        )

    def test_address_and_device(self) -> None:
        with patch.object(cli.server, "run", return_value=0) as mock_run:
            cli.main(["serve", "--server-addr", "0.0.0.0:6000", "--device", "/dev/ttyUSB1"])

        scanner_config, service_config = mock_run.call_args.args
        assert scanner_config.device_path == "/dev/ttyUSB1"
        assert service_config == ServiceConfig(host="0.0.0.0", port=6000)

    def test_invalid_address(self) -> None:
        with patch.object(cli.server, "run") as mock_run:
            assert cli.main(["serve", "--server-addr", "nowhere"]) == 1
        mock_run.assert_not_called()

    def test_open_failure_exit_status(self) -> None:
        with patch.object(cli.server, "run", return_value=1):
            assert cli.main(["serve"]) == 1

    def test_debug_logging(self, no_logging_setup: MagicMock) -> None:
        with patch.object(cli.server, "run", return_value=0):
            cli.main(["--debug", "serve"])
        no_logging_setup.assert_called_once_with(True)


class TestConsole:
    """Tests for the console command."""

    def test_defaults(self, no_logging_setup: MagicMock) -> None:
        with patch.object(cli.console, "run", return_value=0) as mock_run:
            assert cli.main(["console"]) == 0

        mock_run.assert_called_once_with(ScannerConfig(device_path="/dev/ttyACM0"))
        no_logging_setup.assert_called_once_with(level=logging.ERROR)

    def test_device_alias(self) -> None:
        with patch.object(cli.console, "run", return_value=0) as mock_run:
            cli.main(["console", "--console-device", "/dev/ttyACM1"])

        assert mock_run.call_args.args[0].device_path == "/dev/ttyACM1"

    def test_log_file(self, no_logging_setup: MagicMock) -> None:
        with patch.object(cli.console, "run", return_value=0):
            cli.main(["--debug", "console", "--log-file", "scanner.log"])

        no_logging_setup.assert_called_once_with(
            True, log_file="scanner.log"
        )


class TestMain:
    """Tests for argument handling."""

    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main([]) == 1
        assert "console" in capsys.readouterr().out

    def test_unknown_command(self) -> None:
        with pytest.raises(SystemExit):
            cli.main(["scan"])


class TestSetupLogging:
    """Tests for setup_logging itself."""

    def test_info_by_default(self) -> None:
        with patch.object(logging, "basicConfig") as mock_config:
            _setup_logging()
        mock_config.assert_called_once_with(
            level=logging.INFO, format=cli.LOG_FORMAT, filename=None
        )

    def test_debug(self) -> None:
        with patch.object(logging, "basicConfig") as mock_config:
            _setup_logging(True, log_file="scanner.log")
        mock_config.assert_called_once_with(
            level=logging.DEBUG, format=cli.LOG_FORMAT, filename="scanner.log"
        )

    def test_explicit_level_wins(self) -> None:
        with patch.object(logging, "basicConfig") as mock_config:
            _setup_logging(True, level=logging.ERROR)
        assert mock_config.call_args.kwargs["level"] == logging.ERROR


class TestShortFlags:
    """Tests for the single-letter option aliases."""

    def test_console_short_flags(self, no_logging_setup: MagicMock) -> None:
        with patch.object(cli.console, "run", return_value=0) as mock_run:
            cli.main(["-d", "console", "-c", "/dev/ttyACM2", "--log-file", "scanner.log"])

        assert mock_run.call_args.args[0].device_path == "/dev/ttyACM2"
        no_logging_setup.assert_called_once_with(True, log_file="scanner.log")

    def test_serve_short_flags(self) -> None:
        with patch.object(cli.server, "run", return_value=0) as mock_run:
            cli.main(["serve", "-s", "0.0.0.0:6000"])

        assert mock_run.call_args.args[1] == ServiceConfig(host="0.0.0.0", port=6000)
