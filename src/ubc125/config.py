"""Configuration for the scanner client and its network service."""

from __future__ import annotations

from dataclasses import dataclass

from ubc125.connection import DEFAULT_RESPONSE_TIMEOUT
from ubc125.scheduler import DEFAULT_MAX_FETCH_RETRIES
from ubc125.serial_port import DEFAULT_BAUDRATE, DEFAULT_POLL_TIMEOUT

DEFAULT_DEVICE_PATH = "/dev/ttyACM0"
DEFAULT_SERVER_ADDR = "127.0.0.1:50051"


@dataclass(frozen=True)
class ScannerConfig:
    """Settings for talking to one scanner.

    Attributes:
        device_path: Serial device of the scanner.
        baudrate: Serial line speed.
        response_timeout: Seconds to wait for a response terminator.
        port_poll_timeout: Seconds a single serial read may block.
        status_poll_interval: Seconds between live status polls while
            monitoring.
        busy_poll_delay: Seconds to wait for input while channel fetches are
            pending.
        idle_poll_delay: Seconds to wait for input otherwise.
        max_fetch_retries: Decode failures tolerated per channel before the
            slot is marked unavailable (None retries forever).
    """

    device_path: str = DEFAULT_DEVICE_PATH
    baudrate: int = DEFAULT_BAUDRATE
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    port_poll_timeout: float = DEFAULT_POLL_TIMEOUT
    status_poll_interval: float = 0.25
    busy_poll_delay: float = 0.001
    idle_poll_delay: float = 0.05
    max_fetch_retries: int | None = DEFAULT_MAX_FETCH_RETRIES

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.device_path:
            raise ValueError("device_path must be non-empty")
        if self.baudrate <= 0:
            raise ValueError("baudrate must be positive")
        if self.response_timeout <= 0:
            raise ValueError("response_timeout must be positive")
        if self.port_poll_timeout <= 0:
            raise ValueError("port_poll_timeout must be positive")
        if self.status_poll_interval <= 0:
            raise ValueError("status_poll_interval must be positive")
        if self.busy_poll_delay < 0 or self.idle_poll_delay < 0:
            raise ValueError("poll delays must be non-negative")
        if self.max_fetch_retries is not None and self.max_fetch_retries < 1:
            raise ValueError("max_fetch_retries must be >= 1 or None")


@dataclass(frozen=True)
class ServiceConfig:
    """Bind address of the network service.

    Attributes:
        host: Interface to bind to.
        port: TCP port to listen on.
    """

    host: str = "127.0.0.1"
    port: int = 50051

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.host:
            raise ValueError("host must be non-empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be 1-65535, got {self.port}")

    @classmethod
    def from_address(cls, address: str) -> ServiceConfig:
        """Create config from a ``HOST:PORT`` string.

        Args:
            address: Address like ``"127.0.0.1:50051"`` or ``"[::1]:50051"``.

        Returns:
            ServiceConfig instance.

        Raises:
            ValueError: If the address has no port or the port is not an
                integer.
        """
        host, sep, port = address.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Expected HOST:PORT, got {address!r}")
        try:
            port_number = int(port)
        except ValueError:
            raise ValueError(f"Invalid port in {address!r}") from None
        return cls(host=host.strip("[]"), port=port_number)
