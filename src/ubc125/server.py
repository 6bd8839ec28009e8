"""FastAPI server exposing the scanner over HTTP.

The service shares one scanner connection between concurrent requests.
Endpoints are plain functions, which FastAPI runs in its thread pool; each
request holds the :class:`SharedScanner` lock for its whole command
sequence, so exchanges never interleave on the serial line.

Operations the scanner supports but the service does not offer yet answer
HTTP 501.
"""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncGenerator, Iterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ubc125.config import ScannerConfig, ServiceConfig
from ubc125.connection import ScannerConnection
from ubc125.errors import NotImplementedOperation, TransportError, ValidationError
from ubc125.models import (
    AudioLevelRequest,
    AudioSettings,
    ErrorResponse,
    HealthResponse,
    StringResult,
)
from ubc125.serial_port import SerialPort

logger = logging.getLogger(__name__)


class SharedScanner:
    """Scanner connection guarded by a lock.

    Args:
        connection: Open scanner connection.
        device_path: Serial device the connection talks to.
    """

    def __init__(self, connection: ScannerConnection, device_path: str = "") -> None:
        self._conn = connection
        self._lock = threading.Lock()
        self.device_path = device_path

    @contextmanager
    def session(self) -> Iterator[ScannerConnection]:
        """Hold the lock for a sequence of exchanges.

        Example:
            >>> with shared.session() as conn:
            ...     volume = conn.get_volume()
            ...     squelch = conn.get_squelch()
        """
        with self._lock:
            yield self._conn

    def close(self) -> None:
        """Close the connection once no exchange is in flight."""
        with self._lock:
            self._conn.close()


# Global scanner instance (set during lifespan)
_scanner: SharedScanner | None = None


def _get_scanner() -> SharedScanner:
    """Get the global scanner instance."""
    if _scanner is None:
        raise TransportError("Scanner not connected")
    return _scanner


def create_app(scanner: SharedScanner | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        scanner: Shared scanner to serve. Installed at startup and closed at
            shutdown. If None, the scanner must be set before requests.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        global _scanner  # pylint: disable=global-statement

        if scanner is not None:
            _scanner = scanner
            logger.info("Serving scanner on %s", scanner.device_path or "(unknown device)")

        yield

        if _scanner is not None:
            logger.info("Closing scanner connection")
            _scanner.close()
            _scanner = None

    app = FastAPI(
        title="UBC125 Scanner API",
        description="Remote control of a Uniden UBC125XLT scanner",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(TransportError, _transport_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotImplementedOperation, _not_implemented)

    # Register routes
    app.add_api_route("/health", _health, methods=["GET"], response_model=HealthResponse)
    app.add_api_route("/system/model", _model, methods=["GET"], response_model=StringResult)
    app.add_api_route(
        "/system/firmware", _firmware, methods=["GET"], response_model=StringResult
    )
    app.add_api_route("/audio", _audio, methods=["GET"], response_model=AudioSettings)
    app.add_api_route(
        "/audio/volume", _set_volume, methods=["PUT"], response_model=StringResult
    )
    app.add_api_route(
        "/audio/squelch", _set_squelch, methods=["PUT"], response_model=StringResult
    )
    app.add_api_route("/scan/start", _start_scan, methods=["POST"])
    app.add_api_route("/scan/hold", _hold_scan, methods=["POST"])
    app.add_api_route("/banks", _get_banks, methods=["GET"])
    app.add_api_route("/banks", _set_banks, methods=["PUT"])
    app.add_api_route("/status", _status, methods=["GET"])
    app.add_api_route("/channels/{index}", _get_channel, methods=["GET"])
    app.add_api_route("/channels/{index}", _set_channel, methods=["PUT"])
    app.add_api_route("/channels/{index}", _delete_channel, methods=["DELETE"])

    return app


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


async def _transport_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content=ErrorResponse(detail=str(exc)).model_dump())


async def _validation_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(detail=str(exc)).model_dump())


async def _not_implemented(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=501, content=ErrorResponse(detail=str(exc)).model_dump())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _health() -> HealthResponse:
    """Health check endpoint."""
    scanner = _get_scanner()
    return HealthResponse(status="ok", device=scanner.device_path)


def _model() -> StringResult:
    """Scanner model string."""
    with _get_scanner().session() as conn:
        return StringResult(result=conn.get_model())


def _firmware() -> StringResult:
    """Scanner firmware version string."""
    with _get_scanner().session() as conn:
        return StringResult(result=conn.get_firmware_version())


def _audio() -> AudioSettings:
    """Current volume and squelch, read in one locked session."""
    with _get_scanner().session() as conn:
        volume = conn.get_volume()
        squelch = conn.get_squelch()
    return AudioSettings(volume=volume, squelch=squelch)


def _set_volume(body: AudioLevelRequest) -> StringResult:
    with _get_scanner().session() as conn:
        return StringResult(result=conn.set_volume(body.level))


def _set_squelch(body: AudioLevelRequest) -> StringResult:
    with _get_scanner().session() as conn:
        return StringResult(result=conn.set_squelch(body.level))


def _start_scan() -> None:
    raise NotImplementedOperation("Starting a scan is not implemented")


def _hold_scan() -> None:
    raise NotImplementedOperation("Holding a scan is not implemented")


def _get_banks() -> None:
    raise NotImplementedOperation("Reading enabled banks is not implemented")


def _set_banks() -> None:
    raise NotImplementedOperation("Setting enabled banks is not implemented")


def _status() -> None:
    raise NotImplementedOperation("Scan status is not implemented")


def _get_channel(index: int) -> None:
    raise NotImplementedOperation(f"Reading channel {index} is not implemented")


def _set_channel(index: int) -> None:
    raise NotImplementedOperation(f"Writing channel {index} is not implemented")


def _delete_channel(index: int) -> None:
    raise NotImplementedOperation(f"Deleting channel {index} is not implemented")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def open_shared_scanner(config: ScannerConfig) -> SharedScanner:
    """Open the serial port and wrap it for shared use.

    Raises:
        TransportError: If the device cannot be opened.
    """
    port = SerialPort(
        config.device_path, baudrate=config.baudrate, poll_timeout=config.port_poll_timeout
    )
    port.open()
    conn = ScannerConnection(port, response_timeout=config.response_timeout)
    return SharedScanner(conn, config.device_path)


def run(scanner_config: ScannerConfig, service_config: ServiceConfig) -> int:
    """Open the scanner and serve it until interrupted.

    Returns:
        Exit status: 0 after a clean shutdown, 1 if the device cannot be
        opened.
    """
    try:
        shared = open_shared_scanner(scanner_config)
    except TransportError as exc:
        logger.error("Cannot open scanner: %s", exc)
        return 1

    import uvicorn  # pylint: disable=import-outside-toplevel

    app = create_app(shared)
    logger.info("Listening on %s:%d", service_config.host, service_config.port)
    uvicorn.run(app, host=service_config.host, port=service_config.port)
    return 0
