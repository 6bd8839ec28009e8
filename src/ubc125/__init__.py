"""Control library for the Uniden UBC125XLT scanner.

This package talks to a UBC125XLT over its USB serial port. It includes:

- Byte stream abstraction, with a pyserial port and an in-process emulator
- Connection with request/response framing and typed command helpers
- Positional codec for channel, live scan and bank mask records
- Device state, incremental channel fetch scheduler and console controller
- Curses console and FastAPI network service

Typical usage::

    from ubc125 import SerialPort, ScannerConnection

    port = SerialPort("/dev/ttyACM0")
    port.open()
    conn = ScannerConnection(port)
    print(conn.get_model())
    print(conn.read_channel(52))
    conn.close()
"""

from ubc125.codec import (
    ScanReport,
    decode_bank_mask,
    decode_channel,
    decode_scan_status,
    encode_bank_mask,
    encode_channel_delete,
    encode_channel_read,
    encode_channel_write,
    format_channel_frequency,
    format_scan_frequency,
    normalize_frequency_input,
)
from ubc125.config import ScannerConfig, ServiceConfig
from ubc125.connection import ScannerConnection
from ubc125.controller import ConsoleSnapshot, ScannerController
from ubc125.emulator import ScannerEmulator, ScannerEmulatorConfig
from ubc125.errors import (
    DecodeError,
    NotImplementedOperation,
    ScannerError,
    TransportError,
    TransportWriteError,
    ValidationError,
)
from ubc125.scheduler import FetchScheduler
from ubc125.serial_port import SerialPort
from ubc125.state import DeviceState
from ubc125.transport import ByteStream
from ubc125.types import (
    BankMask,
    Channel,
    ConfirmingDelete,
    EditField,
    Editing,
    Idle,
    Mode,
    ScanStatus,
    SlotState,
)

__all__ = [
    # Codec
    "ScanReport",
    "decode_bank_mask",
    "decode_channel",
    "decode_scan_status",
    "encode_bank_mask",
    "encode_channel_delete",
    "encode_channel_read",
    "encode_channel_write",
    "format_channel_frequency",
    "format_scan_frequency",
    "normalize_frequency_input",
    # Configuration
    "ScannerConfig",
    "ServiceConfig",
    # Connection
    "ScannerConnection",
    # Controller
    "ConsoleSnapshot",
    "ScannerController",
    # Emulator
    "ScannerEmulator",
    "ScannerEmulatorConfig",
    # Errors
    "DecodeError",
    "NotImplementedOperation",
    "ScannerError",
    "TransportError",
    "TransportWriteError",
    "ValidationError",
    # Scheduling and state
    "DeviceState",
    "FetchScheduler",
    # Transport
    "ByteStream",
    "SerialPort",
    # Types
    "BankMask",
    "Channel",
    "ConfirmingDelete",
    "EditField",
    "Editing",
    "Idle",
    "Mode",
    "ScanStatus",
    "SlotState",
]
