"""Exception types for ubc125.

All ubc125 exceptions inherit from ScannerError, allowing consumers to catch
every client-specific error with a single except clause.

Exception hierarchy:
    ScannerError (base)
    +-- TransportError: Serial write or I/O failures
    |   +-- TransportWriteError: Command not written in full
    +-- DecodeError: Malformed or unexpected response shape
    +-- ValidationError: Caller-supplied value outside the protocol range
    +-- NotImplementedOperation: Service operation with no implementation yet
"""


class ScannerError(Exception):
    """Base exception for all ubc125 errors."""


class TransportError(ScannerError):
    """Raised when the byte stream to the scanner fails.

    Covers failures to open the port, I/O errors while reading, and write
    failures. Transport errors are always surfaced to the caller; the framer
    never swallows them.
    """


class TransportWriteError(TransportError):
    """Raised when a command could not be written to the port in full."""


class DecodeError(ScannerError, ValueError):
    """Raised when a response does not have the expected shape.

    Decode failures are not fatal. Each caller picks its own policy: a live
    scan status that fails to decode is ignored, a channel fetch is requeued,
    and a bank mask keeps its previous value.

    Attributes:
        response: The response line that failed to decode.
    """

    def __init__(self, message: str, response: str = "") -> None:
        """Initialize the decode error.

        Args:
            message: Description of the mismatch.
            response: The offending response line.
        """
        self.response = response
        super().__init__(message)


class ValidationError(ScannerError, ValueError):
    """Raised when a caller-supplied value is outside its protocol range.

    Validation happens before any command is sent to the scanner.
    """


class NotImplementedOperation(ScannerError):
    """Raised by the network service for operations that are not available."""
