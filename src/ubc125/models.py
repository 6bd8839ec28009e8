"""Pydantic models for the scanner service API.

This module defines the request and response bodies of the network service.
Identification and audio values are passed through as the raw response
lines reported by the scanner.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response.

    Attributes:
        status: ``"ok"`` when a scanner connection is open.
        device: Serial device of the scanner.
    """

    status: str
    device: str


class StringResult(BaseModel):
    """Single raw response line, such as the model or firmware version."""

    result: str


class AudioSettings(BaseModel):
    """Volume and squelch settings as reported by the scanner.

    Attributes:
        volume: Raw ``VOL`` response.
        squelch: Raw ``SQL`` response.
    """

    volume: str
    squelch: str


class AudioLevelRequest(BaseModel):
    """Request body for setting the volume or squelch level.

    The range is checked by the connection rather than here, so an
    out-of-range level is reported as a validation failure of the scanner
    command (HTTP 400).
    """

    level: int = Field(description="Level, 0-15")


class ErrorResponse(BaseModel):
    """Error body returned for failed requests."""

    detail: str
