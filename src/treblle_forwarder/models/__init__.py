"""
Pydantic data models package.

Contains the models for:
- Inbound capture events from the stream
- The outbound Treblle payload
"""

from .capture_event import (
    CaptureOperatingSystem,
    CaptureRequest,
    CaptureResponse,
    CaptureServer,
    RawCaptureEvent,
    TREBLLE_LOG_EVENT,
)
from .payload import (
    Data,
    OperatingSystem,
    Request,
    Response,
    RuntimeErrorInfo,
    Server,
    TrebllePayload,
)

__all__ = [
    # Inbound models
    "CaptureOperatingSystem",
    "CaptureRequest",
    "CaptureResponse",
    "CaptureServer",
    "RawCaptureEvent",
    "TREBLLE_LOG_EVENT",

    # Outbound models
    "Data",
    "OperatingSystem",
    "Request",
    "Response",
    "RuntimeErrorInfo",
    "Server",
    "TrebllePayload",
]
