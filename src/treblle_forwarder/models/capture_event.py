"""
Inbound capture event models.

One capture event describes a single request/response pair intercepted by
the gateway. Only minimal shape checks apply: missing, null or mistyped
fields fall back to their defaults, scalars are rendered as text where text
is expected and text is read as a number where a number is expected.
"""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

TREBLLE_LOG_EVENT = "treblle_log"


def _leaf_int(value: Any) -> int:
    """Read a leaf as an integer, 0 when it is not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return 0
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return 0
    return 0


def _leaf_text(value: Any) -> Any:
    """Render a scalar leaf as text; containers read as empty text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return ""
    return value


class CaptureSection(BaseModel):
    """Base for every inbound section: frozen, lenient, null means default."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def lenient_value(cls, v: Any, info: ValidationInfo) -> Any:
        if info.field_name is None:
            return v
        field = cls.model_fields[info.field_name]
        if v is None:
            return field.get_default(call_default_factory=True)

        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, CaptureSection):
            if isinstance(v, (Mapping, annotation)):
                return v
            return field.get_default(call_default_factory=True)
        if annotation is int:
            return _leaf_int(v)
        if annotation is str:
            return _leaf_text(v)
        return v


class CaptureOperatingSystem(CaptureSection):
    name: str = "Unknown"
    release: str = "Unknown"
    architecture: str = "Unknown"


class CaptureServer(CaptureSection):
    timezone: str = "UTC"
    signature: str = ""
    protocol: str = "https"
    encoding: str = "UTF-8"
    os: CaptureOperatingSystem = Field(default_factory=CaptureOperatingSystem)


class CaptureRequest(CaptureSection):
    timestamp: str = ""
    method: str = ""
    ip_address: str = ""
    original_url: str = ""
    headers: str = Field(default="", description="Delimited k:v;;k:v header string")
    body: str = Field(default="", description="Base64 body, truncated upstream")


class CaptureResponse(CaptureSection):
    timestamp: str = ""
    status_code: int = 0
    body_length: int = Field(default=0, description="Byte length before truncation")
    headers: str = ""
    body: str = ""


class RawCaptureEvent(CaptureSection):
    """A raw traffic-capture event as received from the stream."""

    event_type: str = ""
    internal_id: str = ""
    server: CaptureServer = Field(default_factory=CaptureServer)
    request: CaptureRequest = Field(default_factory=CaptureRequest)
    response: CaptureResponse = Field(default_factory=CaptureResponse)
