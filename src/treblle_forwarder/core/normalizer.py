"""
Payload normalizer.

Turns one raw capture event into the Treblle payload:
- server and OS details with documented fallbacks
- request/response headers parsed from the delimited wire format
- base64 JSON bodies decoded leniently (a bad body never fails the event)
- load time derived from the two capture timestamps
- an error record for 4xx/5xx responses
"""

import base64
import binascii
import json
from typing import Any, List, Mapping, Optional, Tuple, Union

import structlog
from pydantic import ValidationError

from ..models.capture_event import CaptureRequest, CaptureResponse, CaptureServer, RawCaptureEvent
from ..models.payload import (
    Data,
    OperatingSystem,
    Request,
    Response,
    RuntimeErrorInfo,
    Server,
    TrebllePayload,
)
from .exceptions import NormalizationError
from .headers import lookup_header, parse_headers
from .metrics import MetricsCollector
from .timestamps import elapsed_micros, format_timestamp

logger = structlog.get_logger(__name__)

ERROR_MESSAGE_FIELDS = ("error", "message", "detail")

_MISSING = object()


class BodyDecodeError(ValueError):
    """Raised when a captured body is not base64-encoded JSON."""


def decode_body(encoded: str) -> Tuple[Any, str]:
    """
    Decode a base64 JSON body. Trailing padding is optional.

    Returns:
        The parsed JSON value and the decoded text

    Raises:
        BodyDecodeError: on invalid base64 or invalid JSON
    """
    try:
        raw = base64.b64decode(encoded + "=" * (-len(encoded) % 4), validate=True)
    except (binascii.Error, ValueError) as e:
        raise BodyDecodeError(f"invalid base64: {e}") from e

    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text), text
    except json.JSONDecodeError as e:
        raise BodyDecodeError(f"invalid JSON: {e}") from e


def as_text(value: Any) -> str:
    """Textual form of a scalar JSON value: strings as-is, others as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def embed_body(value: Any) -> Any:
    """Objects and arrays stay nested; scalar bodies become their text."""
    if isinstance(value, (dict, list)):
        return value
    return as_text(value)


def extract_error_message(encoded: str) -> str:
    """
    Derive an error message from an encoded response body.

    Looks for ``error``, ``message`` then ``detail`` (skipping nulls),
    falls back to the whole decoded body, and to the raw encoded string
    when the body cannot be decoded.
    """
    if not encoded:
        return ""

    try:
        value, text = decode_body(encoded)
    except BodyDecodeError as e:
        logger.warning("Could not decode response body for error extraction", error=str(e))
        return encoded

    if isinstance(value, dict):
        for field in ERROR_MESSAGE_FIELDS:
            found = value.get(field, _MISSING)
            if found is not _MISSING and found is not None:
                # Containers have no scalar text
                return "" if isinstance(found, (dict, list)) else as_text(found)

    return text


class PayloadNormalizer:
    """
    Builds Treblle payloads from raw capture events.

    Normalization never raises to the caller: any failure is logged and
    reported as ``None``.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None) -> None:
        self.metrics = metrics

    def normalize(
        self,
        event: Union[RawCaptureEvent, Mapping[str, Any]],
    ) -> Optional[TrebllePayload]:
        """
        Normalize one capture event.

        Args:
            event: A RawCaptureEvent or the decoded JSON object of one

        Returns:
            The payload, or None when the event could not be normalized
        """
        try:
            return self.build_payload(event)
        except NormalizationError as e:
            logger.error("Error building Treblle payload", error=str(e), details=e.details)
        except Exception as e:
            logger.error(
                "Unexpected error building Treblle payload",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

        if self.metrics:
            self.metrics.record_normalization_failure()
        return None

    def build_payload(self, event: Union[RawCaptureEvent, Mapping[str, Any]]) -> TrebllePayload:
        """
        Build the payload, raising on shape errors.

        Raises:
            NormalizationError: if the event does not have the expected shape
        """
        if not isinstance(event, RawCaptureEvent):
            try:
                event = RawCaptureEvent.model_validate(event)
            except ValidationError as e:
                raise NormalizationError(
                    "Capture event has an unexpected shape",
                    details={"errors": e.errors(include_url=False, include_input=False)},
                ) from e

        response = self._build_response(event.request, event.response)
        data = Data(
            server=self._build_server(event.server),
            request=self._build_request(event.request),
            response=response,
            errors=self._build_errors(event.response),
        )

        return TrebllePayload(internal_id=event.internal_id, data=data)

    def _build_server(self, server: CaptureServer) -> Server:
        return Server(
            timezone=server.timezone,
            signature=server.signature,
            protocol=server.protocol,
            encoding=server.encoding,
            os=OperatingSystem(
                name=server.os.name,
                release=server.os.release,
                architecture=server.os.architecture,
            ),
        )

    def _build_request(self, request: CaptureRequest) -> Request:
        headers = parse_headers(request.headers)

        return Request(
            timestamp=format_timestamp(request.timestamp),
            method=request.method,
            ip=request.ip_address,
            url=request.original_url,
            user_agent=lookup_header(headers, "user-agent"),
            headers=headers,
            body=self._decode_body_or_empty(request.body, "request"),
        )

    def _build_response(self, request: CaptureRequest, response: CaptureResponse) -> Response:
        load_time = elapsed_micros(request.timestamp, response.timestamp)

        return Response(
            code=response.status_code,
            size=response.body_length,
            headers=parse_headers(response.headers),
            load_time=float(max(0, load_time)),
            body=self._decode_body_or_empty(response.body, "response"),
        )

    def _build_errors(self, response: CaptureResponse) -> List[RuntimeErrorInfo]:
        status_code = response.status_code
        if not 400 <= status_code < 600:
            return []

        message = extract_error_message(response.body)
        logger.info("Added error for failed API call", status_code=status_code, message=message)
        return [RuntimeErrorInfo(message=message)]

    def _decode_body_or_empty(self, encoded: str, section: str) -> Any:
        if not encoded:
            return {}

        try:
            value, _ = decode_body(encoded)
        except BodyDecodeError as e:
            logger.warning("Could not decode body", section=section, error=str(e))
            return {}

        return embed_body(value)
