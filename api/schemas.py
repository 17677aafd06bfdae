"""
Railscan API Schema Definitions

REST API contract for the inspection service.
Defines request, response, and error schemas for:
- POST /v1/inspect  (still image)
- POST /v1/frame    (live frame within a capture session)

VERSIONING STRATEGY:
- API version is specified in the URL path: /v1/...
- Response envelope includes 'api_version' for forward compatibility
- Breaking changes require new major version (v2, v3, etc.)

IMPORTANT DISTINCTION:
- A clean image (no defects, no motion) is a VALID outcome (HTTP 200)
- Errors are FAILURES (HTTP 4xx/5xx with ErrorResponse)
A partially failed overlay is still HTTP 200; the report carries the error.
"""

from dataclasses import dataclass, asdict
from typing import Optional
from enum import Enum


API_VERSION = "1.0"


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ImageEncoding(str, Enum):
    """
    Supported image encoding formats.
    """
    BASE64 = "base64"


class ErrorCode(str, Enum):
    """
    Machine-readable error codes for API failures.
    """
    # Request validation errors (400)
    INVALID_REQUEST_FORMAT = "INVALID_REQUEST_FORMAT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"
    INVALID_IMAGE_FORMAT = "INVALID_IMAGE_FORMAT"

    # Authentication errors (401)
    MISSING_API_KEY = "MISSING_API_KEY"
    INVALID_API_KEY = "INVALID_API_KEY"

    # Routing (404)
    NOT_FOUND = "NOT_FOUND"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

@dataclass(frozen=True)
class ImageInput:
    """
    Image data for inspection. Only base64 is accepted.
    """

    encoding: str
    """Encoding type: 'base64'."""

    data: str
    """Base64-encoded image bytes (PNG, JPEG, ...)."""

    media_type: Optional[str] = None
    """MIME type of the image (e.g., 'image/jpeg'). Informational."""

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        result = {
            'encoding': self.encoding,
            'data': self.data,
        }
        if self.media_type is not None:
            result['media_type'] = self.media_type
        return result


@dataclass(frozen=True)
class InspectRequest:
    """
    Request schema for POST /v1/inspect and POST /v1/frame.

    Headers:
        X-API-Key: Required when keys are configured.
        Content-Type: application/json
    """

    image: ImageInput
    """The image to inspect. Required."""

    sensitivity: str = "medium"
    """Defect sensitivity: 'low', 'medium' or 'high'."""

    pixel_to_mm: float = 0.1
    """Physical size of one pixel, used for crack width estimates."""

    session_id: Optional[str] = None
    """/v1/frame only: capture session whose motion history to use."""

    reset: bool = False
    """/v1/frame only: clear the session's motion history before this frame."""

    flow: bool = False
    """/v1/frame only: also estimate block optical flow against the previous frame."""

    end: bool = False
    """/v1/frame only: process this frame, then release the session's state."""

    client_reference: Optional[str] = None
    """Optional client-provided reference, echoed in the response."""

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        result = {
            'image': self.image.to_dict(),
            'sensitivity': self.sensitivity,
            'pixel_to_mm': self.pixel_to_mm,
        }
        if self.session_id is not None:
            result['session_id'] = self.session_id
            result['reset'] = self.reset
            result['flow'] = self.flow
            result['end'] = self.end
        if self.client_reference is not None:
            result['client_reference'] = self.client_reference
        return result


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

@dataclass(frozen=True)
class InspectResponse:
    """
    Response schema for successful POST /v1/inspect and POST /v1/frame.

    HTTP Status: 200 OK
    """

    api_version: str
    request_id: str
    client_reference: Optional[str]

    result: dict
    """The inspection (or frame) report as a dictionary."""

    summary: dict
    """InspectionSummary for the host's history log."""

    annotated_image_path: Optional[str] = None
    """Where the annotated overlay PNG was written, if it was produced."""

    flow_image_path: Optional[str] = None
    """/v1/frame only: where the colour-coded flow PNG was written."""

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        response = {
            'api_version': self.api_version,
            'request_id': self.request_id,
            'result': self.result,
            'summary': self.summary,
        }
        if self.client_reference is not None:
            response['client_reference'] = self.client_reference
        if self.annotated_image_path is not None:
            response['annotated_image_path'] = self.annotated_image_path
        if self.flow_image_path is not None:
            response['flow_image_path'] = self.flow_image_path
        return response


@dataclass(frozen=True)
class ErrorDetail:
    """
    Additional detail about a specific error.
    Used for field-level validation errors.
    """

    field: str
    issue: str

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class ErrorResponse:
    """
    Response schema for API errors.

    HTTP Status: 4xx or 5xx depending on error_code.
    """

    api_version: str
    request_id: Optional[str]
    error_code: str
    error_message: str
    details: Optional[tuple[ErrorDetail, ...]] = None

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        response = {
            'api_version': self.api_version,
            'error_code': self.error_code,
            'error_message': self.error_message,
        }
        if self.request_id is not None:
            response['request_id'] = self.request_id
        if self.details is not None:
            response['details'] = [d.to_dict() for d in self.details]
        return response


def error_body(code: ErrorCode, message: str, field: Optional[str] = None) -> dict:
    details = (ErrorDetail(field=field, issue=message),) if field else None
    return ErrorResponse(
        api_version=API_VERSION,
        request_id=None,
        error_code=code.value,
        error_message=message,
        details=details,
    ).to_dict()
