from __future__ import annotations

"""Validation shared by the inspect and frame routes.

parse_inspect_request() returns either a parsed request plus decoded image
bytes, or a ready-to-send 400 response.
"""

import binascii
from typing import Any, Optional

from api.http import decode_json_body, response
from api.schemas import ErrorCode, ImageEncoding, ImageInput, InspectRequest, error_body
from domain.types import Sensitivity
from services.inspection.buffer import load_image_from_base64


ParseResult = tuple[Optional[InspectRequest], Optional[bytes], Optional[dict[str, Any]]]


def _fail(code: ErrorCode, message: str, field: Optional[str] = None) -> ParseResult:
    return None, None, response(400, error_body(code, message, field))


def parse_inspect_request(event: dict[str, Any], require_session: bool = False) -> ParseResult:
    try:
        payload = decode_json_body(event)
    except (ValueError, UnicodeDecodeError, binascii.Error):
        return _fail(ErrorCode.INVALID_REQUEST_FORMAT, "Invalid JSON body.")

    if not isinstance(payload, dict):
        return _fail(ErrorCode.INVALID_REQUEST_FORMAT, "Request body must be a JSON object.")

    image = payload.get("image")
    if not isinstance(image, dict):
        return _fail(ErrorCode.MISSING_REQUIRED_FIELD, "Missing required field: image.", "image")

    if image.get("encoding") != ImageEncoding.BASE64.value:
        return _fail(
            ErrorCode.INVALID_FIELD_VALUE,
            "Only image.encoding='base64' is supported.",
            "image.encoding",
        )

    data = image.get("data")
    if not isinstance(data, str) or not data:
        return _fail(ErrorCode.MISSING_REQUIRED_FIELD, "Missing required field: image.data.", "image.data")

    try:
        image_bytes = load_image_from_base64(data)
    except (binascii.Error, ValueError):
        return _fail(ErrorCode.INVALID_IMAGE_FORMAT, "image.data must be valid base64.", "image.data")

    sensitivity = payload.get("sensitivity", Sensitivity.MEDIUM.value)
    if sensitivity not in Sensitivity.values():
        return _fail(
            ErrorCode.INVALID_FIELD_VALUE,
            f"sensitivity must be one of {', '.join(Sensitivity.values())}.",
            "sensitivity",
        )

    pixel_to_mm = payload.get("pixel_to_mm", 0.1)
    if isinstance(pixel_to_mm, bool) or not isinstance(pixel_to_mm, (int, float)) or pixel_to_mm <= 0:
        return _fail(ErrorCode.INVALID_FIELD_VALUE, "pixel_to_mm must be a positive number.", "pixel_to_mm")

    session_id = payload.get("session_id")
    if require_session and (not isinstance(session_id, str) or not session_id):
        return _fail(ErrorCode.MISSING_REQUIRED_FIELD, "Missing required field: session_id.", "session_id")

    client_reference = payload.get("client_reference")
    if client_reference is not None and not isinstance(client_reference, str):
        client_reference = None

    request = InspectRequest(
        image=ImageInput(encoding=ImageEncoding.BASE64.value, data=data, media_type=image.get("media_type")),
        sensitivity=sensitivity,
        pixel_to_mm=float(pixel_to_mm),
        session_id=session_id if require_session else None,
        reset=payload.get("reset") is True,
        flow=payload.get("flow") is True,
        end=payload.get("end") is True,
        client_reference=client_reference,
    )
    return request, image_bytes, None
