"""Lambda entrypoint for the Railscan inspection API.

Implements a minimal surface without introducing a framework.

Routes:
- GET  /v1/health
- POST /v1/inspect   still-image defect inspection
- POST /v1/frame     live frame (motion + particles + inspection) per session

Auth:
- API keys via X-API-Key header (optional in dev, enforced when
  RAILSCAN_API_KEYS is set)

Determinism:
- request_id is derived from the image content and sensitivity.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from api.http import content_hash_bytes, content_hash_str, event_method, event_path, get_header, response
from api.image_store import save_png
from api.request_parsing import parse_inspect_request
from api.schemas import API_VERSION, ErrorCode, InspectResponse, error_body
from api.handler_frame import handle_frame
from services.inspection.buffer import InvalidBufferError, load_image_from_bytes, prepare_buffer
from services.inspection.pipeline import build_summary, inspect_image


logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Auth + rate limiting (simple scaffolding)
# -----------------------------------------------------------------------------

# In-memory fixed window counter (best-effort; relies on Lambda container reuse).
_RATE_STATE: dict[str, tuple[int, int]] = {}
# key -> (window_epoch_minute, count)


def _configured_api_keys() -> tuple[str, ...]:
    raw = os.environ.get("RAILSCAN_API_KEYS", "").strip()
    if not raw:
        return ()
    return tuple(k.strip() for k in raw.split(",") if k.strip())


def _check_api_key(event: dict[str, Any]) -> Optional[dict[str, Any]]:
    keys = _configured_api_keys()
    # If keys are configured, enforce. Otherwise, allow local/dev usage.
    if not keys:
        return None

    api_key = get_header(event, "x-api-key")
    if not api_key:
        return response(401, error_body(ErrorCode.MISSING_API_KEY, "Missing API key. Provide X-API-Key header."))

    if api_key not in keys:
        return response(401, error_body(ErrorCode.INVALID_API_KEY, "Invalid API key."))

    return None


def _check_rate_limit(event: dict[str, Any]) -> Optional[dict[str, Any]]:
    raw = os.environ.get("RAILSCAN_RATE_LIMIT_PER_MIN", "").strip()
    if not raw:
        return None

    try:
        limit = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer RAILSCAN_RATE_LIMIT_PER_MIN=%r", raw)
        return None

    api_key = get_header(event, "x-api-key") or "anonymous"

    now_minute = int(datetime.now(tz=timezone.utc).timestamp() // 60)
    window_minute, count = _RATE_STATE.get(api_key, (now_minute, 0))
    if window_minute != now_minute:
        window_minute, count = now_minute, 0

    if count >= limit:
        return response(429, error_body(ErrorCode.RATE_LIMIT_EXCEEDED, "Rate limit exceeded."))

    _RATE_STATE[api_key] = (window_minute, count + 1)
    return None


# -----------------------------------------------------------------------------
# Routing
# -----------------------------------------------------------------------------


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    method = event_method(event)
    path = event_path(event)

    auth_resp = _check_api_key(event)
    if auth_resp is not None:
        return auth_resp

    rl_resp = _check_rate_limit(event)
    if rl_resp is not None:
        return rl_resp

    if method == "GET" and path == "/v1/health":
        return response(200, {"ok": True, "api_version": API_VERSION})

    if method == "POST" and path == "/v1/inspect":
        return _handle_inspect(event)

    if method == "POST" and path == "/v1/frame":
        return handle_frame(event)

    return response(404, error_body(ErrorCode.NOT_FOUND, f"Unsupported route: {method} {path}"))


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------


def _handle_inspect(event: dict[str, Any]) -> dict[str, Any]:
    request, image_bytes, error = parse_inspect_request(event)
    if error is not None:
        return error

    request_id = content_hash_bytes(image_bytes)[:24] + "_" + content_hash_str(request.sensitivity)[:8]

    try:
        buffer = prepare_buffer(load_image_from_bytes(image_bytes))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, InvalidBufferError):
        return response(400, error_body(ErrorCode.INVALID_IMAGE_FORMAT, "image.data is not a decodable image.", "image.data"))

    try:
        report = inspect_image(buffer, request.sensitivity, request.pixel_to_mm)
    except Exception:
        logger.exception("Inspection failed for request %s", request_id)
        return response(500, error_body(ErrorCode.INTERNAL_ERROR, "Inspection failed."))

    annotated_path = None
    if report.defects.annotated is not None:
        annotated_path = save_png(report.defects.annotated.to_image(), request_id, "defects")

    resp = InspectResponse(
        api_version=API_VERSION,
        request_id=request_id,
        client_reference=request.client_reference,
        result=report.to_dict(),
        summary=build_summary(report, "inspect").to_dict(),
        annotated_image_path=annotated_path,
    )
    return response(200, resp.to_dict())
