from __future__ import annotations

import logging
import os
from collections import OrderedDict
from typing import Any

from PIL import Image, UnidentifiedImageError

from api.http import content_hash_bytes, content_hash_str, response
from api.image_store import save_png
from api.request_parsing import parse_inspect_request
from api.schemas import API_VERSION, ErrorCode, InspectResponse, error_body
from services.inspection.buffer import InvalidBufferError, load_image_from_bytes, prepare_buffer
from services.inspection.flow import visualize_flow
from services.inspection.pipeline import InspectionSession, build_summary


logger = logging.getLogger(__name__)


DEFAULT_MAX_SESSIONS = 64

# One InspectionSession per capture session (best-effort; relies on container reuse).
# Least recently used first; the oldest session is evicted once the cap is reached.
_SESSIONS: OrderedDict[str, InspectionSession] = OrderedDict()


def _max_sessions() -> int:
    raw = os.environ.get("RAILSCAN_MAX_SESSIONS", "").strip()
    if not raw:
        return DEFAULT_MAX_SESSIONS
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning("Ignoring non-integer RAILSCAN_MAX_SESSIONS=%r", raw)
        return DEFAULT_MAX_SESSIONS


def get_session(session_id: str) -> InspectionSession:
    session = _SESSIONS.get(session_id)
    if session is not None:
        _SESSIONS.move_to_end(session_id)
        return session

    limit = _max_sessions()
    while len(_SESSIONS) >= limit:
        evicted, _ = _SESSIONS.popitem(last=False)
        logger.info("Evicted capture session %s (limit %d)", evicted, limit)

    session = InspectionSession()
    _SESSIONS[session_id] = session
    logger.info("Started capture session %s", session_id)
    return session


def drop_session(session_id: str) -> bool:
    return _SESSIONS.pop(session_id, None) is not None


def handle_frame(event: dict[str, Any]) -> dict[str, Any]:
    request, image_bytes, error = parse_inspect_request(event, require_session=True)
    if error is not None:
        return error

    request_id = (
        content_hash_bytes(image_bytes)[:24]
        + "_"
        + content_hash_str(f"{request.session_id}:{request.sensitivity}")[:8]
    )

    try:
        buffer = prepare_buffer(load_image_from_bytes(image_bytes))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, InvalidBufferError):
        return response(400, error_body(ErrorCode.INVALID_IMAGE_FORMAT, "image.data is not a decodable image.", "image.data"))

    session = get_session(request.session_id)
    if request.reset:
        session.reset()
    session.with_flow = request.flow

    try:
        frame = session.process_frame(buffer, request.sensitivity, request.pixel_to_mm)
    except Exception:
        logger.exception("Frame processing failed for session %s", request.session_id)
        return response(500, error_body(ErrorCode.INTERNAL_ERROR, "Frame processing failed."))

    annotated_path = None
    annotated = frame.inspection.defects.annotated
    if annotated is not None:
        annotated_path = save_png(annotated.to_image(), request_id, "defects", kind="frame")

    flow_path = None
    if frame.flow is not None:
        flow_path = save_png(visualize_flow(frame.flow), request_id, "flow", kind="frame")

    if request.end:
        drop_session(request.session_id)
        logger.info("Ended capture session %s", request.session_id)

    resp = InspectResponse(
        api_version=API_VERSION,
        request_id=request_id,
        client_reference=request.client_reference,
        result=frame.to_dict(),
        summary=build_summary(frame.inspection, "frame", frame.motion).to_dict(),
        annotated_image_path=annotated_path,
        flow_image_path=flow_path,
    )
    return response(200, resp.to_dict())
