"""HTTP/Lambda helpers.

Goals:
- Keep responses deterministic (stable JSON serialization).
- Support both API Gateway REST (v1) and HTTP API (v2) event shapes.
- Avoid introducing heavy framework dependencies.

Inspection results carry numpy scalars in places; the JSON encoder here
turns them into plain Python numbers so handlers do not have to.
"""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import is_dataclass
from typing import Any, Optional

import numpy as np


def _normalise_headers(headers: Optional[dict[str, str]]) -> dict[str, str]:
    if not headers:
        return {}
    # API Gateway may provide mixed casing; normalise to lowercase.
    return {str(k).lower(): str(v) for k, v in headers.items() if v is not None}


def get_header(event: dict[str, Any], name: str) -> Optional[str]:
    headers = _normalise_headers(event.get("headers"))
    return headers.get(name.lower())


def event_method(event: dict[str, Any]) -> str:
    # v2: requestContext.http.method
    rc = event.get("requestContext") or {}
    http = rc.get("http") or {}
    if isinstance(http, dict) and http.get("method"):
        return str(http.get("method")).upper()
    # v1: httpMethod
    if event.get("httpMethod"):
        return str(event.get("httpMethod")).upper()
    return ""


def event_path(event: dict[str, Any]) -> str:
    # v2: rawPath, v1: path
    return str(event.get("rawPath") or event.get("path") or "/")


def _json_default(o: Any) -> Any:
    if is_dataclass(o) and hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if isinstance(o, np.integer):
        return int(o)
    if isinstance(o, np.floating):
        return float(o)
    if isinstance(o, np.bool_):
        return bool(o)
    if isinstance(o, tuple):
        return list(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serialisable")


def stable_json_dumps(obj: Any) -> str:
    """Deterministic JSON: stable key order + no whitespace."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=_json_default)


def response(status_code: int, body: Any, headers: Optional[dict[str, str]] = None) -> dict[str, Any]:
    base_headers = {
        "content-type": "application/json; charset=utf-8",
    }
    if headers:
        base_headers.update({k.lower(): v for k, v in headers.items()})

    return {
        "statusCode": status_code,
        "headers": base_headers,
        "body": stable_json_dumps(body),
    }


def decode_json_body(event: dict[str, Any]) -> Any:
    raw = event.get("body")
    if raw is None:
        raise ValueError("missing body")

    if event.get("isBase64Encoded") is True:
        raw = base64.b64decode(raw).decode("utf-8")

    if not isinstance(raw, str):
        raise ValueError("invalid body type")

    return json.loads(raw)


def content_hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def content_hash_str(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
