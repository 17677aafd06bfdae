#!/usr/bin/env python
"""Minimal local HTTP server that exposes the Lambda handler.

Intended for bench testing a camera rig or the web front end against the
inspection API. No extra dependencies.

Usage:
  . .venv/bin/activate
  python api/local_server.py --host 127.0.0.1 --port 8001

This is NOT production.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any

# IMPORTANT: this file lives in api/. When executed as `python api/local_server.py`,
# Python puts the api/ directory first on sys.path, which would shadow the stdlib
# `http` package because we also have api/http.py.
# Remove api/ from sys.path before importing http.server.
_api_dir = os.path.dirname(__file__)
if sys.path and os.path.abspath(sys.path[0]) == os.path.abspath(_api_dir):
    sys.path.pop(0)

from http.server import BaseHTTPRequestHandler, HTTPServer

# Ensure repo root is importable for `api.handler`.
REPO_ROOT = os.path.abspath(os.path.join(_api_dir, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from services.logging_setup import setup_logging

logger = logging.getLogger("railscan.local_server")

_POST_ROUTES = ("/v1/inspect", "/v1/frame")

_lambda_handler = None


def lambda_handler(event, context):
    global _lambda_handler
    if _lambda_handler is None:
        from api.handler import lambda_handler as _lh
        _lambda_handler = _lh
    return _lambda_handler(event, context)


def _make_v2_event(path: str, method: str, body_text: str | None, headers: dict[str, str]) -> dict[str, Any]:
    return {
        "version": "2.0",
        "rawPath": path,
        "requestContext": {"http": {"method": method}},
        "headers": headers,
        "body": body_text,
        "isBase64Encoded": False,
    }


class Handler(BaseHTTPRequestHandler):
    server_version = "RailscanLocalServer/0.1"

    def _send(self, status: int, body: str) -> None:
        self.send_response(status)
        self.send_header("content-type", "application/json")
        self.end_headers()
        self.wfile.write(body.encode("utf-8"))

    def _forward(self, method: str, body: str | None) -> None:
        headers = {k.lower(): v for k, v in self.headers.items()}
        resp = lambda_handler(_make_v2_event(self.path, method, body, headers), None)
        self._send(int(resp.get("statusCode", 500)), resp.get("body") or "{}")

    def do_GET(self):  # noqa: N802
        if self.path == "/v1/health":
            self._forward("GET", None)
            return
        self._send(404, json.dumps({"error": "not_found"}))

    def do_POST(self):  # noqa: N802
        if self.path not in _POST_ROUTES:
            self._send(404, json.dumps({"error": "not_found"}))
            return

        length = int(self.headers.get("content-length") or "0")
        body = self.rfile.read(length).decode("utf-8") if length else "{}"
        self._forward("POST", body)

    def log_message(self, format, *args):  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", default=8001, type=int)
    args = ap.parse_args()

    setup_logging()
    httpd = HTTPServer((args.host, args.port), Handler)
    logger.info("Listening on http://%s:%d", args.host, args.port)
    httpd.serve_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
