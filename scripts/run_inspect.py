#!/usr/bin/env python3
"""Run /v1/inspect (or /v1/frame for a sequence of frames) locally via lambda_handler.

Examples:
  python scripts/run_inspect.py --image rail.jpg --sensitivity low
  python scripts/run_inspect.py --image f1.png --image f2.png --session cam-1
"""
import argparse
import base64
import json
import os
import sys
from pathlib import Path

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from api.handler import lambda_handler
from services.logging_setup import setup_logging


def _load_image_b64(path: Path) -> str:
    return base64.b64encode(path.read_bytes()).decode("utf-8")


def _event(path: str, payload: dict) -> dict:
    return {
        "httpMethod": "POST",
        "path": path,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(payload),
        "isBase64Encoded": False,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the inspection API locally via lambda_handler")
    parser.add_argument("--image", required=True, action="append", help="Image file (repeat for frames)")
    parser.add_argument("--sensitivity", default="medium", choices=("low", "medium", "high"))
    parser.add_argument("--pixel-to-mm", default=0.1, type=float, help="Physical pixel size (default: 0.1)")
    parser.add_argument("--session", default=None, help="Capture session id; sends frames to /v1/frame")
    parser.add_argument("--flow", action="store_true", help="Estimate optical flow between frames")
    parser.add_argument("--client-reference", default=None, help="Optional client_reference")
    args = parser.parse_args()

    setup_logging()

    paths = [Path(p) for p in args.image]
    for p in paths:
        if not p.exists():
            raise SystemExit(f"Image not found: {p}")

    if args.session is None and len(paths) > 1:
        raise SystemExit("Multiple images need --session (they are treated as frames)")

    route = "/v1/frame" if args.session else "/v1/inspect"
    for p in paths:
        payload = {
            "image": {"encoding": "base64", "data": _load_image_b64(p)},
            "sensitivity": args.sensitivity,
            "pixel_to_mm": args.pixel_to_mm,
        }
        if args.session:
            payload["session_id"] = args.session
            payload["flow"] = args.flow
            payload["end"] = p is paths[-1]
        if args.client_reference:
            payload["client_reference"] = args.client_reference

        resp = lambda_handler(_event(route, payload), None)
        print(resp["statusCode"])
        print(resp["body"])


if __name__ == "__main__":
    main()
