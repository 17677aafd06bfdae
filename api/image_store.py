from __future__ import annotations

"""Very small, local image store for annotated overlays.

In Lambda, you would replace this with S3 presigned URLs, etc.
For local/dev we write to $RAILSCAN_EXPORT_DIR (default ./exports/).
"""

import os

from PIL import Image


def export_dir(kind: str) -> str:
    base = os.environ.get("RAILSCAN_EXPORT_DIR", "").strip() or os.path.join(os.getcwd(), "exports")
    return os.path.join(base, kind)


def save_png(img: Image.Image, request_id: str, name: str, kind: str = "inspect") -> str:
    out_dir = export_dir(kind)
    os.makedirs(out_dir, exist_ok=True)
    safe = "".join(ch for ch in name if ch.isalnum() or ch in {"_", "-"}).strip() or "img"
    path = os.path.join(out_dir, f"{request_id}__{safe}.png")
    img.save(path)
    return path
