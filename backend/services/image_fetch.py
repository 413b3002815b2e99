"""
Fetch a remote photo and decode it for embedding in the PDF.

One attempt per URL; any failure means the block is drawn without an image.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

import requests
from PIL import Image
from reportlab.lib.utils import ImageReader

from settings import settings

logger = logging.getLogger(__name__)
_session = requests.Session()

# Cards draw images at 80pt; keep decoded pixels small.
MAX_IMAGE_PX = 480


def decode_image(data: bytes) -> ImageReader:
    """Decode raw bytes into an RGB ImageReader, downscaled for print cards."""
    with Image.open(BytesIO(data)) as img:
        img.load()
        rgb = img.convert("RGB")
    rgb.thumbnail((MAX_IMAGE_PX, MAX_IMAGE_PX))
    return ImageReader(rgb)


def fetch_image(url: Optional[str], timeout: Optional[float] = None) -> Optional[ImageReader]:
    """Return a decoded image for url, or None when it cannot be loaded."""
    if not url or not isinstance(url, str):
        return None
    try:
        resp = _session.get(url, timeout=timeout or settings.IMAGE_FETCH_TIMEOUT)
        resp.raise_for_status()
        content_type = resp.headers.get("Content-Type", "")
        if content_type and not content_type.startswith("image/"):
            raise ValueError(f"Not an image ({content_type})")
        return decode_image(resp.content)
    except Exception as exc:
        logger.warning("Failed to load image %s: %s", url, exc)
        return None
