"""Placeholder thumbnails for files the engine has no preview for."""

from __future__ import annotations

import io
import logging
from typing import Tuple

from PIL import Image, ImageDraw

LOGGER = logging.getLogger(__name__)

SMALL_SIZE: Tuple[int, int] = (400, 400)
LARGE_SIZE: Tuple[int, int] = (800, 480)

_BACKGROUND = (38, 38, 46)
_FRAME = (90, 90, 104)


def thumbnail_dimensions(size: str) -> Tuple[int, int]:
    """Map a size label ("Small"/"Large") onto pixel dimensions."""
    if size == "Large":
        return LARGE_SIZE
    return SMALL_SIZE


def generate_placeholder(width: int, height: int) -> bytes:
    """Render a neutral PNG placeholder of the requested size."""

    width = max(1, int(width))
    height = max(1, int(height))
    image = Image.new("RGB", (width, height), _BACKGROUND)
    draw = ImageDraw.Draw(image)

    inset = max(1, min(width, height) // 8)
    box = (inset, inset, width - inset - 1, height - inset - 1)
    if box[2] > box[0] and box[3] > box[1]:
        draw.rectangle(box, outline=_FRAME, width=max(1, inset // 6))
        draw.line((box[0], box[1], box[2], box[3]), fill=_FRAME)
        draw.line((box[0], box[3], box[2], box[1]), fill=_FRAME)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    LOGGER.debug("Generated %dx%d placeholder thumbnail", width, height)
    return buffer.getvalue()


__all__ = [
    "LARGE_SIZE",
    "SMALL_SIZE",
    "generate_placeholder",
    "thumbnail_dimensions",
]
