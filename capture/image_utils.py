"""
capture.image_utils
Read back the captured PNG with Pillow.
"""

from __future__ import annotations

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError


def png_size(data: bytes) -> Optional[Tuple[int, int]]:
    """(width, height) in device pixels, or None when the bytes are not an image."""
    if not data:
        return None
    try:
        with Image.open(BytesIO(data)) as im:
            return int(im.size[0]), int(im.size[1])
    except (UnidentifiedImageError, OSError):
        return None


def expected_pixels(width: int, height: int, device_scale_factor: float) -> Tuple[int, int]:
    return int(round(width * device_scale_factor)), int(round(height * device_scale_factor))
