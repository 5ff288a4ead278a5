"""Difference-hash (dHash) fingerprints for source photos.

The fingerprint is a coarse similarity digest, not a security primitive:
re-encoded, slightly cropped or re-brightened copies of a photo usually keep
the same value while a different photo diverges sharply. Two images are
considered the same photo only when their fingerprints are equal.

Algorithm:
    - Reject inputs below ``MIN_IMAGE_BYTES`` (empty or truncated downloads).
    - Decode, convert to 8-bit luminance and stretch to 9x8 pixels, ignoring
      the aspect ratio.
    - For each of the 8 rows emit ``1`` when a pixel is strictly brighter
      than its right neighbour, giving 64 bits in row-major order.
    - Render as 16 lowercase hexadecimal characters.
"""
from io import BytesIO
from pathlib import Path
from typing import Final, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from app.core.exceptions import ImageDecodeError, ImageTooSmallError
from app.core.logging import get_logger

logger = get_logger(__name__)

MIN_IMAGE_BYTES: Final[int] = 1000
FINGERPRINT_LENGTH: Final[int] = 16

# 9 columns give 8 horizontal differences per row
_HASH_WIDTH: Final[int] = 9
_HASH_HEIGHT: Final[int] = 8

ImageSource = Union[bytes, str, Path]


def _read_bytes(image: ImageSource) -> bytes:
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    try:
        return Path(image).read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Failed to read image file: {e}", {"path": str(image)}) from e


def compute_fingerprint(image: ImageSource, min_bytes: int = MIN_IMAGE_BYTES) -> str:
    """Compute the 64-bit difference hash of an image.

    Args:
        image: Raw image bytes or a path to an image file
        min_bytes: Smallest accepted encoded size in bytes

    Returns:
        Fingerprint as a 16-character lowercase hexadecimal string

    Raises:
        ImageTooSmallError: If the encoded image is smaller than ``min_bytes``
        ImageDecodeError: If the image cannot be read or decoded
    """
    data = _read_bytes(image)
    if len(data) < min_bytes:
        raise ImageTooSmallError(
            f"Image too small ({len(data)} bytes < {min_bytes})",
            {"size": len(data), "min_bytes": min_bytes}
        )

    try:
        with Image.open(BytesIO(data)) as img:
            resample = getattr(Image, "Resampling", Image).LANCZOS
            gray = img.convert("L").resize((_HASH_WIDTH, _HASH_HEIGHT), resample=resample)
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Failed to decode image: {e}", {"size": len(data)}) from e

    pixels = np.asarray(gray, dtype=np.int16)
    bits = (pixels[:, :-1] > pixels[:, 1:]).flatten()

    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)

    return f"{value:0{FINGERPRINT_LENGTH}x}"


__all__ = ["FINGERPRINT_LENGTH", "MIN_IMAGE_BYTES", "compute_fingerprint"]
