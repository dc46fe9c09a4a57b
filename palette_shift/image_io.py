from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError


class ImageDecodeError(ValueError):
    """Raised when input bytes or files are not a readable image."""


def load_rgb(source: str | Path | bytes) -> np.ndarray:
    """Decode an image into an H x W x 3 uint8 RGB array.

    Alpha and palette modes are converted to plain RGB, so the result can be
    handed to the shift engine as a flat 3-bytes-per-pixel buffer.
    """
    fp = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        with Image.open(fp) as im:
            rgb = im.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e
    return np.ascontiguousarray(np.array(rgb, dtype=np.uint8))


def encode_png(image: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="PNG")
    return buffer.getvalue()


def save_rgb(image: np.ndarray, path: str | Path) -> None:
    """Save an RGB array; the format follows the file extension."""
    Image.fromarray(image).save(path)
