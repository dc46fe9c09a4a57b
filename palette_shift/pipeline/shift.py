from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

import numpy as np

from palette_shift.color import Color

logger = logging.getLogger(__name__)

# Pixel x palette pairs per unit of work. A chunk of N pixels against P colors
# allocates an (N, P, 3) float32 delta block plus a few (N, P) temporaries, so
# N is derived from this budget rather than fixed.
CHUNK_ELEMENTS = 1 << 19

Encoder = Callable[[np.ndarray], np.ndarray]


def palette_to_array(palette: Sequence[Color]) -> np.ndarray:
    """Stack palette colors into a read-only (P, 3) float32 array."""
    arr = np.array([(c.r, c.g, c.b) for c in palette], dtype=np.float32).reshape(-1, 3)
    arr.setflags(write=False)
    return arr


def to_bytes_array(colors: np.ndarray) -> np.ndarray:
    """Vectorised Color.to_bytes: clamp, scale by 255, round half up."""
    scaled = np.clip(colors, 0.0, 1.0) * np.float32(255.0)
    return np.floor(scaled + np.float32(0.5)).astype(np.uint8)


def to_bytes_fast_array(colors: np.ndarray) -> np.ndarray:
    """Vectorised Color.to_bytes_fast: clamp, scale by 255, truncate."""
    scaled = np.clip(colors, 0.0, 1.0) * np.float32(255.0)
    return scaled.astype(np.uint8)


def _nearest_deltas(pixels: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Delta (palette color - pixel) towards the nearest palette entry per pixel.

    Ties resolve to the earliest palette entry, since argmin returns the
    first minimum.
    """
    # pixels: (N, 3), palette: (P, 3) -> deltas: (N, P, 3)
    deltas = palette[np.newaxis, :, :] - pixels[:, np.newaxis, :]
    dr, dg, db = deltas[..., 0], deltas[..., 1], deltas[..., 2]
    distances = np.sqrt(dr * dr + dg * dg + db * db)
    nearest_idx = np.argmin(distances, axis=-1)
    return deltas[np.arange(len(pixels)), nearest_idx]


def _shift_chunk(
    chunk: np.ndarray,
    palette: np.ndarray,
    blend_factor: np.float32,
    encode: Encoder,
) -> None:
    pixels = chunk.astype(np.float32) / np.float32(255.0)
    deltas = _nearest_deltas(pixels, palette)
    chunk[...] = encode(pixels + deltas * blend_factor)


def _pixel_view(buffer) -> np.ndarray:
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise TypeError(f"Pixel buffer must be uint8, got {buffer.dtype}")
        if not buffer.flags.c_contiguous:
            raise ValueError("Pixel buffer must be contiguous to be shifted in place")
        flat = buffer.reshape(-1)
    else:
        flat = np.frombuffer(buffer, dtype=np.uint8)
    if not flat.flags.writeable:
        raise ValueError("Pixel buffer is read-only")
    if flat.size % 3 != 0:
        raise ValueError(
            f"Pixel buffer length must be a multiple of 3, got {flat.size}"
        )
    return flat.reshape(-1, 3)


def chunk_pixels(palette_size: int) -> int:
    """Pixels per chunk so that pixels * palette_size stays within CHUNK_ELEMENTS."""
    return max(1, CHUNK_ELEMENTS // max(palette_size, 1))


def _resolve_workers(workers: int | None) -> int:
    if workers is None or workers <= 0:
        return os.cpu_count() or 1
    return workers


def _shift(
    buffer,
    palette: Sequence[Color],
    blend_factor: float,
    encode: Encoder,
    workers: int | None,
) -> None:
    if len(palette) == 0:
        raise ValueError("Palette must contain at least one color")

    view = _pixel_view(buffer)
    palette_arr = palette_to_array(palette)
    factor = np.float32(blend_factor)
    n_pixels = len(view)
    step = chunk_pixels(len(palette_arr))
    bounds = [
        (start, min(start + step, n_pixels))
        for start in range(0, n_pixels, step)
    ]
    n_workers = min(_resolve_workers(workers), max(len(bounds), 1))

    logger.debug(
        "Shifting %d pixels towards %d colors (blend=%.3f, chunks=%d, workers=%d)",
        n_pixels, len(palette_arr), blend_factor, len(bounds), n_workers,
    )

    if n_workers <= 1:
        for start, stop in bounds:
            _shift_chunk(view[start:stop], palette_arr, factor, encode)
        return

    # Chunks are disjoint slices of whole pixels, so workers never share bytes
    with ThreadPoolExecutor(max_workers=n_workers) as pool:
        futures = [
            pool.submit(_shift_chunk, view[start:stop], palette_arr, factor, encode)
            for start, stop in bounds
        ]
        for future in futures:
            future.result()


def shift_to_palette(
    buffer,
    palette: Sequence[Color],
    blend_factor: float,
    workers: int | None = None,
) -> None:
    """Shift every pixel towards its nearest palette color, in place.

    Args:
        buffer: Writable flat RGB bytes (bytearray, memoryview or uint8
            ndarray), 3 bytes per pixel, no alpha.
        palette: Non-empty ordered palette.
        blend_factor: Fraction of the correction to apply. 0 leaves pixels
            untouched, 1 snaps them to the palette. Not clamped.
        workers: Thread count; None or 0 uses one per CPU.

    Raises:
        ValueError: buffer length is not a multiple of 3, or palette is empty.
    """
    _shift(buffer, palette, blend_factor, to_bytes_array, workers)


def shift_to_palette_fast(
    buffer,
    palette: Sequence[Color],
    blend_factor: float,
    workers: int | None = None,
) -> None:
    """Same as shift_to_palette, but truncates instead of rounding on write-back."""
    _shift(buffer, palette, blend_factor, to_bytes_fast_array, workers)


def shift_pixel(color: Color, palette: Sequence[Color], blend_factor: float) -> Color:
    """Shift a single color towards its nearest palette entry."""
    closest = None
    closest_dist = 0.0
    for candidate in palette:
        delta = candidate - color
        dist = delta.distance()
        if closest is None or dist < closest_dist:
            closest, closest_dist = delta, dist
    if closest is None:
        raise ValueError("Palette must contain at least one color")
    return color + closest * blend_factor
