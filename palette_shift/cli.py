"""palette-shift: pull every pixel of an image part of the way towards a palette.

Usage: palette-shift [INPUT] [PERCENT] [-o OUTPUT] [-p PALETTE] [--colors HEX,...]

PERCENT is how far (0-100) each pixel moves towards its nearest palette color.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from palette_shift.config import settings
from palette_shift.image_io import ImageDecodeError, load_rgb, save_rgb
from palette_shift.palettes.loader import get_palette_colors, list_palettes, parse_palette
from palette_shift.pipeline.shift import shift_to_palette, shift_to_palette_fast

logger = logging.getLogger(__name__)


def _percent(value: str) -> int:
    try:
        percent = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if not 0 <= percent <= 100:
        raise argparse.ArgumentTypeError(
            f"target percentage must be between 0 and 100, got {percent}"
        )
    return percent


def _build_parser() -> argparse.ArgumentParser:
    slugs = ", ".join(p["slug"] for p in list_palettes())
    parser = argparse.ArgumentParser(
        prog="palette-shift",
        description="Shift image colors part of the way towards the nearest palette color.",
    )
    parser.add_argument("input", nargs="?", default="test.png", help="Input image (default: test.png)")
    parser.add_argument(
        "percent",
        nargs="?",
        type=_percent,
        default=settings.default_blend_percent,
        help=f"Blend percentage 0-100 (default: {settings.default_blend_percent})",
    )
    parser.add_argument("-o", "--output", default="output.png", help="Output image (default: output.png)")
    parser.add_argument(
        "-p",
        "--palette",
        default=settings.default_palette,
        help=f"Named palette ({slugs}; default: {settings.default_palette})",
    )
    parser.add_argument("--colors", help="Comma-separated hex colors, overrides --palette")
    parser.add_argument("--fast", action="store_true", help="Truncate instead of rounding on write-back")
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.shift_workers,
        help="Worker threads (0 = one per CPU)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(message)s",
    )

    if args.colors:
        try:
            palette = parse_palette(args.colors.split(","))
        except ValueError as e:
            logger.error("Invalid palette: %s", e)
            return 1
    else:
        palette = get_palette_colors(args.palette)
        if palette is None:
            logger.error("Unknown palette: %s", args.palette)
            return 1

    logger.info("Input file: %s", args.input)

    t1 = time.perf_counter()
    try:
        image = load_rgb(args.input)
    except ImageDecodeError as e:
        logger.error("%s", e)
        return 1
    logger.info("loading the image took: %d ms", (time.perf_counter() - t1) * 1000)

    shift_fn = shift_to_palette_fast if args.fast else shift_to_palette
    t2 = time.perf_counter()
    shift_fn(image, palette, args.percent / 100.0, workers=args.workers)
    logger.info("Processing took: %d ms", (time.perf_counter() - t2) * 1000)

    t3 = time.perf_counter()
    try:
        save_rgb(image, args.output)
    except (ValueError, OSError) as e:
        logger.error("Could not save %s: %s", args.output, e)
        return 1
    logger.info("saving the image took: %d ms", (time.perf_counter() - t3) * 1000)
    return 0


if __name__ == "__main__":
    sys.exit(main())
