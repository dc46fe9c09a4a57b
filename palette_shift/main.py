from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from palette_shift.color import ColorParseError
from palette_shift.config import settings
from palette_shift.image_io import ImageDecodeError, encode_png, load_rgb
from palette_shift.palettes.loader import get_palette_colors, list_palettes, parse_palette
from palette_shift.pipeline.shift import shift_to_palette, shift_to_palette_fast

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle handler."""
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.info("Palette shift service ready (%d palettes)", len(list_palettes()))

    yield

    logger.info("Shutting down")


app = FastAPI(
    title="Palette Shift",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Concurrency control
_semaphore = asyncio.Semaphore(settings.max_concurrent_requests)


def _invalid(error: str, message: str, status_code: int = 422) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "message": message},
    )


@app.get("/api/health")
async def health():
    return {
        "status": "healthy",
        "version": VERSION,
    }


@app.get("/api/palettes")
async def palettes():
    return {"palettes": list_palettes()}


@app.post("/api/shift")
async def shift(
    image: UploadFile = File(...),
    blend_percent: int = Form(settings.default_blend_percent),
    palette_name: str = Form(settings.default_palette),
    colors: Optional[str] = Form(None),
    fast: bool = Form(False),
):
    if not 0 <= blend_percent <= 100:
        raise _invalid(
            "invalid_parameter",
            f"blend_percent must be between 0 and 100, got {blend_percent}",
        )

    # Resolve palette before touching the image
    if colors:
        entries = colors.split(",")
        if len(entries) > settings.max_palette_colors:
            raise _invalid(
                "invalid_parameter",
                f"colors may list at most {settings.max_palette_colors} entries, got {len(entries)}",
            )
        try:
            palette = parse_palette(entries)
        except ColorParseError as e:
            raise _invalid("invalid_color", str(e))
        except ValueError:
            raise _invalid("invalid_color", "colors must list at least one hex color")
    else:
        palette = get_palette_colors(palette_name)
        if palette is None:
            raise _invalid("invalid_parameter", f"Unknown palette: {palette_name}")

    content_type = image.content_type or ""
    if not any(
        t in content_type for t in ("image/jpeg", "image/png", "image/webp", "octet-stream")
    ):
        raise _invalid(
            "invalid_format",
            "Unsupported image format. Use JPEG, PNG, or WebP.",
            status_code=400,
        )

    image_data = await image.read()
    if len(image_data) > settings.max_image_size:
        raise _invalid(
            "image_too_large",
            f"Image exceeds {settings.max_image_size} byte limit.",
            status_code=400,
        )

    try:
        pixels = load_rgb(image_data)
    except ImageDecodeError:
        raise _invalid(
            "invalid_format",
            "Could not decode image. Ensure it is a valid JPEG, PNG, or WebP.",
            status_code=400,
        )

    shift_fn = shift_to_palette_fast if fast else shift_to_palette
    try:
        async with _semaphore:
            start_time = time.time()
            await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: shift_fn(
                    pixels, palette, blend_percent / 100.0, workers=settings.shift_workers
                ),
            )
            processing_ms = int((time.time() - start_time) * 1000)
    except Exception as e:
        logger.error("Shift failed: %s", e, exc_info=True)
        raise _invalid("shift_failed", f"Pipeline error: {str(e)}", status_code=500)

    logger.info(
        "Shifted %dx%d image towards %d colors in %d ms",
        pixels.shape[1], pixels.shape[0], len(palette), processing_ms,
    )

    return Response(
        content=encode_png(pixels),
        media_type="image/png",
        headers={
            "X-Shift-Palette": ",".join(c.to_hex_string() for c in palette),
            "X-Shift-Blend": str(blend_percent),
            "X-Shift-Processing-Ms": str(processing_ms),
        },
    )


def run() -> None:
    """Serve the API with uvicorn on settings.port."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())
