from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from palette_shift.color import Color, ColorParseError

PALETTE_DIR = Path(__file__).parent / "data"

_palette_cache: dict[str, NamedPalette] | None = None


@dataclass(frozen=True)
class NamedPalette:
    """A shipped palette with its colors already parsed."""

    slug: str
    name: str
    colors: tuple[Color, ...]
    tags: tuple[str, ...] = ()

    def summary(self) -> dict:
        return {
            "slug": self.slug,
            "name": self.name,
            "colors": len(self.colors),
            "hex": [c.to_hex_string() for c in self.colors],
            "tags": list(self.tags),
        }


def parse_palette(hex_colors: Iterable[str]) -> list[Color]:
    """Parse hex strings into a palette, keeping their order.

    Raises ColorParseError on the first malformed entry and ValueError
    if nothing is left to shift towards.
    """
    colors = [Color.from_hex(h.strip()) for h in hex_colors if h.strip()]
    if not colors:
        raise ValueError("Palette must contain at least one color")
    return colors


def _load_file(path: Path) -> NamedPalette:
    with open(path) as f:
        data = json.load(f)
    try:
        colors = parse_palette(data["colors"])
    except ColorParseError as e:
        raise ValueError(f"Palette {path.name}: {e}") from e
    return NamedPalette(
        slug=data["slug"],
        name=data["name"],
        colors=tuple(colors),
        tags=tuple(data.get("tags", [])),
    )


def _load_all() -> dict[str, NamedPalette]:
    """Load and validate every palette JSON file once."""
    global _palette_cache
    if _palette_cache is None:
        palettes = (_load_file(path) for path in sorted(PALETTE_DIR.glob("*.json")))
        _palette_cache = {p.slug: p for p in palettes}
    return _palette_cache


def get_palette(slug: str) -> NamedPalette | None:
    return _load_all().get(slug)


def get_palette_colors(slug: str) -> list[Color] | None:
    palette = get_palette(slug)
    return list(palette.colors) if palette is not None else None


def list_palettes() -> list[dict]:
    """Return all palettes in API response format."""
    return [p.summary() for p in _load_all().values()]
