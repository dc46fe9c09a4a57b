from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

import numpy as np

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ColorParseError(ValueError):
    """Raised when a hex color string cannot be parsed."""


class InvalidFormatError(ColorParseError):
    """Hex string is not 6 digits, optionally prefixed with '#'."""


class InvalidDigitError(ColorParseError):
    """Hex string contains a character that is not a hex digit."""


def parse_hex(hex_str: str) -> tuple[int, int, int]:
    """Parse a "#rrggbb" or "rrggbb" string into a byte triple.

    Raises:
        InvalidFormatError: the string has the wrong length or prefix.
        InvalidDigitError: a channel contains a non-hex character.
    """
    digits = hex_str[1:] if hex_str.startswith("#") else hex_str
    if len(digits) != 6:
        raise InvalidFormatError(f"Hex color string invalid: {hex_str!r}")

    channels = []
    for i in range(0, 6, 2):
        pair = digits[i:i + 2]
        # int(..., 16) accepts signs, whitespace and underscores
        if not all(ch in HEX_DIGITS for ch in pair):
            raise InvalidDigitError(f"Invalid hex digit in {pair!r} of {hex_str!r}")
        channels.append(int(pair, 16))
    r, g, b = channels
    return r, g, b


def _f32(value: float) -> float:
    """Round a Python float to the nearest float32 value."""
    return float(np.float32(value))


def _round_half_up(value: float) -> int:
    return int(math.floor(_f32(value + 0.5)))


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class Color:
    """RGB color with float32 channels, nominally in 0..1.

    Channels are not range-checked; deltas between colors may be negative and
    intermediate sums may exceed 1.0. Only the byte conversions clamp.

    Channels are stored as Python floats but always hold float32 values, and
    every operation rounds its result to float32, so scalar results match the
    vectorised float32 engine bit for bit.
    """

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "r", _f32(self.r))
        object.__setattr__(self, "g", _f32(self.g))
        object.__setattr__(self, "b", _f32(self.b))

    @classmethod
    def from_bytes(cls, r: int, g: int, b: int) -> Color:
        return cls(r / 255.0, g / 255.0, b / 255.0)

    @classmethod
    def from_hex(cls, hex_str: str) -> Color:
        """Parse a hex string straight into a float color."""
        return cls.from_bytes(*parse_hex(hex_str))

    # Arithmetic

    def add(self, other: Color) -> Color:
        return Color(self.r + other.r, self.g + other.g, self.b + other.b)

    def subtract(self, other: Color) -> Color:
        return Color(self.r - other.r, self.g - other.g, self.b - other.b)

    def multiply(self, other: Color) -> Color:
        return Color(self.r * other.r, self.g * other.g, self.b * other.b)

    def divide(self, other: Color) -> Color:
        """Component-wise division. Zero channels follow IEEE float rules."""
        return Color(
            _ieee_div(self.r, other.r),
            _ieee_div(self.g, other.g),
            _ieee_div(self.b, other.b),
        )

    def scale(self, factor: float) -> Color:
        factor = _f32(factor)
        return Color(self.r * factor, self.g * factor, self.b * factor)

    def divide_scalar(self, divisor: float) -> Color:
        divisor = _f32(divisor)
        return Color(
            _ieee_div(self.r, divisor),
            _ieee_div(self.g, divisor),
            _ieee_div(self.b, divisor),
        )

    def __add__(self, other: Color) -> Color:
        if not isinstance(other, Color):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Color) -> Color:
        if not isinstance(other, Color):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, other: Color | float) -> Color:
        if isinstance(other, Color):
            return self.multiply(other)
        if isinstance(other, numbers.Real):
            return self.scale(other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: Color | float) -> Color:
        if isinstance(other, Color):
            return self.divide(other)
        if isinstance(other, numbers.Real):
            return self.divide_scalar(other)
        return NotImplemented

    # Vector helpers

    def distance(self) -> float:
        """Euclidean norm of the channel triple.

        Applied to a delta (a - b) this is the RGB-space distance between a and b.
        """
        rr, gg, bb = _f32(self.r * self.r), _f32(self.g * self.g), _f32(self.b * self.b)
        return _f32(math.sqrt(_f32(_f32(rr + gg) + bb)))

    def normalize(self) -> Color:
        """Unit-length copy; the zero vector normalizes to itself."""
        d = self.distance()
        if d == 0.0:
            return Color()
        return Color(self.r / d, self.g / d, self.b / d)

    def abs(self) -> Color:
        return Color(abs(self.r), abs(self.g), abs(self.b))

    def sum_rgb(self) -> float:
        return _f32(_f32(self.r + self.g) + self.b)

    # Conversions

    def to_bytes(self) -> tuple[int, int, int]:
        """Clamp to 0..1, scale to 0..255 and round to the nearest integer."""
        return (
            _round_half_up(_f32(_clamp01(self.r) * 255.0)),
            _round_half_up(_f32(_clamp01(self.g) * 255.0)),
            _round_half_up(_f32(_clamp01(self.b) * 255.0)),
        )

    def to_bytes_fast(self) -> tuple[int, int, int]:
        """Like to_bytes, but truncates the fraction instead of rounding."""
        return (
            int(_f32(_clamp01(self.r) * 255.0)),
            int(_f32(_clamp01(self.g) * 255.0)),
            int(_f32(_clamp01(self.b) * 255.0)),
        )

    def to_hex_string(self) -> str:
        r, g, b = self.to_bytes()
        return f"#{r:02x}{g:02x}{b:02x}"


def _ieee_div(a: float, b: float) -> float:
    # Python raises on float division by zero; keep inf/nan propagation instead
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b
