"""Pixel types, colour types and pixel formats for PNG images."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

COLOR_MASK_PALETTE = 1
COLOR_MASK_RGB = 2
COLOR_MASK_ALPHA = 4

ALLOWED_PACKED_BITS = (1, 2, 4)

# PNG stores multi-byte samples in network (big-endian) order.
SAMPLE_BYTE_ORDER = "big"


class ColorType(enum.IntEnum):
    """The colour type codes used in the PNG IHDR chunk."""

    GRAY = 0
    RGB = COLOR_MASK_RGB
    PALETTE = COLOR_MASK_PALETTE | COLOR_MASK_RGB
    GA = COLOR_MASK_ALPHA
    RGBA = COLOR_MASK_RGB | COLOR_MASK_ALPHA


_CHANNELS = {
    ColorType.GRAY: 1,
    ColorType.RGB: 3,
    ColorType.PALETTE: 1,
    ColorType.GA: 2,
    ColorType.RGBA: 4,
}


def alpha_filler(bit_depth: int) -> int:
    """Return the fully opaque alpha value for a component bit depth."""
    if bit_depth not in (8, 16):
        raise ValueError(f"alpha is only defined for 8- and 16-bit components, not {bit_depth}")
    return (1 << bit_depth) - 1


class PixelFormat(enum.Enum):
    """A pixel layout: a colour type combined with a bit depth."""

    RGB = (ColorType.RGB, 8)
    RGB_16 = (ColorType.RGB, 16)
    RGBA = (ColorType.RGBA, 8)
    RGBA_16 = (ColorType.RGBA, 16)
    GRAY = (ColorType.GRAY, 8)
    GRAY_1 = (ColorType.GRAY, 1)
    GRAY_2 = (ColorType.GRAY, 2)
    GRAY_4 = (ColorType.GRAY, 4)
    GRAY_16 = (ColorType.GRAY, 16)
    GA = (ColorType.GA, 8)
    GA_16 = (ColorType.GA, 16)
    INDEX = (ColorType.PALETTE, 8)
    INDEX_1 = (ColorType.PALETTE, 1)
    INDEX_2 = (ColorType.PALETTE, 2)
    INDEX_4 = (ColorType.PALETTE, 4)

    def __init__(self, color_type: ColorType, bit_depth: int) -> None:
        self.color_type = color_type
        self.bit_depth = bit_depth

    def channels(self) -> int:
        """Number of samples per pixel."""
        return _CHANNELS[self.color_type]

    def has_alpha(self) -> bool:
        """Whether pixels of this format carry an alpha sample."""
        return bool(self.color_type & COLOR_MASK_ALPHA)


class PackedPixel:
    """A 1-, 2- or 4-bit pixel value, several of which share a byte."""

    __slots__ = ("_value", "_bits")

    def __init__(self, value: int, bits: int) -> None:
        if bits not in ALLOWED_PACKED_BITS:
            raise ValueError(f"packed pixels must be 1, 2 or 4 bits wide, not {bits}")
        self._bits = bits
        self._value = int(value) & self.bit_mask()

    @property
    def bit_depth(self) -> int:
        return self._bits

    def bit_mask(self) -> int:
        """The mask selecting the bits of one pixel."""
        return (1 << self._bits) - 1

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PackedPixel):
            return self._value == other._value and self._bits == other._bits
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._value, self._bits))

    def __repr__(self) -> str:
        return f"PackedPixel({self._value}, bits={self._bits})"


@dataclass
class GaPixel:
    """A gray + alpha pixel; alpha defaults to full 8-bit opacity."""

    value: int = 0
    alpha: int = field(default_factory=lambda: alpha_filler(8))


@dataclass
class RgbPixel:
    """A red, green, blue pixel."""

    red: int = 0
    green: int = 0
    blue: int = 0


@dataclass(init=False)
class RgbaPixel:
    """A red, green, blue, alpha pixel.

    With no colour components every sample, alpha included, is zero;
    once colour components are given alpha defaults to full opacity.
    """

    red: int
    green: int
    blue: int
    alpha: int

    def __init__(
        self,
        red: int | None = None,
        green: int | None = None,
        blue: int | None = None,
        alpha: int | None = None,
    ) -> None:
        no_colour = red is None and green is None and blue is None
        self.red = red or 0
        self.green = green or 0
        self.blue = blue or 0
        if alpha is None:
            alpha = 0 if no_colour else alpha_filler(8)
        self.alpha = alpha


Palette = list[RgbPixel]
"""A colour map: palette entries indexed by pixel value."""

Transparency = list[int]
"""Per-palette-entry alpha values from a tRNS chunk."""