"""Colour space conversion and enforcement for decoded PNG rows."""

from __future__ import annotations

import dataclasses
import struct
from collections.abc import Iterable, Sequence
from typing import Any

from pixelkit.codec import ImageInfo, PngError
from pixelkit.pixels import COLOR_MASK_PALETTE, COLOR_MASK_RGB, ColorType, PixelFormat

# Default luminance weights for RGB to gray conversion, out of 1 << 15.
_RED_WEIGHT = 6968
_GREEN_WEIGHT = 23434
_BLUE_WEIGHT = 32768 - _RED_WEIGHT - _GREEN_WEIGHT

_CONVERTIBLE = frozenset(
    {
        PixelFormat.RGB,
        PixelFormat.RGB_16,
        PixelFormat.RGBA,
        PixelFormat.RGBA_16,
        PixelFormat.GRAY,
        PixelFormat.GRAY_16,
        PixelFormat.GA,
        PixelFormat.GA_16,
    }
)

_COLOR_NAMES = {
    ColorType.RGB: "RGB",
    ColorType.RGBA: "RGBA",
    ColorType.GRAY: "Grayscale",
    ColorType.GA: "Gray+Alpha",
    ColorType.PALETTE: "Colormap",
}


def wrong_color_space_message(target: PixelFormat) -> str:
    """The error text used when an image is not in the ``target`` colour space."""
    target = PixelFormat(target)
    return f"{target.bit_depth}-bit {_COLOR_NAMES[target.color_type]} color space required"


def require_color_space(info: ImageInfo, target: PixelFormat) -> ImageInfo:
    """Return ``info`` unchanged if it matches ``target`` exactly; raise PngError otherwise."""
    target = PixelFormat(target)
    if info.color_type != target.color_type or info.bit_depth != target.bit_depth:
        raise PngError(wrong_color_space_message(target))
    return info


def _unpack_samples(row: Any, count: int, depth: int) -> list[int]:
    if depth == 8:
        return list(row[:count])
    if depth == 16:
        return list(struct.unpack(f">{count}H", bytes(row[: 2 * count])))
    per_byte = 8 // depth
    mask = (1 << depth) - 1
    return [
        (row[i // per_byte] >> ((8 - depth) - (i % per_byte) * depth)) & mask
        for i in range(count)
    ]


def _group(samples: list[int], channels: int) -> list[tuple[int, ...]]:
    return list(zip(*[iter(samples)] * channels))


def _source_pixels(
    info: ImageInfo, row: Any
) -> tuple[list[tuple[tuple[int, ...], int | None]], int]:
    """Split a row into (colour samples, alpha or None) pairs at the expanded depth."""
    color = ColorType(info.color_type)
    depth = info.bit_depth
    channels = info.channels
    samples = _unpack_samples(row, info.width * channels, depth)
    trns = list(info.transparency)

    if color == ColorType.PALETTE:
        result = []
        for index in samples:
            if index < len(info.palette):
                entry = info.palette[index]
                rgb = (entry.red, entry.green, entry.blue)
            else:
                rgb = (0, 0, 0)
            alpha = trns[index] if index < len(trns) else 255
            result.append((rgb, alpha if trns else None))
        return result, 8

    if color in (ColorType.GA, ColorType.RGBA):
        return [(pixel[:-1], pixel[-1]) for pixel in _group(samples, channels)], depth

    expanded = max(depth, 8)
    opaque = (1 << expanded) - 1
    scale = 255 // ((1 << depth) - 1) if depth < 8 else 1
    key = tuple(trns) if trns else None
    result = []
    for pixel in _group(samples, channels):
        alpha = None if key is None else (0 if pixel == key else opaque)
        result.append((tuple(v * scale for v in pixel), alpha))
    return result, expanded


def _to_gray(rgb: tuple[int, ...]) -> int:
    red, green, blue = rgb
    if red == green == blue:
        return red
    return (_RED_WEIGHT * red + _GREEN_WEIGHT * green + _BLUE_WEIGHT * blue) >> 15


def _convert_row(info: ImageInfo, row: Any, target: PixelFormat) -> bytes:
    pixels, depth = _source_pixels(info, row)
    src_rgb = bool(info.color_type & (COLOR_MASK_RGB | COLOR_MASK_PALETTE))
    dst_rgb = bool(target.color_type & COLOR_MASK_RGB)
    strip_16 = depth == 16 and target.bit_depth == 8
    out_depth = 8 if strip_16 else depth
    filler = (1 << out_depth) - 1

    values: list[int] = []
    for colour, alpha in pixels:
        if src_rgb and not dst_rgb:
            colour = (_to_gray(colour),)
        elif not src_rgb and dst_rgb:
            colour = colour * 3
        if strip_16:
            colour = tuple(v >> 8 for v in colour)
            alpha = None if alpha is None else alpha >> 8
        values.extend(colour)
        if target.has_alpha():
            values.append(filler if alpha is None else alpha)

    # Widening to 16 bits keeps each 8-bit value in the low byte.
    if target.bit_depth == 16:
        return struct.pack(f">{len(values)}H", *values)
    return bytes(values)


def convert_color_space(
    info: ImageInfo, rows: Iterable[Any], target: PixelFormat
) -> tuple[ImageInfo, list[bytes]]:
    """Convert decoded rows of ``info`` to the ``target`` pixel format.

    ``rows`` are the unfiltered, packed rows of the source image.  Returns
    a new info describing the converted image and the converted rows.
    Palettes are expanded, transparency becomes alpha or is dropped,
    16-bit samples keep their high byte and 8-bit samples are widened
    into the low byte of a 16-bit sample.
    """
    target = PixelFormat(target)
    if target not in _CONVERTIBLE:
        raise ValueError(f"no color space conversion to {target.name}")
    source_rows: Sequence[Any] = list(rows)
    if len(source_rows) != info.height:
        raise PngError(f"expected {info.height} rows, got {len(source_rows)}")
    needed = info.row_bytes
    for row in source_rows:
        if len(row) < needed:
            raise PngError(f"row has {len(row)} bytes, expected {needed}")

    converted = [_convert_row(info, row, target) for row in source_rows]
    new_info = dataclasses.replace(
        info,
        color_type=target.color_type,
        bit_depth=target.bit_depth,
        palette=[] if info.color_type == ColorType.PALETTE else list(info.palette),
        transparency=[],
        chunks=set(info.chunks) - {"tRNS"},
    )
    return new_info, converted