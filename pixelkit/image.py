"""An in-memory PNG image: pixel data plus the header and colour tables."""

from __future__ import annotations

import dataclasses
import os
import struct
from collections.abc import Callable, Iterable
from typing import Any, BinaryIO, Union

from pixelkit.codec import ImageInfo, PngError, PngReader, PngWriter
from pixelkit.colorspace import (
    convert_color_space,
    require_color_space,
    wrong_color_space_message,
)
from pixelkit.pixel_buffer import PackedPixelRow, PixelBuffer
from pixelkit.pixels import (
    ColorType,
    GaPixel,
    PixelFormat,
    RgbaPixel,
    RgbPixel,
    alpha_filler,
)

Transform = Callable[[ImageInfo, list], "tuple[ImageInfo, Iterable[Any]]"]
Source = Union[str, "os.PathLike[str]", BinaryIO]


def _default_pixel(pixel_format: PixelFormat) -> Any:
    color = pixel_format.color_type
    if color == ColorType.RGB:
        return RgbPixel()
    if color == ColorType.RGBA:
        return RgbaPixel()
    if color == ColorType.GA:
        return GaPixel(0, alpha_filler(pixel_format.bit_depth))
    return 0


def _is_packed(pixel_format: PixelFormat) -> bool:
    return pixel_format.bit_depth < 8


def _unpack(raw: Any, count: int, depth: int) -> list[int]:
    if depth == 16:
        return list(struct.unpack(f">{count}H", bytes(raw[: 2 * count])))
    return list(raw[:count])


def _decode_row(pixel_format: PixelFormat, raw: Any, width: int) -> list[Any]:
    channels = pixel_format.channels()
    samples = _unpack(raw, width * channels, pixel_format.bit_depth)
    color = pixel_format.color_type
    if channels == 1:
        return samples
    groups = zip(*[iter(samples)] * channels)
    if color == ColorType.RGB:
        return [RgbPixel(*g) for g in groups]
    if color == ColorType.RGBA:
        return [RgbaPixel(*g) for g in groups]
    return [GaPixel(*g) for g in groups]


def _pixel_samples(color: ColorType, pixel: Any) -> tuple[Any, ...]:
    if color == ColorType.RGB:
        return (pixel.red, pixel.green, pixel.blue)
    if color == ColorType.RGBA:
        return (pixel.red, pixel.green, pixel.blue, pixel.alpha)
    if color == ColorType.GA:
        return (pixel.value, pixel.alpha)
    return (pixel,)


def _encode_row(pixel_format: PixelFormat, row: Any) -> bytes:
    if isinstance(row, PackedPixelRow):
        return bytes(row.data())
    depth = pixel_format.bit_depth
    limit = (1 << depth) - 1
    values: list[int] = []
    for pixel in row:
        for sample in _pixel_samples(pixel_format.color_type, pixel):
            value = int(sample)
            if not 0 <= value <= limit:
                raise PngError(f"pixel sample {value} out of range for {depth}-bit data")
            values.append(value)
    if depth == 16:
        return struct.pack(f">{len(values)}H", *values)
    return bytes(values)


class Image:
    """A PNG image of one pixel format, readable from and writable to files or streams."""

    def __init__(
        self,
        pixel_format: PixelFormat = PixelFormat.RGB,
        width: int = 0,
        height: int = 0,
    ) -> None:
        self._format = PixelFormat(pixel_format)
        self._info = ImageInfo.for_format(self._format)
        self._pixbuf = self._new_buffer(0, 0)
        self.resize(width, height)

    def _new_buffer(self, width: int, height: int) -> PixelBuffer:
        packed = self._format.bit_depth if _is_packed(self._format) else None
        return PixelBuffer(width, height, fill=_default_pixel(self._format), packed_bits=packed)

    @property
    def pixel_format(self) -> PixelFormat:
        return self._format

    @property
    def pixbuf(self) -> PixelBuffer:
        return self._pixbuf

    @pixbuf.setter
    def pixbuf(self, buffer: PixelBuffer) -> None:
        expected = self._format.bit_depth if _is_packed(self._format) else None
        if buffer.packed_bits != expected:
            raise ValueError("pixel buffer does not match the image's pixel format")
        self._pixbuf = buffer
        self._info.width = buffer.width
        self._info.height = buffer.height

    @property
    def palette(self) -> list[RgbPixel]:
        return self._info.palette

    @palette.setter
    def palette(self, entries: Iterable[RgbPixel]) -> None:
        self._info.palette = list(entries)

    @property
    def transparency(self) -> list[int]:
        return self._info.transparency

    @transparency.setter
    def transparency(self, values: Iterable[int]) -> None:
        self._info.transparency = list(values)

    @property
    def interlace_type(self) -> int:
        return self._info.interlace

    @interlace_type.setter
    def interlace_type(self, value: int) -> None:
        self._info.interlace = value

    @property
    def compression_type(self) -> int:
        return self._info.compression

    @compression_type.setter
    def compression_type(self, value: int) -> None:
        self._info.compression = value

    @property
    def filter_type(self) -> int:
        return self._info.filter

    @filter_type.setter
    def filter_type(self, value: int) -> None:
        self._info.filter = value

    def _default_transform(self, info: ImageInfo, rows: list) -> tuple[ImageInfo, list]:
        fmt = self._format
        if fmt.bit_depth >= 8 and fmt.color_type != ColorType.PALETTE:
            return convert_color_space(info, rows, fmt)
        return require_color_space(info, fmt), rows

    def read(self, source: Source, transform: Transform | None = None) -> Image:
        """Replace this image with one read from a path or binary stream.

        ``transform`` takes the decoded info and packed rows and returns
        them adapted to this image's pixel format; by default the colour
        space is converted where possible and required otherwise.
        """
        if hasattr(source, "read"):
            self._read_stream(source, transform)
        else:
            with open(source, "rb") as stream:
                self._read_stream(stream, transform)
        return self

    def _read_stream(self, stream: BinaryIO, transform: Transform | None) -> None:
        reader = PngReader(stream)
        info = reader.read_info()
        rows = reader.read_rows()
        apply = transform if transform is not None else self._default_transform
        info, converted = apply(info, rows)
        fmt = self._format
        if info.color_type != fmt.color_type or info.bit_depth != fmt.bit_depth:
            raise PngError(wrong_color_space_message(fmt))
        converted = list(converted)
        if len(converted) != info.height:
            raise PngError(f"expected {info.height} rows, got {len(converted)}")
        needed = info.row_bytes
        buffer = self._new_buffer(info.width, info.height)
        for y, raw in enumerate(converted):
            if len(raw) < needed:
                raise PngError(f"row has {len(raw)} bytes, expected {needed}")
            if buffer.packed_bits is not None:
                data = buffer.get_row(y).data()
                data[:] = bytes(raw[: len(data)])
            else:
                buffer.put_row(y, _decode_row(fmt, raw, info.width))
        self._info = dataclasses.replace(info, chunks=set(info.chunks))
        self._pixbuf = buffer

    def write(self, target: Source) -> None:
        """Write the image as PNG to a path or binary stream."""
        if hasattr(target, "write"):
            self._write_stream(target)
        else:
            with open(target, "wb") as stream:
                self._write_stream(stream)

    def _write_stream(self, stream: BinaryIO) -> None:
        info = dataclasses.replace(
            self._info,
            width=self._pixbuf.width,
            height=self._pixbuf.height,
            color_type=self._format.color_type,
            bit_depth=self._format.bit_depth,
            palette=list(self._info.palette),
            transparency=list(self._info.transparency),
            chunks=set(),
        )
        rows = [_encode_row(self._format, row) for row in self._pixbuf]
        PngWriter(stream).write(info, rows)

    def width(self) -> int:
        return self._pixbuf.width

    def height(self) -> int:
        return self._pixbuf.height

    def resize(self, width: int, height: int) -> None:
        """Change the image size, keeping pixels that still fit."""
        self._pixbuf.resize(width, height)
        self._info.width = width
        self._info.height = height

    def get_row(self, index: int) -> Any:
        """The row at ``index``; raises IndexError when out of range."""
        return self._pixbuf.get_row(index)

    def __getitem__(self, index: int) -> Any:
        return self._pixbuf[index]

    def get_pixel(self, x: int, y: int) -> Any:
        return self._pixbuf.get_pixel(x, y)

    def set_pixel(self, x: int, y: int, pixel: Any) -> None:
        self._pixbuf.set_pixel(x, y, pixel)