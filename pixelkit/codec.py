"""Reading and writing PNG data streams: chunks, filtering and interlacing."""

from __future__ import annotations

import struct
import zlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pixelkit.pixels import COLOR_MASK_ALPHA, COLOR_MASK_RGB, ColorType, PixelFormat, RgbPixel

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

INTERLACE_NONE = 0
INTERLACE_ADAM7 = 1

_MAX_DIMENSION = (1 << 31) - 1
_IDAT_CHUNK_SIZE = 8192

_VALID_DEPTHS = {
    ColorType.GRAY: (1, 2, 4, 8, 16),
    ColorType.RGB: (8, 16),
    ColorType.PALETTE: (1, 2, 4, 8),
    ColorType.GA: (8, 16),
    ColorType.RGBA: (8, 16),
}

# (x origin, y origin, x step, y step) of the seven Adam7 passes.
_ADAM7 = (
    (0, 0, 8, 8),
    (4, 0, 8, 8),
    (0, 4, 4, 8),
    (2, 0, 4, 4),
    (0, 2, 2, 4),
    (1, 0, 2, 2),
    (0, 1, 1, 2),
)


class PngError(Exception):
    """Raised when PNG data cannot be read or written."""


@dataclass
class ImageInfo:
    """The header and colour tables of a PNG image.

    ``transparency`` holds, for palette images, one alpha byte per
    palette entry; for grayscale images the single transparent gray
    sample; for RGB images the transparent red, green and blue samples.
    ``chunks`` names the chunks read before the image data.
    """

    width: int = 0
    height: int = 0
    color_type: ColorType = ColorType.RGB
    bit_depth: int = 8
    interlace: int = INTERLACE_NONE
    compression: int = 0
    filter: int = 0
    palette: list[RgbPixel] = field(default_factory=list)
    transparency: list[int] = field(default_factory=list)
    chunks: set[str] = field(default_factory=set)

    @classmethod
    def for_format(cls, pixel_format: PixelFormat, width: int = 0, height: int = 0) -> ImageInfo:
        """An info describing an image of ``pixel_format`` and the given size."""
        return cls(
            width=width,
            height=height,
            color_type=pixel_format.color_type,
            bit_depth=pixel_format.bit_depth,
        )

    @property
    def channels(self) -> int:
        return PixelFormat((ColorType(self.color_type), 8)).channels()

    @property
    def bits_per_pixel(self) -> int:
        return self.channels * self.bit_depth

    def row_size(self, width: int) -> int:
        """Bytes needed by a row of ``width`` pixels."""
        return (width * self.bits_per_pixel + 7) // 8

    @property
    def row_bytes(self) -> int:
        return self.row_size(self.width)

    def has_chunk(self, name: str) -> bool:
        return name in self.chunks

    def pixel_format(self) -> PixelFormat:
        """The pixel format matching the colour type and bit depth."""
        try:
            return PixelFormat((ColorType(self.color_type), self.bit_depth))
        except ValueError:
            raise PngError(
                f"no pixel format for color type {self.color_type}, bit depth {self.bit_depth}"
            ) from None

    def _validate_header(self) -> ColorType:
        if not (0 < self.width <= _MAX_DIMENSION and 0 < self.height <= _MAX_DIMENSION):
            raise PngError(f"invalid image dimensions {self.width}x{self.height}")
        try:
            color = ColorType(self.color_type)
        except ValueError:
            raise PngError(f"invalid color type {self.color_type}") from None
        if self.bit_depth not in _VALID_DEPTHS[color]:
            raise PngError(f"invalid bit depth {self.bit_depth} for color type {int(color)}")
        if self.compression != 0:
            raise PngError(f"unknown compression method {self.compression}")
        if self.filter != 0:
            raise PngError(f"unknown filter method {self.filter}")
        if self.interlace not in (INTERLACE_NONE, INTERLACE_ADAM7):
            raise PngError(f"unknown interlace method {self.interlace}")
        return color

    def validate(self) -> None:
        """Raise PngError unless the info describes a writable image."""
        color = self._validate_header()
        if color == ColorType.PALETTE:
            if not self.palette:
                raise PngError("palette image requires a palette")
            if len(self.palette) > min(256, 1 << self.bit_depth):
                raise PngError(f"too many palette entries: {len(self.palette)}")
        elif self.palette:
            if not color & COLOR_MASK_RGB:
                raise PngError("a palette is not allowed for grayscale images")
            if len(self.palette) > 256:
                raise PngError(f"too many palette entries: {len(self.palette)}")
        for entry in self.palette:
            if not all(0 <= c <= 255 for c in (entry.red, entry.green, entry.blue)):
                raise PngError(f"palette entry out of range: {entry}")

        if not self.transparency:
            return
        if color & COLOR_MASK_ALPHA:
            raise PngError("transparency is not allowed for images with an alpha channel")
        if color == ColorType.PALETTE:
            if len(self.transparency) > len(self.palette):
                raise PngError("more transparency entries than palette entries")
            limit = 255
        else:
            expected = 1 if color == ColorType.GRAY else 3
            if len(self.transparency) != expected:
                raise PngError(f"transparency needs {expected} samples")
            limit = (1 << self.bit_depth) - 1
        if not all(0 <= v <= limit for v in self.transparency):
            raise PngError("transparency value out of range")


def _pass_extent(size: int, origin: int, step: int) -> int:
    return 0 if size <= origin else (size - origin + step - 1) // step


def _get_bits(row: Any, index: int, bpp: int) -> int:
    per_byte = 8 // bpp
    shift = (8 - bpp) - (index % per_byte) * bpp
    return (row[index // per_byte] >> shift) & ((1 << bpp) - 1)


def _set_bits(row: bytearray, index: int, bpp: int, value: int) -> None:
    per_byte = 8 // bpp
    shift = (8 - bpp) - (index % per_byte) * bpp
    mask = (1 << bpp) - 1
    position = index // per_byte
    row[position] = (row[position] & ~(mask << shift) & 0xFF) | (value << shift)


def _copy_pixel(src: Any, src_index: int, dst: bytearray, dst_index: int, bpp: int) -> None:
    if bpp >= 8:
        n = bpp // 8
        dst[dst_index * n:(dst_index + 1) * n] = src[src_index * n:(src_index + 1) * n]
    else:
        _set_bits(dst, dst_index, bpp, _get_bits(src, src_index, bpp))


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    return b if pb <= pc else c


def _unfilter(filter_type: int, line: bytearray, prev: Any, step: int) -> None:
    if filter_type == 0:
        return
    if filter_type == 1:
        for i in range(step, len(line)):
            line[i] = (line[i] + line[i - step]) & 0xFF
    elif filter_type == 2:
        for i, up in enumerate(prev):
            line[i] = (line[i] + up) & 0xFF
    elif filter_type == 3:
        for i, up in enumerate(prev):
            left = line[i - step] if i >= step else 0
            line[i] = (line[i] + ((left + up) >> 1)) & 0xFF
    elif filter_type == 4:
        for i, up in enumerate(prev):
            left = line[i - step] if i >= step else 0
            upper_left = prev[i - step] if i >= step else 0
            line[i] = (line[i] + _paeth(left, up, upper_left)) & 0xFF
    else:
        raise PngError(f"unknown filter type {filter_type}")


def _unfilter_rows(raw: bytes, offset: int, size: int, count: int, step: int) -> tuple[list[bytes], int]:
    rows: list[bytes] = []
    prev: Any = bytes(size)
    for _ in range(count):
        end = offset + 1 + size
        if end > len(raw):
            raise PngError("not enough image data")
        line = bytearray(raw[offset + 1:end])
        _unfilter(raw[offset], line, prev, step)
        rows.append(bytes(line))
        prev = line
        offset = end
    return rows, offset


def _decode(info: ImageInfo, raw: bytes) -> list[bytes]:
    bpp = info.bits_per_pixel
    step = max(1, bpp // 8)
    if info.interlace == INTERLACE_NONE:
        rows, _ = _unfilter_rows(raw, 0, info.row_bytes, info.height, step)
        return rows
    full = [bytearray(info.row_bytes) for _ in range(info.height)]
    offset = 0
    for x0, y0, dx, dy in _ADAM7:
        pass_width = _pass_extent(info.width, x0, dx)
        pass_height = _pass_extent(info.height, y0, dy)
        if not pass_width or not pass_height:
            continue
        rows, offset = _unfilter_rows(raw, offset, info.row_size(pass_width), pass_height, step)
        for j, row in enumerate(rows):
            target = full[y0 + j * dy]
            for i in range(pass_width):
                _copy_pixel(row, i, target, x0 + i * dx, bpp)
    return [bytes(row) for row in full]


def _encode(info: ImageInfo, rows: list[bytes]) -> bytes:
    if info.interlace == INTERLACE_NONE:
        return b"".join(b"\x00" + row for row in rows)
    bpp = info.bits_per_pixel
    parts: list[bytes] = []
    for x0, y0, dx, dy in _ADAM7:
        pass_width = _pass_extent(info.width, x0, dx)
        pass_height = _pass_extent(info.height, y0, dy)
        if not pass_width or not pass_height:
            continue
        for j in range(pass_height):
            source = rows[y0 + j * dy]
            line = bytearray(info.row_size(pass_width))
            for i in range(pass_width):
                _copy_pixel(source, x0 + i * dx, line, i, bpp)
            parts.append(b"\x00" + bytes(line))
    return b"".join(parts)


def _chunk(name: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + name + data + struct.pack(">I", zlib.crc32(name + data))


class PngReader:
    """Reads a PNG image from a binary stream: first its info, then its rows."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self.info: ImageInfo | None = None
        self._idat = bytearray()
        self._idat_closed = False
        self._done = False

    def _read_exact(self, size: int) -> bytes:
        try:
            data = self._stream.read(size)
        except (OSError, ValueError) as exc:
            raise PngError(str(exc)) from exc
        if data is None or len(data) < size:
            raise PngError("istream::read() failed")
        return bytes(data)

    def _read_chunk(self) -> tuple[str, bytes]:
        length, raw_name = struct.unpack(">I4s", self._read_exact(8))
        if length > _MAX_DIMENSION:
            raise PngError("chunk data is too large")
        if not all(65 <= c <= 90 or 97 <= c <= 122 for c in raw_name):
            raise PngError(f"invalid chunk type {raw_name!r}")
        name = raw_name.decode("ascii")
        data = self._read_exact(length)
        (crc,) = struct.unpack(">I", self._read_exact(4))
        if zlib.crc32(raw_name + data) != crc:
            raise PngError(f"CRC error in {name} chunk")
        return name, data

    @staticmethod
    def _parse_header(data: bytes) -> ImageInfo:
        if len(data) != 13:
            raise PngError("invalid IHDR chunk length")
        width, height, depth, color, compression, filter_method, interlace = struct.unpack(
            ">IIBBBBB", data
        )
        info = ImageInfo(
            width=width,
            height=height,
            color_type=color,
            bit_depth=depth,
            interlace=interlace,
            compression=compression,
            filter=filter_method,
        )
        info.color_type = info._validate_header()
        info.chunks.add("IHDR")
        return info

    @staticmethod
    def _handle_chunk(info: ImageInfo, name: str, data: bytes) -> None:
        if name == "IHDR":
            raise PngError("duplicate IHDR chunk")
        if name == "PLTE":
            if not info.color_type & COLOR_MASK_RGB:
                raise PngError("invalid PLTE chunk for a grayscale image")
            if info.palette:
                raise PngError("duplicate PLTE chunk")
            entries = len(data) // 3
            if len(data) % 3 or not 0 < entries <= 256:
                raise PngError("invalid PLTE chunk length")
            if info.color_type == ColorType.PALETTE and entries > 1 << info.bit_depth:
                raise PngError("too many palette entries")
            info.palette = [RgbPixel(*data[i:i + 3]) for i in range(0, len(data), 3)]
        elif name == "tRNS":
            if info.color_type == ColorType.PALETTE:
                if not info.palette:
                    raise PngError("tRNS chunk before PLTE")
                if len(data) > len(info.palette):
                    raise PngError("invalid tRNS chunk length")
                info.transparency = list(data)
            elif info.color_type in (ColorType.GRAY, ColorType.RGB):
                samples = 1 if info.color_type == ColorType.GRAY else 3
                if len(data) != 2 * samples:
                    raise PngError("invalid tRNS chunk length")
                info.transparency = list(struct.unpack(f">{samples}H", data))
            else:
                return
        elif name[0].isupper():
            raise PngError(f"unknown critical chunk {name}")
        info.chunks.add(name)

    def read_info(self) -> ImageInfo:
        """Read the header and every chunk up to the image data."""
        if self.info is not None:
            return self.info
        if self._read_exact(len(PNG_SIGNATURE)) != PNG_SIGNATURE:
            raise PngError("not a PNG file")
        name, data = self._read_chunk()
        if name != "IHDR":
            raise PngError("missing IHDR chunk")
        info = self._parse_header(data)
        while True:
            name, data = self._read_chunk()
            if name == "IDAT":
                info.chunks.add(name)
                self._idat += data
                break
            if name == "IEND":
                raise PngError("missing IDAT chunk")
            self._handle_chunk(info, name, data)
        if info.color_type == ColorType.PALETTE and not info.palette:
            raise PngError("missing PLTE chunk")
        self.info = info
        return info

    def read_rows(self) -> list[bytes]:
        """Read the rest of the stream and return the unfiltered rows, top to bottom."""
        info = self.read_info()
        if self._done:
            raise PngError("image data has already been read")
        while True:
            name, data = self._read_chunk()
            if name == "IDAT":
                if self._idat_closed:
                    raise PngError("IDAT chunks are not consecutive")
                self._idat += data
                continue
            if name == "IEND":
                break
            self._idat_closed = True
            if name in ("IHDR", "PLTE"):
                raise PngError(f"{name} chunk after image data")
            if name[0].isupper():
                raise PngError(f"unknown critical chunk {name}")
        self._done = True
        try:
            raw = zlib.decompress(bytes(self._idat))
        except zlib.error as exc:
            raise PngError(f"image data decompression failed: {exc}") from exc
        return _decode(info, raw)


class PngWriter:
    """Writes a PNG image to a binary stream."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    def _emit(self, data: bytes) -> None:
        try:
            self._stream.write(data)
        except (OSError, ValueError) as exc:
            raise PngError(str(exc)) from exc

    def _flush(self) -> None:
        flush = getattr(self._stream, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except (OSError, ValueError) as exc:
            raise PngError(str(exc)) from exc

    def write(self, info: ImageInfo, rows: Iterable[Any]) -> None:
        """Write ``info`` and the packed pixel ``rows`` as a complete PNG stream."""
        info.validate()
        data = [bytes(row) for row in rows]
        if len(data) != info.height:
            raise PngError(f"expected {info.height} rows, got {len(data)}")
        expected = info.row_bytes
        for row in data:
            if len(row) != expected:
                raise PngError(f"row has {len(row)} bytes, expected {expected}")

        header = struct.pack(
            ">IIBBBBB",
            info.width,
            info.height,
            info.bit_depth,
            int(info.color_type),
            info.compression,
            info.filter,
            info.interlace,
        )
        self._emit(PNG_SIGNATURE)
        self._emit(_chunk(b"IHDR", header))
        if info.palette:
            table = bytes(c for p in info.palette for c in (p.red, p.green, p.blue))
            self._emit(_chunk(b"PLTE", table))
        if info.transparency:
            if info.color_type == ColorType.PALETTE:
                trns = bytes(info.transparency)
            else:
                trns = struct.pack(f">{len(info.transparency)}H", *info.transparency)
            self._emit(_chunk(b"tRNS", trns))
        compressed = zlib.compress(_encode(info, data))
        for start in range(0, len(compressed), _IDAT_CHUNK_SIZE):
            self._emit(_chunk(b"IDAT", compressed[start:start + _IDAT_CHUNK_SIZE]))
        self._emit(_chunk(b"IEND", b""))
        self._flush()