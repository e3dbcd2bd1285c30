import io
import random
import struct
import zlib

import pytest

from pixelkit.codec import (
    INTERLACE_ADAM7,
    INTERLACE_NONE,
    PNG_SIGNATURE,
    ImageInfo,
    PngError,
    PngReader,
    PngWriter,
)
from pixelkit.pixel_buffer import PackedPixelRow
from pixelkit.pixels import ColorType, PixelFormat, RgbPixel


def _chunk(name, data):
    return struct.pack(">I", len(data)) + name + data + struct.pack(">I", zlib.crc32(name + data))


def _png(width, height, depth, color, raw, extra=b""):
    header = struct.pack(">IIBBBBB", width, height, depth, color, 0, 0, 0)
    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", header)
        + extra
        + _chunk(b"IDAT", zlib.compress(raw))
        + _chunk(b"IEND", b"")
    )


def _make_rows(info):
    rows = []
    for y in range(info.height):
        if info.bit_depth < 8 and info.channels == 1:
            row = PackedPixelRow(info.bit_depth, info.width)
            for x in range(info.width):
                row[x] = x + 3 * y
            rows.append(bytes(row.data()))
        else:
            rows.append(bytes((x * 7 + y * 13 + 1) & 0xFF for x in range(info.row_bytes)))
    return rows


def _encode(info, rows):
    out = io.BytesIO()
    PngWriter(out).write(info, rows)
    return out.getvalue()


def _decode(data):
    reader = PngReader(io.BytesIO(data))
    info = reader.read_info()
    return info, reader.read_rows()


def test_signature_written_first():
    info = ImageInfo.for_format(PixelFormat.RGB, 2, 2)
    data = _encode(info, _make_rows(info))
    assert data[:8] == b"\x89PNG\r\n\x1a\n"


def test_header_chunk_fields():
    info = ImageInfo.for_format(PixelFormat.RGBA_16, 5, 3)
    data = _encode(info, _make_rows(info))
    assert data[12:16] == b"IHDR"
    fields = struct.unpack(">IIBBBBB", data[16:29])
    assert fields == (5, 3, 16, int(ColorType.RGBA), 0, 0, 0)


def test_stream_ends_with_iend():
    info = ImageInfo.for_format(PixelFormat.GRAY, 1, 1)
    data = _encode(info, [b"\x00"])
    assert data[-12:] == b"\x00\x00\x00\x00IEND\xaeB`\x82"


@pytest.mark.parametrize("interlace", [INTERLACE_NONE, INTERLACE_ADAM7])
@pytest.mark.parametrize(
    "pixel_format",
    [
        PixelFormat.RGB,
        PixelFormat.RGB_16,
        PixelFormat.RGBA,
        PixelFormat.GA_16,
        PixelFormat.GRAY,
        PixelFormat.GRAY_1,
        PixelFormat.GRAY_2,
        PixelFormat.GRAY_4,
        PixelFormat.GRAY_16,
    ],
)
def test_round_trip(pixel_format, interlace):
    info = ImageInfo.for_format(pixel_format, 11, 9)
    info.interlace = interlace
    rows = _make_rows(info)
    read_info, read_rows = _decode(_encode(info, rows))
    assert read_rows == rows
    assert (read_info.width, read_info.height) == (11, 9)
    assert read_info.pixel_format() is pixel_format
    assert read_info.interlace == interlace


def test_palette_and_transparency_round_trip():
    info = ImageInfo.for_format(PixelFormat.INDEX_2, 6, 2)
    info.palette = [RgbPixel(255, 0, 0), RgbPixel(0, 255, 0), RgbPixel(0, 0, 255)]
    info.transparency = [0, 128]
    rows = _make_rows(info)
    read_info, read_rows = _decode(_encode(info, rows))
    assert read_info.palette == info.palette
    assert read_info.transparency == [0, 128]
    assert read_info.has_chunk("PLTE")
    assert read_info.has_chunk("tRNS")
    assert read_rows == rows


@pytest.mark.parametrize(
    "pixel_format, transparency",
    [(PixelFormat.GRAY_16, [1000]), (PixelFormat.RGB, [1, 2, 3])],
)
def test_colour_key_transparency_round_trip(pixel_format, transparency):
    info = ImageInfo.for_format(pixel_format, 3, 3)
    info.transparency = transparency
    read_info, _ = _decode(_encode(info, _make_rows(info)))
    assert read_info.transparency == transparency


def test_large_image_uses_several_idat_chunks():
    gen = random.Random(3)
    info = ImageInfo.for_format(PixelFormat.RGB, 200, 200)
    rows = [gen.randbytes(info.row_bytes) for _ in range(info.height)]
    data = _encode(info, rows)
    assert data.count(b"IDAT") > 1
    _, read_rows = _decode(data)
    assert read_rows == rows


def test_sub_and_up_filters():
    raw = b"\x01\x05\x00\x00" + b"\x02\x00\x00\x00"
    _, rows = _decode(_png(3, 2, 8, 0, raw))
    assert rows == [b"\x05\x05\x05", b"\x05\x05\x05"]


def test_paeth_filter_first_row():
    raw = b"\x04\x09\x00\x00"
    _, rows = _decode(_png(3, 1, 8, 0, raw))
    assert rows == [b"\x09\x09\x09"]


def test_unknown_filter_type():
    raw = b"\x05\x00\x00\x00"
    reader = PngReader(io.BytesIO(_png(3, 1, 8, 0, raw)))
    with pytest.raises(PngError, match="filter"):
        reader.read_rows()


def test_bad_signature():
    with pytest.raises(PngError, match="not a PNG"):
        PngReader(io.BytesIO(b"GIF89a" + bytes(20))).read_info()


def test_crc_error():
    info = ImageInfo.for_format(PixelFormat.RGB, 2, 2)
    data = bytearray(_encode(info, _make_rows(info)))
    data[19] ^= 0xFF
    with pytest.raises(PngError, match="CRC"):
        PngReader(io.BytesIO(bytes(data))).read_info()


def test_truncated_stream():
    info = ImageInfo.for_format(PixelFormat.RGB, 4, 4)
    data = _encode(info, _make_rows(info))
    reader = PngReader(io.BytesIO(data[:-20]))
    with pytest.raises(PngError, match=r"istream::read\(\) failed"):
        reader.read_rows()


def test_stream_exception_becomes_png_error():
    class Broken:
        def read(self, size):
            raise OSError("disk gone")

    with pytest.raises(PngError, match="disk gone"):
        PngReader(Broken()).read_info()


def test_missing_palette():
    with pytest.raises(PngError, match="PLTE"):
        PngReader(io.BytesIO(_png(1, 1, 8, 3, b"\x00\x00"))).read_info()


def test_unknown_critical_chunk():
    extra = _chunk(b"ABCD", b"xyz")
    with pytest.raises(PngError, match="critical"):
        PngReader(io.BytesIO(_png(1, 1, 8, 0, b"\x00\x07", extra))).read_info()


def test_unknown_ancillary_chunk_is_skipped():
    extra = _chunk(b"teSt", b"anything")
    _, rows = _decode(_png(1, 1, 8, 0, b"\x00\x07", extra))
    assert rows == [b"\x07"]


def test_rows_read_only_once():
    reader = PngReader(io.BytesIO(_png(1, 1, 8, 0, b"\x00\x07")))
    assert reader.read_rows() == [b"\x07"]
    with pytest.raises(PngError):
        reader.read_rows()


def test_wrong_row_count():
    info = ImageInfo.for_format(PixelFormat.GRAY, 2, 2)
    with pytest.raises(PngError, match="rows"):
        PngWriter(io.BytesIO()).write(info, [b"\x00\x00"])


def test_wrong_row_length():
    info = ImageInfo.for_format(PixelFormat.GRAY, 2, 2)
    with pytest.raises(PngError, match="bytes"):
        PngWriter(io.BytesIO()).write(info, [b"\x00\x00", b"\x00"])


@pytest.mark.parametrize(
    "info",
    [
        ImageInfo(width=2, height=2, color_type=ColorType.RGB, bit_depth=4),
        ImageInfo(width=0, height=2, color_type=ColorType.GRAY, bit_depth=8),
        ImageInfo(width=2, height=2, color_type=ColorType.PALETTE, bit_depth=8),
        ImageInfo(width=2, height=2, color_type=ColorType.RGBA, bit_depth=8, transparency=[1]),
        ImageInfo(width=2, height=2, color_type=ColorType.GRAY, bit_depth=8, interlace=2),
    ],
)
def test_invalid_info_rejected(info):
    with pytest.raises(PngError):
        PngWriter(io.BytesIO()).write(info, [])


def test_write_failure_becomes_png_error():
    class Full:
        def write(self, data):
            raise OSError("no space left")

    info = ImageInfo.for_format(PixelFormat.GRAY, 1, 1)
    with pytest.raises(PngError, match="no space left"):
        PngWriter(Full()).write(info, [b"\x00"])


def test_row_bytes_for_packed_pixels():
    info = ImageInfo.for_format(PixelFormat.GRAY_1, 9, 1)
    assert info.row_bytes == 2
    assert info.bits_per_pixel == 1


def test_pixel_format_lookup():
    info = ImageInfo(width=1, height=1, color_type=ColorType.GA, bit_depth=16)
    assert info.pixel_format() is PixelFormat.GA_16
    assert info.channels == 2
    bad = ImageInfo(width=1, height=1, color_type=ColorType.RGB, bit_depth=2)
    with pytest.raises(PngError):
        bad.pixel_format()