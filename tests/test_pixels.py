import pytest

from pixelkit.pixels import (
    COLOR_MASK_ALPHA,
    COLOR_MASK_PALETTE,
    COLOR_MASK_RGB,
    ColorType,
    GaPixel,
    PackedPixel,
    PixelFormat,
    RgbaPixel,
    RgbPixel,
    alpha_filler,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, ColorType.GRAY),
        (2, ColorType.RGB),
        (3, ColorType.PALETTE),
        (4, ColorType.GA),
        (6, ColorType.RGBA),
    ],
)
def test_color_type_codes_match_png(code, expected):
    assert ColorType(code) is expected
    assert int(ColorType(code)) == code


def test_color_type_masks():
    assert ColorType(6) & COLOR_MASK_ALPHA
    assert not ColorType(2) & COLOR_MASK_ALPHA
    assert ColorType(3) & COLOR_MASK_PALETTE
    assert ColorType(3) & COLOR_MASK_RGB
    assert PixelFormat.RGBA_16.has_alpha() is bool(
        PixelFormat.RGBA_16.color_type & COLOR_MASK_ALPHA
    )


@pytest.mark.parametrize("depth", [8, 16])
def test_alpha_filler_is_all_ones(depth):
    assert alpha_filler(depth) == (1 << depth) - 1


def test_alpha_filler_rejects_packed_depths():
    with pytest.raises(ValueError):
        alpha_filler(4)


@pytest.mark.parametrize(
    "fmt, channels, alpha",
    [
        (PixelFormat.RGB, 3, False),
        (PixelFormat.RGBA_16, 4, True),
        (PixelFormat.GRAY_2, 1, False),
        (PixelFormat.GA, 2, True),
        (PixelFormat.INDEX_4, 1, False),
    ],
)
def test_pixel_format_channels_and_alpha(fmt, channels, alpha):
    assert fmt.channels() == channels
    assert fmt.has_alpha() is alpha


def test_pixel_format_attributes():
    assert PixelFormat.GRAY_16.color_type is ColorType.GRAY
    assert PixelFormat.GRAY_16.bit_depth == 16
    assert PixelFormat.GRAY_16.channels() == 1
    assert PixelFormat.GRAY_16.has_alpha() is False
    assert PixelFormat.INDEX.color_type is ColorType.PALETTE
    assert PixelFormat.INDEX.channels() == 1


@pytest.mark.parametrize("bits", [1, 2, 4])
def test_packed_pixel_masks_value(bits):
    pixel = PackedPixel(0xFF, bits)
    assert pixel.bit_mask() == (1 << bits) - 1
    assert int(pixel) == pixel.bit_mask()
    assert pixel.bit_depth == bits


def test_packed_pixel_keeps_small_value():
    assert int(PackedPixel(1, 2)) == 1
    assert PackedPixel(5, 4) == PackedPixel(5, 4)
    assert PackedPixel(1, 1) != PackedPixel(1, 2)


@pytest.mark.parametrize("bits", [0, 3, 8])
def test_packed_pixel_rejects_bad_depth(bits):
    with pytest.raises(ValueError):
        PackedPixel(0, bits)


def test_ga_pixel_defaults_to_opaque():
    pixel = GaPixel(10)
    assert pixel.value == 10
    assert pixel.alpha == alpha_filler(8)


def test_rgb_pixel_fields():
    pixel = RgbPixel(255, 0, 0)
    assert (pixel.red, pixel.green, pixel.blue) == (255, 0, 0)
    assert RgbPixel() == RgbPixel(0, 0, 0)


def test_rgba_default_is_transparent_black():
    pixel = RgbaPixel()
    assert (pixel.red, pixel.green, pixel.blue, pixel.alpha) == (0, 0, 0, 0)


def test_rgba_with_colour_defaults_to_opaque():
    pixel = RgbaPixel(1, 2, 3)
    assert pixel.alpha == alpha_filler(8)
    assert RgbaPixel(1, 2, 3, 7).alpha == 7
    assert RgbaPixel(1, 2, 3) == RgbaPixel(1, 2, 3, alpha_filler(8))