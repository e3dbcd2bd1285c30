# pixelkit

pixelkit is a small toolkit for working with raster images in plain Python. It has no dependencies and uses only the standard library (`zlib`, `struct`, `random`).

The package provides:

- **`pixelkit.pixels`**: pixel types and formats.
  - `ColorType` holds the PNG colour type codes.
  - `PixelFormat` combines a colour type with a bit depth, for example `RGB`, `RGBA_16`, `GRAY_1`, `GA` or `INDEX_4`.
  - `PackedPixel` is a 1-, 2- or 4-bit value.
  - `GaPixel`, `RgbPixel` and `RgbaPixel` are the multi-sample pixel types.
  - `alpha_filler(bit_depth)` returns the fully opaque alpha value for a bit depth.
- **`pixelkit.pixel_buffer`**: `PixelBuffer` is a grid of pixels held as a list of rows. For sub-byte formats the rows are `PackedPixelRow` objects, which store several pixels per byte.
- **`pixelkit.codec`**: `PngReader` and `PngWriter` read and write PNG data streams. They handle chunks, CRCs, row filters and Adam7 interlacing. Two helpers go with them:
  - `ImageInfo` describes the header, palette and transparency.
  - `PngError` is raised for bad or unsupported data.
- **`pixelkit.colorspace`**: colour space helpers.
  - `convert_color_space(info, rows, target)` converts decoded rows to another pixel format.
  - `require_color_space(info, target)` raises `PngError` unless the image is already in that format.
  - `wrong_color_space_message(target)` returns the error text, for example `"8-bit RGB color space required"`.
- **`pixelkit.image`**: `Image` is a PNG image of one pixel format. It can be read from, and written to, a path or a binary stream.
- **`pixelkit.random`**: `Random`, a seedable source of pseudo-random numbers.
- **`pixelkit.argparsing`**: `ArgumentParsing` registers typed command-line options and queries them afterwards. Option types come from `ArgType`.

## Installation

```
pip install .
```

To also install the test requirements:

```
pip install ".[test]"
```

## Writing an image

```python
from pixelkit.image import Image
from pixelkit.pixels import PixelFormat, RgbPixel

img = Image(PixelFormat.RGB, 64, 48)
for y in range(img.height()):
    for x in range(img.width()):
        img[y][x] = RgbPixel(255, 0, 0)
img.write("red.png")
```

`img[y]` gives the row without a bounds check. `get_row`, `get_pixel` and `set_pixel` check their indices and raise `IndexError` when an index is out of range.

Sub-byte formats are written the same way, with integers as pixel values:

```python
img = Image(PixelFormat.GRAY_1, 16, 16)
img[3][5] = 1
img.write("bits.png")
```

A palette image needs a palette before it is written:

```python
img = Image(PixelFormat.INDEX, 4, 4)
img.palette = [RgbPixel(0, 0, 0), RgbPixel(255, 255, 255)]
img.set_pixel(1, 1, 1)
img.write("indexed.png")
```

Some settings are properties of the image:

- `transparency` holds the tRNS chunk.
- Setting `interlace_type = 1` makes the image be written Adam7-interlaced.

Writing raises `PngError` in these cases:

- a sample is out of range for the bit depth;
- a palette image has no palette;
- the header is invalid.

## Reading an image

```python
from pixelkit.image import Image
from pixelkit.pixels import PixelFormat

texture = Image(PixelFormat.RGB).read("texture.png")
w, h = texture.width(), texture.height()
texel = texture.get_pixel(w // 2, h // 2)
print(texel.red, texel.green, texel.blue)
```

By default, a file is converted to the image's pixel format when that format has 8 or 16 bits per sample and is not a palette format. The conversion does the following:

- **Palettes:** palette images are expanded to colour.
- **Small grayscale depths:** 1-, 2- and 4-bit grayscale is scaled up to 8 bits.
- **Transparency:** a tRNS chunk becomes an alpha channel, or is dropped when the target format has no alpha.
- **Missing alpha:** when the source has no alpha at all, the target gets full opacity.
- **Gray and RGB:** gray is copied into red, green and blue. RGB is reduced to gray with luminance weights.
- **16 to 8 bits:** 16-bit samples keep their high byte.
- **8 to 16 bits:** 8-bit samples are placed in the low byte of a 16-bit sample.

Images with packed (1-, 2- or 4-bit) or palette formats are not converted. The file must already match, or `PngError` is raised.

You can pass your own transform instead of the default. It is a callable that takes the decoded `ImageInfo` and the list of packed rows, and returns them adapted to the image's format. For example, this insists on an exact match:

```python
from pixelkit.colorspace import require_color_space

img = Image(PixelFormat.RGB)
img.read("in.png", lambda info, rows: (require_color_space(info, PixelFormat.RGB), rows))
```

## Random numbers

```python
from pixelkit.random import Random

rng = Random(42)         # with no seed, one is taken from the clock and process id
rng.uniform()            # 48-bit linear congruential value in [0, 1)
rng.normal()             # standard normal value
rng.box_muller_normal()  # standard normal value by the polar Box-Muller method
rng.lcg()                # 64-bit linear congruential generator, in [0, 1]
rng.taus()               # combined Tausworthe generator
rng.set_seed(7)          # reset every generator
```

## Command-line options

```python
from pixelkit.argparsing import ArgType, ArgumentParsing

args = ArgumentParsing()
args.reg("width", "image width", ArgType.INT, "w")
args.reg("verbose", "more output", ArgType.NONE, "v")
args.process(["-w", "320", "--verbose"])
if args.is_set("width"):
    print(args.value("width"))   # 320
print(args.usage())
```

How `process()` works:

- **Default input:** it reads `sys.argv[1:]` when called without an argument.
- **Long options:** they may be abbreviated to any unambiguous prefix.
- **Option values:** a value may be given inline (`--width=320`, `-w320`) or as the next argument.
- **Errors:** `pixelkit.argparsing.ArgumentError` is raised for the following:
  - unknown or ambiguous options;
  - missing or invalid values;
  - repeated options;
  - positional arguments.
- **Query results:** `value()` returns the converted value. For a flag that was given it returns `True`, and for an option that was not given it returns `None`.

## What pixelkit does not do

- It does not display images and does not open windows.
- It installs no command-line program.
- PNG support covers the header, PLTE, tRNS and image data chunks only.
  - Other chunks, such as gamma or text chunks, are checked and skipped when reading.
  - Those chunks are never written.
- Rows are always written with the "none" filter. There is no filter selection.

## Running the tests

```
pytest
```