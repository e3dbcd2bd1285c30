"""PNG images, pixel types and buffers, colour space conversion, random numbers and option parsing."""

__version__ = "1.0.0"
__all__ = ["argparsing", "codec", "colorspace", "image", "pixel_buffer", "pixels", "random"]