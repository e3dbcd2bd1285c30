"""Two-dimensional pixel storage, with bit-packed rows for 1-, 2- and 4-bit pixels."""

from __future__ import annotations

import copy
import operator
from collections.abc import Iterable, Iterator
from typing import Any

from pixelkit.pixels import ALLOWED_PACKED_BITS, PackedPixel


def _check_packed_bits(bits: int) -> None:
    if bits not in ALLOWED_PACKED_BITS:
        raise ValueError(f"packed pixels must be 1, 2 or 4 bits wide, not {bits}")


class PackedPixelRow:
    """A row of packed pixels stored several to a byte, most significant bits first."""

    __slots__ = ("_bits", "_size", "_data")

    def __init__(self, bits: int, size: int = 0) -> None:
        _check_packed_bits(bits)
        self._bits = bits
        self._size = 0
        self._data = bytearray()
        self.resize(size)

    @property
    def bits(self) -> int:
        return self._bits

    @property
    def _per_byte(self) -> int:
        return 8 // self._bits

    @property
    def _mask(self) -> int:
        return (1 << self._bits) - 1

    def resize(self, size: int) -> None:
        """Make room for ``size`` pixels; new pixels are zero."""
        if size < 0:
            raise ValueError(f"row size must not be negative, not {size}")
        nbytes = -(-size // self._per_byte)
        if nbytes < len(self._data):
            del self._data[nbytes:]
        else:
            self._data.extend(bytes(nbytes - len(self._data)))
        self._size = size

    def __len__(self) -> int:
        return self._size

    def _locate(self, index: int) -> tuple[int, int]:
        index = operator.index(index)
        if index < 0:
            raise IndexError(f"pixel index {index} out of range")
        position = index // self._per_byte
        if position >= len(self._data):
            raise IndexError(f"pixel index {index} out of range")
        shift = (8 - self._bits) - (index % self._per_byte) * self._bits
        return position, shift

    def __getitem__(self, index: int) -> PackedPixel:
        position, shift = self._locate(index)
        return PackedPixel((self._data[position] >> shift) & self._mask, self._bits)

    def __setitem__(self, index: int, value: int | PackedPixel) -> None:
        position, shift = self._locate(index)
        bits = int(value) & self._mask
        cleared = self._data[position] & ~(self._mask << shift) & 0xFF
        self._data[position] = cleared | (bits << shift)

    def __iter__(self) -> Iterator[PackedPixel]:
        for index in range(self._size):
            yield self[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PackedPixelRow):
            return (
                self._bits == other._bits
                and self._size == other._size
                and self._data == other._data
            )
        return NotImplemented

    def __repr__(self) -> str:
        values = [int(p) for p in self]
        return f"PackedPixelRow(bits={self._bits}, pixels={values})"

    def copy(self) -> PackedPixelRow:
        row = PackedPixelRow(self._bits)
        row._size = self._size
        row._data = bytearray(self._data)
        return row

    def data(self) -> bytearray:
        """The packed bytes of the row, shared with the row itself."""
        return self._data


class PixelBuffer:
    """Pixel data held as a list of rows.

    Rows are plain lists of pixels, or :class:`PackedPixelRow` objects
    when ``packed_bits`` is given.  New pixels of unpacked rows are
    copies of ``fill``; new packed pixels are zero.
    """

    def __init__(
        self,
        width: int = 0,
        height: int = 0,
        fill: Any = 0,
        packed_bits: int | None = None,
    ) -> None:
        if packed_bits is not None:
            _check_packed_bits(packed_bits)
        self._fill = fill
        self._packed_bits = packed_bits
        self._width = 0
        self._height = 0
        self._rows: list[Any] = []
        self.resize(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def packed_bits(self) -> int | None:
        return self._packed_bits

    def _new_row(self) -> Any:
        if self._packed_bits is not None:
            return PackedPixelRow(self._packed_bits)
        return []

    def _resize_row(self, row: Any, width: int) -> None:
        if isinstance(row, PackedPixelRow):
            row.resize(width)
        elif len(row) > width:
            del row[width:]
        else:
            row.extend(copy.copy(self._fill) for _ in range(width - len(row)))

    def resize(self, width: int, height: int) -> None:
        """Change the dimensions, keeping the pixels that still fit."""
        if width < 0 or height < 0:
            raise ValueError(f"dimensions must not be negative: {width}x{height}")
        self._width = width
        self._height = height
        if height < len(self._rows):
            del self._rows[height:]
        else:
            self._rows.extend(self._new_row() for _ in range(height - len(self._rows)))
        for row in self._rows:
            self._resize_row(row, width)

    def _check_row_index(self, index: int) -> int:
        index = operator.index(index)
        if not 0 <= index < self._height:
            raise IndexError(f"row index {index} out of range")
        return index

    def get_row(self, index: int) -> Any:
        """The row at ``index``; raises IndexError when it is out of range."""
        return self._rows[self._check_row_index(index)]

    def put_row(self, index: int, row: Iterable[Any]) -> None:
        """Replace the row at ``index`` with a copy of ``row``."""
        index = self._check_row_index(index)
        if self._packed_bits is not None:
            if isinstance(row, PackedPixelRow):
                if row.bits != self._packed_bits:
                    raise ValueError(
                        f"row holds {row.bits}-bit pixels, buffer holds {self._packed_bits}-bit"
                    )
                new_row = row.copy()
            else:
                values = list(row)
                new_row = PackedPixelRow(self._packed_bits, len(values))
                for position, value in enumerate(values):
                    new_row[position] = value
        else:
            new_row = list(row)
        if len(new_row) != self._width:
            raise ValueError(f"row has {len(new_row)} pixels, buffer width is {self._width}")
        self._rows[index] = new_row

    def _check_column(self, row: Any, x: int) -> int:
        x = operator.index(x)
        if not isinstance(row, PackedPixelRow) and not 0 <= x < len(row):
            raise IndexError(f"column index {x} out of range")
        return x

    def get_pixel(self, x: int, y: int) -> Any:
        """The pixel at column ``x`` of row ``y``, with both indices checked."""
        row = self.get_row(y)
        return row[self._check_column(row, x)]

    def set_pixel(self, x: int, y: int, pixel: Any) -> None:
        """Replace the pixel at column ``x`` of row ``y``."""
        row = self.get_row(y)
        row[self._check_column(row, x)] = pixel

    def __getitem__(self, index: int) -> Any:
        return self._rows[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._rows)

    def __len__(self) -> int:
        return self._height