# This file is part of lsst-fitsbridge.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (https://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

"""Conversions between flat host pixel buffers and numeric arrays."""

from __future__ import annotations

__all__ = (
    "ImageDescriptor",
    "buffer_length",
    "buffer_to_rows",
    "buffer_to_samples",
    "rows_to_buffer",
    "samples_to_buffer",
    "to_pixel_type",
    "validate_dimensions",
)

import dataclasses
import numbers
from collections.abc import Sequence

import numpy as np

from ._dtypes import DEFAULT_FORMAT_CODE, SAMPLE_SIZE, FormatCode, SampleKind
from ._errors import DimensionMismatch, InputError, InvalidDimensions, UnsupportedFormat


@dataclasses.dataclass(frozen=True)
class ImageDescriptor:
    """Shape and on-disk format of a 2-d image."""

    width: int
    height: int
    format_code: FormatCode = DEFAULT_FORMAT_CODE

    @property
    def naxes(self) -> tuple[int, int]:
        """Axis lengths in FITS order (``NAXIS1``, ``NAXIS2``)."""
        return (self.width, self.height)

    @property
    def n_pixels(self) -> int:
        return self.width * self.height

    @property
    def buffer_size(self) -> int:
        """Size in bytes of the host buffer for this image."""
        return self.n_pixels * SAMPLE_SIZE


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InputError(f"{name} must be an integer, not {type(value).__name__}.")
    return int(value)


def validate_dimensions(width: int, height: int, buffer_len: int, sample_size: int = SAMPLE_SIZE) -> None:
    """Check that a buffer holds exactly ``width * height`` samples.

    Raises
    ------
    InputError
        Raised if ``width`` or ``height`` is not an integer.
    InvalidDimensions
        Raised if ``width`` or ``height`` is not positive.
    DimensionMismatch
        Raised if ``width * height * sample_size != buffer_len``.
    """
    width = _require_int("width", width)
    height = _require_int("height", height)
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Image dimensions must be positive; got width={width}, height={height}.")
    if width * height * sample_size != buffer_len:
        raise DimensionMismatch(width, height, buffer_len, sample_size)


def to_pixel_type(format_code: int | None = None) -> SampleKind:
    """Return the sample kind used to transfer pixels for a format code.

    Transfers always use 32-bit floats; the library narrows or widens to the
    on-disk type.  The format code is still checked here so that unsupported
    codes fail before any file is touched.

    Raises
    ------
    UnsupportedFormat
        Raised if ``format_code`` is not a supported ``BITPIX`` value.
    """
    if format_code is None:
        format_code = DEFAULT_FORMAT_CODE
    try:
        FormatCode(format_code)
    except ValueError:
        raise UnsupportedFormat(
            f"Unsupported format code {format_code!r}; expected one of {[c.value for c in FormatCode]}."
        ) from None
    return SampleKind.float32


def buffer_to_samples(
    buffer: bytes | bytearray | memoryview, kind: SampleKind = SampleKind.float32
) -> np.ndarray:
    """View a host buffer as a flat array of native-endian samples.

    The result shares memory with ``buffer`` and must not outlive the call
    that received it.
    """
    return np.frombuffer(buffer, dtype=kind.to_numpy())


def samples_to_buffer(samples: np.ndarray) -> bytes:
    """Pack samples into a host buffer of native-endian 32-bit floats."""
    return np.ascontiguousarray(samples, dtype=SampleKind.float32.to_numpy()).tobytes()


def rows_to_buffer(rows: Sequence[Sequence[float]]) -> tuple[bytes, int, int]:
    """Pack a list of equal-length rows into a host buffer.

    Returns
    -------
    buffer
        Native-endian 32-bit float pixel data, row-major.
    width
        Length of each row.
    height
        Number of rows.

    Raises
    ------
    InputError
        Raised if there are no rows or the rows differ in length.
    """
    if not rows or not rows[0]:
        raise InputError("At least one non-empty row is required.")
    width = len(rows[0])
    if any(len(row) != width for row in rows):
        raise InputError("All rows must have the same length.")
    array = np.array(rows, dtype=SampleKind.float32.to_numpy())
    return samples_to_buffer(array), width, len(rows)


def buffer_to_rows(buffer: bytes | bytearray | memoryview, width: int, height: int) -> list[list[float]]:
    """Unpack a host buffer into ``height`` rows of ``width`` floats."""
    validate_dimensions(width, height, buffer_length(buffer))
    return buffer_to_samples(buffer).reshape(height, width).tolist()


def buffer_length(buffer: object) -> int:
    """Return the size in bytes of a host buffer.

    Raises
    ------
    InputError
        Raised if ``buffer`` does not support the buffer protocol.
    """
    try:
        return memoryview(buffer).nbytes  # type: ignore[arg-type]
    except TypeError:
        raise InputError(f"Pixel data must be a bytes-like object, not {type(buffer).__name__}.") from None
