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

from __future__ import annotations

__all__ = (
    "CardDecodeError",
    "CardFormatError",
    "DimensionError",
    "DimensionMismatch",
    "FileNotFound",
    "FitsBridgeError",
    "InputError",
    "InvalidDimensions",
    "KeyUpdateWarning",
    "NotTwoDimensional",
    "ReadError",
    "ResourceError",
    "StatusCode",
    "UnderlyingIOError",
    "UnsupportedFormat",
    "UnsupportedShape",
    "WriteError",
)

import enum
from typing import Any


class StatusCode(enum.IntEnum):
    """CFITSIO-compatible status values reported for library failures."""

    FILE_NOT_OPENED = 104
    FILE_NOT_CREATED = 105
    WRITE_ERROR = 106
    READ_ERROR = 108
    FILE_NOT_CLOSED = 110
    MEMORY_ALLOCATION = 113
    KEY_OUT_BOUNDS = 203
    BAD_KEYCHAR = 207
    BAD_BITPIX = 211
    BAD_NAXIS = 212
    BAD_NAXES = 213
    BAD_C2F = 402
    BAD_DATATYPE = 410
    NUM_OVERFLOW = 412


class FitsBridgeError(RuntimeError):
    """Base class for all errors raised by this package.

    Every error has a `code` that host applications can match on without
    inspecting the exception type: either an integer library status or a
    short string.
    """

    code: int | str = "error"


class ReadError(FitsBridgeError):
    """Exception raised when reading a FITS file fails."""


class WriteError(FitsBridgeError):
    """Exception raised when writing a FITS file fails."""


class InputError(FitsBridgeError, ValueError):
    """A malformed argument was passed; raised before any I/O."""

    code = "bad_argument"


class DimensionError(InputError):
    """Image dimensions are unusable or inconsistent with the buffer."""


class InvalidDimensions(DimensionError):
    """Width or height is not a positive integer."""

    code = "invalid_dimensions"


class DimensionMismatch(DimensionError):
    """The buffer length does not equal ``width * height * sample_size``."""

    code = "dimensions_mismatch"

    def __init__(self, width: int, height: int, buffer_len: int, sample_size: int):
        self.width = width
        self.height = height
        self.buffer_len = buffer_len
        self.sample_size = sample_size
        super().__init__(
            f"Dimensions mismatch: width={width}, height={height}, "
            f"expected bytes={width * height * sample_size}, actual bytes={buffer_len}."
        )


class UnsupportedFormat(InputError):
    """A format code that does not correspond to a supported BITPIX."""

    code = "unsupported_format"


class UnsupportedShape(ReadError):
    """The stored image does not have exactly two axes."""

    code = "unsupported_shape"

    def __init__(self, naxis: int):
        self.naxis = naxis
        super().__init__(f"Expected a 2-d image; file has NAXIS={naxis}.")


NotTwoDimensional = UnsupportedShape


class UnderlyingIOError(ReadError, WriteError):
    """A failure reported by the FITS library, with its status code."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        try:
            name = StatusCode(status).name
        except ValueError:
            name = "UNKNOWN"
        text = f"FITS status {status} ({name})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)

    @property
    def code(self) -> int | str:  # type: ignore[override]
        return self.status


class FileNotFound(UnderlyingIOError):
    """The file to be updated does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(StatusCode.FILE_NOT_OPENED, f"{path!r} does not exist.")

    @property
    def code(self) -> int | str:  # type: ignore[override]
        return "file_not_found"


class ResourceError(WriteError):
    """Memory for the pixel transfer could not be allocated."""

    code = "memory_allocation_failure"


class CardFormatError(WriteError, InputError):
    """A literal header card cannot be written at the fixed card width."""

    code = "bad_card"


class CardDecodeError(ReadError):
    """A header card's value field cannot be interpreted."""

    code = "bad_card"

    def __init__(self, keyword: str, value: str):
        self.keyword = keyword
        self.value = value
        super().__init__(f"Cannot parse value {value!r} for header key {keyword!r}.")


class KeyUpdateWarning(UserWarning):
    """A single header key could not be written.

    Raised by `encode_update`; writers collect instances in
    `WriteReport.failures` and log them instead of propagating them.
    """

    def __init__(self, key: str, value: Any, reason: str, status: int | None = None):
        self.key = key
        self.value = value
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to update header key {key!r}: {reason}")
