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
    "DEFAULT_FORMAT_CODE",
    "FormatCode",
    "SAMPLE_SIZE",
    "SampleKind",
    "bitpix_constants",
)

import enum

import numpy as np


class SampleKind(enum.StrEnum):
    """Numeric sample types that can cross the file boundary."""

    uint8 = enum.auto()
    int16 = enum.auto()
    int32 = enum.auto()
    int64 = enum.auto()
    float32 = enum.auto()
    float64 = enum.auto()

    def to_numpy(self) -> np.dtype:
        """Return the native-endian `numpy.dtype` for this sample kind."""
        return np.dtype(self.value)

    @property
    def is_integer(self) -> bool:
        return self.to_numpy().kind in "iu"


class FormatCode(enum.IntEnum):
    """FITS ``BITPIX`` values supported for primary images."""

    UINT8 = 8
    INT16 = 16
    INT32 = 32
    INT64 = 64
    FLOAT32 = -32
    FLOAT64 = -64

    @property
    def disk_kind(self) -> SampleKind:
        """The sample kind pixels are stored as on disk."""
        return _DISK_KINDS[self]

    @classmethod
    def from_numpy(cls, dtype: np.dtype | type) -> FormatCode:
        """Return the format code that stores samples of the given numpy
        type without conversion.
        """
        kind = SampleKind(np.dtype(dtype).name)
        for code, disk_kind in _DISK_KINDS.items():
            if disk_kind is kind:
                return code
        raise AssertionError(f"No format code for {kind}.")


_DISK_KINDS = {
    FormatCode.UINT8: SampleKind.uint8,
    FormatCode.INT16: SampleKind.int16,
    FormatCode.INT32: SampleKind.int32,
    FormatCode.INT64: SampleKind.int64,
    FormatCode.FLOAT32: SampleKind.float32,
    FormatCode.FLOAT64: SampleKind.float64,
}

DEFAULT_FORMAT_CODE = FormatCode.FLOAT32

# Host buffers always hold native-endian 32-bit floats.
SAMPLE_SIZE = SampleKind.float32.to_numpy().itemsize


def bitpix_constants() -> dict[str, int]:
    """Return the ``BITPIX`` values by their conventional short names."""
    return {
        "byte": FormatCode.UINT8.value,
        "short": FormatCode.INT16.value,
        "int": FormatCode.INT32.value,
        "long": FormatCode.INT64.value,
        "float": FormatCode.FLOAT32.value,
        "double": FormatCode.FLOAT64.value,
    }
