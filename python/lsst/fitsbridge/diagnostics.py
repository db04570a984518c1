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

"""Helpers for inspecting pixel buffers and FITS files while debugging."""

from __future__ import annotations

__all__ = ("BufferStatistics", "Difference", "compare_files", "dump_buffer", "examine_buffer", "summarize")

import dataclasses
import logging
from typing import Any

import numpy as np

from ._buffer import buffer_to_samples
from ._dtypes import SAMPLE_SIZE
from ._fits_reader import FitsReader
from .keywords import STRUCTURAL_KEYS

_LOG = logging.getLogger(__name__)

_SUMMARY_KEYS = ("SIMPLE", "BITPIX", "NAXIS", "NAXIS1", "NAXIS2", "EXTEND", "BZERO", "BSCALE")


def dump_buffer(buffer: bytes | bytearray | memoryview, label: str, logger: logging.Logger = _LOG) -> None:
    """Log the first values and bytes of a pixel buffer at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    view = memoryview(buffer).cast("B")
    raw = bytes(view[:40])
    nbytes = view.nbytes
    values = buffer_to_samples(view[: (nbytes // SAMPLE_SIZE) * SAMPLE_SIZE])
    logger.debug("=== %s: %d bytes ===", label, nbytes)
    logger.debug("First %d float values: %s", min(10, values.size), values[:10].tolist())
    logger.debug("First %d bytes: %s", len(raw), raw.hex(" ", SAMPLE_SIZE))
    zeros = nbytes - np.count_nonzero(np.frombuffer(view, dtype=np.uint8))
    if nbytes and zeros == nbytes:
        logger.debug("All bytes are zero!")
    elif nbytes:
        logger.debug("Zero bytes: %d/%d (%.2f%%)", zeros, nbytes, 100.0 * zeros / nbytes)


@dataclasses.dataclass(frozen=True)
class BufferStatistics:
    """Summary statistics of a 32-bit float pixel buffer."""

    byte_size: int
    count: int
    min_value: float
    max_value: float
    mean_value: float
    zeros: int
    non_zeros: int
    width: int | None = None
    height: int | None = None

    @property
    def consistent(self) -> bool | None:
        """Whether ``width * height`` matches `count`, or `None` if the
        dimensions are unknown.
        """
        if self.width is None or self.height is None:
            return None
        return self.width * self.height == self.count


def examine_buffer(
    buffer: bytes | bytearray | memoryview, width: int | None = None, height: int | None = None
) -> BufferStatistics:
    """Compute statistics for a pixel buffer."""
    view = memoryview(buffer).cast("B")
    nbytes = view.nbytes
    values = buffer_to_samples(view[: (nbytes // SAMPLE_SIZE) * SAMPLE_SIZE])
    if not values.size:
        raise ValueError("Buffer holds no complete 32-bit values.")
    zeros = int(np.count_nonzero(values == 0.0))
    return BufferStatistics(
        byte_size=nbytes,
        count=int(values.size),
        min_value=float(values.min()),
        max_value=float(values.max()),
        mean_value=float(values.mean(dtype=np.float64)),
        zeros=zeros,
        non_zeros=int(values.size) - zeros,
        width=width,
        height=height,
    )


@dataclasses.dataclass(frozen=True)
class Difference:
    """One way in which two FITS files differ."""

    kind: str
    """One of ``bitpix``, ``dimensions``, ``pixels``, ``missing_keys`` or
    ``extra_keys``.
    """

    first: Any = None
    second: Any = None


def compare_files(path1: str, path2: str, check_pixels: bool = True) -> list[Difference]:
    """Compare the primary images and headers of two files.

    Returns
    -------
    differences
        Empty if the files match.  ``missing_keys`` lists keys only in the
        first file and ``extra_keys`` keys only in the second.
    """
    with FitsReader.open(path1) as reader:
        first = reader.read() if check_pixels else None
        header1 = first.header if first is not None else reader.read_all_headers()
    with FitsReader.open(path2) as reader:
        second = reader.read() if check_pixels else None
        header2 = second.header if second is not None else reader.read_all_headers()
    differences: list[Difference] = []
    if header1.get("BITPIX") != header2.get("BITPIX"):
        differences.append(Difference("bitpix", header1.get("BITPIX"), header2.get("BITPIX")))
    dims1 = (header1.get("NAXIS1"), header1.get("NAXIS2"))
    dims2 = (header2.get("NAXIS1"), header2.get("NAXIS2"))
    if dims1 != dims2:
        differences.append(Difference("dimensions", dims1, dims2))
    elif first is not None and second is not None and first.data != second.data:
        n_different = int(np.count_nonzero(first.array != second.array))
        differences.append(Difference("pixels", n_different, first.width * first.height))
    if missing := [key for key in header1 if key not in header2]:
        differences.append(Difference("missing_keys", missing))
    if extra := [key for key in header2 if key not in header1]:
        differences.append(Difference("extra_keys", extra))
    return differences


def summarize(path: str) -> str:
    """Return a human-readable description of a file's primary header.

    Layout keys are listed first, followed by all other keys.
    """
    with FitsReader.open(path) as reader:
        header = reader.read_all_headers()
    lines = [f"FITS File: {path}", "=" * 40]
    if "NAXIS1" in header and "NAXIS2" in header:
        width, height = header["NAXIS1"], header["NAXIS2"]
        lines.append(f"Dimensions: {width}x{height} ({width * height} pixels)")  # type: ignore[operator]
    lines.extend(["", "Header Information:", "-" * 40])
    lines.extend(f"{key} = {header[key]!r}" for key in _SUMMARY_KEYS if key in header)
    lines.extend(["", "Additional Keywords:", "-" * 40])
    lines.extend(
        f"{key} = {value!r}"
        for key, value in header.items()
        if key not in _SUMMARY_KEYS and key not in STRUCTURAL_KEYS
    )
    return "\n".join(lines)
