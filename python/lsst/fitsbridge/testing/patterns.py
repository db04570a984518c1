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

__all__ = ("PatternName", "create_test_pattern", "save_test_pattern")

from typing import TYPE_CHECKING, Literal, TypeAlias

import numpy as np

from .._fits_writer import FitsWriter

if TYPE_CHECKING:
    from .._fits_writer import WriteReport

PatternName: TypeAlias = Literal["gradient", "checkerboard", "diagonal"]


def create_test_pattern(width: int, height: int, pattern: PatternName = "gradient") -> np.ndarray:
    """Make a ``(height, width)`` float32 image with a recognizable pattern.

    Parameters
    ----------
    width, height
        Image dimensions.
    pattern, optional
        ``gradient`` ramps from 0 toward 1 along the diagonal,
        ``checkerboard`` alternates 0 and 1, and ``diagonal`` is 1 on the
        main diagonal and 0 elsewhere.
    """
    y, x = np.mgrid[0:height, 0:width]
    match pattern:
        case "gradient":
            result = (x + y) / (width + height)
        case "checkerboard":
            result = (x + y) % 2
        case "diagonal":
            result = x == y
        case _:
            raise ValueError(f"Unknown pattern {pattern!r}.")
    return result.astype(np.float32)


def save_test_pattern(
    path: str, width: int, height: int, pattern: PatternName = "gradient"
) -> WriteReport:
    """Write a test pattern to a new 32-bit float FITS file."""
    array = create_test_pattern(width, height, pattern)
    return FitsWriter().write(path, array.tobytes(), width, height)
