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

__all__ = ("WriteOptions", "WriteOptionsDict")

import dataclasses
from typing import TypedDict, Unpack

from ._dtypes import DEFAULT_FORMAT_CODE, FormatCode
from ._errors import InputError


class WriteOptionsDict(TypedDict, total=False):
    format_code: FormatCode | int
    overwrite: bool
    debug_dump: bool


@dataclasses.dataclass(frozen=True)
class WriteOptions:
    """Options that control how a new FITS file is written."""

    format_code: FormatCode | int = DEFAULT_FORMAT_CODE
    """``BITPIX`` of the image on disk.

    Pixels are always passed in as 32-bit floats; integer formats round to
    the nearest value and fail if any pixel is out of range.
    """

    overwrite: bool = True
    """Whether to remove an existing file at the target path before creating
    the new one.

    Removal is not atomic: a concurrent reader or writer of the same path may
    see the file disappear, or see it partially written.  With `False`, an
    existing file makes the write fail with ``FILE_NOT_CREATED``.
    """

    debug_dump: bool = False
    """Log a summary of the input pixel buffer at DEBUG level before
    writing.
    """

    def updated(self, **kwargs: Unpack[WriteOptionsDict]) -> WriteOptions:
        """Return a copy with the given fields replaced.

        Raises
        ------
        InputError
            Raised if an unknown option is given.
        """
        names = {field.name for field in dataclasses.fields(self)}
        if unknown := set(kwargs) - names:
            raise InputError(f"Unknown write options: {sorted(unknown)}.")
        return dataclasses.replace(self, **kwargs)
