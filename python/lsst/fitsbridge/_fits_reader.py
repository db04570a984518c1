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

__all__ = ("FitsImage", "FitsReader")

import dataclasses
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Self

import numpy as np

from ._buffer import buffer_to_samples, samples_to_buffer
from ._errors import UnsupportedShape
from ._header_codec import HeaderValue, decode_card
from ._library import FitsHandle, OpenMode

_LOG = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class FitsImage:
    """The pixels and decoded header of a FITS file's primary image."""

    width: int
    height: int
    data: bytes
    """Native-endian 32-bit float pixels, row-major."""

    header: dict[str, HeaderValue]

    @property
    def array(self) -> np.ndarray:
        """A read-only ``(height, width)`` view of `data`."""
        return buffer_to_samples(self.data).reshape(self.height, self.width)


class FitsReader:
    """Reads the primary image and header of a FITS file.

    Instances should only be constructed via the `open` context manager.
    Every read is all-or-nothing: any failure raises, and nothing partial is
    returned.
    """

    def __init__(self, handle: FitsHandle):
        self._handle = handle

    @classmethod
    @contextmanager
    def open(cls, path: str) -> Iterator[Self]:
        """Open a file read-only.

        Parameters
        ----------
        path
            File to read.

        Returns
        -------
        `contextlib.AbstractContextManager` [`FitsReader`]
            A context manager that returns a `FitsReader` when entered and
            closes the file on exit.
        """
        handle = FitsHandle.open_existing(path, OpenMode.READONLY)
        try:
            yield cls(handle)
        except BaseException:
            handle.discard()
            raise
        handle.close()

    def read_image(self) -> tuple[int, int, bytes]:
        """Read all pixels as 32-bit floats.

        Returns
        -------
        width
            ``NAXIS1``.
        height
            ``NAXIS2``.
        data
            Native-endian 32-bit float pixels, regardless of ``BITPIX``.

        Raises
        ------
        UnsupportedShape
            Raised if the image does not have exactly two axes.
        UnderlyingIOError
            Raised if the image parameters or pixels cannot be read.
        """
        bitpix, naxis, naxes = self._handle.get_image_params()
        if naxis != 2:
            _LOG.error("Cannot read %s: NAXIS=%d, expected 2.", self._handle.path, naxis)
            raise UnsupportedShape(naxis)
        width, height = naxes
        _LOG.debug("Reading %dx%d image with BITPIX=%d from %s.", width, height, bitpix, self._handle.path)
        samples = self._handle.read_pixels(width * height)
        return width, height, samples_to_buffer(samples)

    def read_all_headers(self) -> dict[str, HeaderValue]:
        """Decode every header card into a mapping.

        Commentary cards are excluded, and when a key appears more than once
        the last value wins.

        Raises
        ------
        CardDecodeError
            Raised if any card's value cannot be interpreted.
        UnderlyingIOError
            Raised if any record cannot be read.
        """
        result: dict[str, HeaderValue] = {}
        for index in range(1, self._handle.record_count() + 1):
            decoded = decode_card(self._handle.read_record(index))
            if decoded is not None:
                key, value = decoded
                result[key] = value
        return result

    def read(self) -> FitsImage:
        """Read both the header and the pixels."""
        header = self.read_all_headers()
        width, height, data = self.read_image()
        return FitsImage(width=width, height=height, data=data, header=header)
