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

"""The narrow interface through which this package drives the FITS library.

Nothing outside this module touches `astropy.io.fits` file objects.  Each
method corresponds to one CFITSIO-style primitive and reports failures as
`UnderlyingIOError` with a CFITSIO-compatible status.
"""

from __future__ import annotations

__all__ = ("FitsHandle", "OpenMode", "TypeTag")

import enum
import os
import warnings
from typing import IO, Any, Self

import astropy.io.fits
import numpy as np

from ._dtypes import FormatCode, SampleKind
from ._errors import ResourceError, StatusCode, UnderlyingIOError
from .keywords import CARD_LENGTH

_INT64_RANGE = (np.iinfo(np.int64).min, np.iinfo(np.int64).max)


class OpenMode(enum.StrEnum):
    READONLY = "readonly"
    READWRITE = "update"


class TypeTag(enum.Enum):
    """Value types accepted by `FitsHandle.update_key`."""

    TLONG = "long"
    TDOUBLE = "double"
    TSTRING = "string"


class FitsHandle:
    """An open FITS file positioned at its primary HDU.

    Instances should be constructed with `open_existing` or `create_new`, and
    must be released with `close` on every exit path.

    Notes
    -----
    A newly created file is held in memory until `close`, at which point the
    primary HDU is serialized to the stream reserved by `create_new`.  Files
    opened for update are flushed by astropy on close.
    """

    def __init__(self, path: str, hdu_list: astropy.io.fits.HDUList, stream: IO[bytes] | None = None):
        self._path = path
        self._hdu_list = hdu_list
        self._stream = stream
        self._closed = False

    @classmethod
    def open_existing(cls, path: str, mode: OpenMode = OpenMode.READONLY) -> Self:
        """Open an existing file."""
        try:
            hdu_list = astropy.io.fits.open(path, mode=mode.value, memmap=False, lazy_load_hdus=True)
            # Force the primary header to be parsed while errors still mean
            # "could not open".
            hdu_list[0]
        except MemoryError as err:
            raise ResourceError(f"Out of memory opening {path!r}.") from err
        except (OSError, ValueError, IndexError, TypeError) as err:
            raise UnderlyingIOError(StatusCode.FILE_NOT_OPENED, f"{path!r}: {err}") from err
        return cls(path, hdu_list)

    @classmethod
    def create_new(cls, path: str) -> Self:
        """Create a new, empty file.  Fails if ``path`` already exists."""
        try:
            # astropy only recognizes the standard write modes on file objects.
            stream = os.fdopen(os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666), "wb")
        except OSError as err:
            raise UnderlyingIOError(StatusCode.FILE_NOT_CREATED, f"{path!r}: {err}") from err
        return cls(path, astropy.io.fits.HDUList(), stream=stream)

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def _primary(self) -> astropy.io.fits.PrimaryHDU:
        if not self._hdu_list:
            raise UnderlyingIOError(StatusCode.READ_ERROR, f"{self._path!r} has no primary HDU.")
        return self._hdu_list[0]

    @property
    def header(self) -> astropy.io.fits.Header:
        return self._primary.header

    def close(self) -> None:
        """Release the file, flushing any pending changes.

        The handle is released even when flushing fails; the failure is then
        raised as `UnderlyingIOError`.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self._stream is not None:
                try:
                    if self._hdu_list:
                        self._hdu_list.writeto(self._stream, output_verify="exception")
                finally:
                    self._stream.close()
            else:
                self._hdu_list.close(output_verify="exception")
        except (OSError, ValueError, astropy.io.fits.VerifyError) as err:
            raise UnderlyingIOError(StatusCode.FILE_NOT_CLOSED, f"{self._path!r}: {err}") from err

    def discard(self) -> None:
        """Release the file without writing anything and remove it if this
        handle created it.
        """
        if self._closed:
            return
        self._closed = True
        if self._stream is not None:
            self._stream.close()
            try:
                os.remove(self._path)
            except FileNotFoundError:
                pass
            except OSError as err:
                raise UnderlyingIOError(StatusCode.FILE_NOT_CLOSED, f"{self._path!r}: {err}") from err
        else:
            self._hdu_list.close(output_verify="ignore")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get_image_params(self) -> tuple[int, int, tuple[int, ...]]:
        """Return ``(bitpix, naxis, naxes)`` for the primary image.

        ``naxes`` is in FITS order, i.e. ``naxes[0]`` is ``NAXIS1`` (the
        row length).
        """
        header = self.header
        try:
            bitpix = int(header["BITPIX"])
            naxis = int(header["NAXIS"])
            naxes = tuple(int(header[f"NAXIS{n}"]) for n in range(1, naxis + 1))
        except (KeyError, ValueError, TypeError) as err:
            raise UnderlyingIOError(StatusCode.READ_ERROR, f"Bad image parameters: {err}") from err
        return bitpix, naxis, naxes

    def create_image(self, format_code: int, naxes: tuple[int, ...]) -> None:
        """Allocate the primary image with all-zero pixels."""
        try:
            disk_kind = FormatCode(format_code).disk_kind
        except ValueError as err:
            raise UnderlyingIOError(StatusCode.BAD_BITPIX, f"BITPIX={format_code}.") from err
        if not naxes:
            raise UnderlyingIOError(StatusCode.BAD_NAXIS, "NAXIS=0.")
        if any(n <= 0 for n in naxes):
            raise UnderlyingIOError(StatusCode.BAD_NAXES, f"NAXES={list(naxes)}.")
        try:
            data = np.zeros(tuple(reversed(naxes)), dtype=disk_kind.to_numpy())
        except MemoryError as err:
            raise ResourceError(f"Cannot allocate a {list(naxes)} {disk_kind} image.") from err
        hdu = astropy.io.fits.PrimaryHDU(data)
        if self._hdu_list:
            self._hdu_list[0] = hdu
        else:
            self._hdu_list.append(hdu)

    def read_pixels(self, count: int) -> np.ndarray:
        """Read the first ``count`` pixels as a flat native float32 array,
        applying any BSCALE/BZERO scaling.
        """
        try:
            data = self._primary.data
        except (OSError, ValueError, TypeError) as err:
            raise UnderlyingIOError(StatusCode.READ_ERROR, str(err)) from err
        if data is None or data.size < count:
            raise UnderlyingIOError(StatusCode.READ_ERROR, f"Fewer than {count} pixels present.")
        try:
            return np.ascontiguousarray(data.reshape(-1)[:count], dtype=SampleKind.float32.to_numpy())
        except MemoryError as err:
            raise ResourceError(f"Cannot allocate {count} float32 pixels.") from err

    def write_pixels(self, samples: np.ndarray) -> None:
        """Write float32 samples to the start of the primary image,
        converting to the on-disk type.
        """
        hdu = self._primary
        if hdu.data is None:
            raise UnderlyingIOError(StatusCode.WRITE_ERROR, "No image has been allocated.")
        target = hdu.data.reshape(-1)
        if samples.size > target.size:
            raise UnderlyingIOError(StatusCode.WRITE_ERROR, f"{samples.size} pixels exceed image size.")
        kind = SampleKind(target.dtype.name)
        if kind.is_integer:
            info = np.iinfo(kind.to_numpy())
            rounded = np.rint(samples.astype(np.float64))
            if not np.all(np.isfinite(rounded)) or (
                rounded.size and (rounded.min() < info.min or rounded.max() > info.max)
            ):
                raise UnderlyingIOError(
                    StatusCode.NUM_OVERFLOW,
                    f"Pixel values do not fit in {kind} (BITPIX={hdu.header['BITPIX']}).",
                )
            target[: samples.size] = rounded.astype(kind.to_numpy())
        else:
            target[: samples.size] = samples

    def record_count(self) -> int:
        """Return the number of header records, excluding ``END``."""
        return len(self.header)

    def read_record(self, index: int) -> str:
        """Return the card at 1-based position ``index``.

        Cards are 80 characters, except that a long string value continued
        over ``CONTINUE`` records is returned as all of its records joined.
        """
        if index < 1 or index > len(self.header):
            raise UnderlyingIOError(StatusCode.KEY_OUT_BOUNDS, f"Record {index} does not exist.")
        try:
            return self.header.cards[index - 1].image
        except (ValueError, astropy.io.fits.VerifyError) as err:
            raise UnderlyingIOError(StatusCode.READ_ERROR, f"Record {index}: {err}") from err

    def write_record(self, card: astropy.io.fits.Card) -> None:
        """Append a verified card to the end of the header."""
        try:
            self.header.append(card, end=True)
        except (ValueError, TypeError) as err:
            raise UnderlyingIOError(StatusCode.WRITE_ERROR, str(err)) from err

    def update_key(
        self, type_tag: TypeTag, key: str, value: int | float | str, comment: str | None = None
    ) -> None:
        """Set a header key, replacing any existing value.

        Keys longer than eight characters are written with the HIERARCH
        convention.  A value that does not fit in a single card, given the
        space its keyword takes, is rejected rather than continued.
        """
        match type_tag:
            case TypeTag.TLONG:
                value = int(value)
                if not _INT64_RANGE[0] <= value <= _INT64_RANGE[1]:
                    raise UnderlyingIOError(StatusCode.NUM_OVERFLOW, f"{value} does not fit in a long.")
            case TypeTag.TDOUBLE:
                value = float(value)
            case TypeTag.TSTRING:
                value = str(value)
            case _:
                raise UnderlyingIOError(StatusCode.BAD_DATATYPE, f"Unknown type tag {type_tag!r}.")
        # Squash astropy warnings about needing HIERARCH, since the only way
        # to get it to do HIERARCH only when needed is to let it warn.
        with warnings.catch_warnings(category=astropy.io.fits.verify.VerifyWarning, action="ignore"):
            try:
                card = astropy.io.fits.Card(key)
            except ValueError as err:
                raise UnderlyingIOError(StatusCode.BAD_KEYCHAR, f"{key!r}: {err}") from err
            try:
                card.value = value
                if comment is not None:
                    card.comment = comment
                image = card.image
            except ValueError as err:
                raise UnderlyingIOError(StatusCode.WRITE_ERROR, f"{key!r}: {err}") from err
            # Longer values would be split over CONTINUE records.
            if len(image) > CARD_LENGTH:
                raise UnderlyingIOError(
                    StatusCode.WRITE_ERROR,
                    f"{key!r}: value does not fit in one {CARD_LENGTH}-character card.",
                )
            self.header.set(card.keyword, card.value, comment)
