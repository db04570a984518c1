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

"""Entry points for host applications.

Every function takes a filesystem path (`str`, `bytes` or `os.PathLike`)
and either returns a result or raises a `FitsBridgeError` whose ``code``
identifies the failure.
"""

from __future__ import annotations

__all__ = (
    "copy",
    "get_dimensions",
    "probe",
    "read",
    "read_array",
    "read_header",
    "read_image",
    "write_array",
    "write_full",
    "write_header_cards",
    "write_image",
    "write_image_from_rows",
)

import os
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias, Unpack

import numpy as np

from ._buffer import rows_to_buffer, samples_to_buffer
from ._dtypes import DEFAULT_FORMAT_CODE, FormatCode
from ._errors import InputError, UnsupportedFormat
from ._fits_reader import FitsImage, FitsReader
from ._fits_writer import FitsWriter, WriteReport
from ._header_codec import HeaderValue
from ._options import WriteOptions, WriteOptionsDict
from .keywords import MAX_PATH_BYTES, STRUCTURAL_KEYS

PathLike: TypeAlias = str | bytes | os.PathLike[str] | os.PathLike[bytes]

# Keys that describe how pixels are stored; a copy is written from physical
# values, so these never carry over.
_PIXEL_LAYOUT_KEYS = STRUCTURAL_KEYS | {"EXTEND", "BSCALE", "BZERO", "BLANK"}


def _normalize_path(path: PathLike) -> str:
    try:
        raw = os.fsencode(path)
    except TypeError:
        raise InputError(f"Path must be str, bytes or os.PathLike, not {type(path).__name__}.") from None
    if len(raw) >= MAX_PATH_BYTES:
        raise InputError(f"Path is {len(raw)} bytes long; the limit is {MAX_PATH_BYTES - 1}.")
    if not raw or b"\0" in raw:
        raise InputError(f"Invalid path {raw!r}.")
    return os.fsdecode(raw)


def _make_writer(format_code: int | None, options: WriteOptionsDict) -> FitsWriter:
    write_options = WriteOptions().updated(**options)
    if format_code is not None:
        write_options = write_options.updated(format_code=format_code)
    return FitsWriter(write_options)


def probe(path: PathLike) -> None:
    """Check that a file can be opened as FITS.

    Raises
    ------
    UnderlyingIOError
        Raised if the file cannot be opened.
    """
    with FitsReader.open(_normalize_path(path)):
        pass


def read_image(path: PathLike) -> tuple[int, int, bytes]:
    """Read the primary image as ``(width, height, data)``, with ``data``
    holding native-endian 32-bit floats.
    """
    with FitsReader.open(_normalize_path(path)) as reader:
        return reader.read_image()


def read_header(path: PathLike) -> dict[str, HeaderValue]:
    """Read the primary header as a mapping from key to typed value."""
    with FitsReader.open(_normalize_path(path)) as reader:
        return reader.read_all_headers()


def read(path: PathLike) -> FitsImage:
    """Read the primary header and image together."""
    with FitsReader.open(_normalize_path(path)) as reader:
        return reader.read()


def read_array(path: PathLike) -> np.ndarray:
    """Read the primary image as a ``(height, width)`` float32 array."""
    width, height, data = read_image(path)
    return np.frombuffer(data, dtype=np.float32).reshape(height, width).copy()


def write_image(
    path: PathLike,
    buffer: bytes | bytearray | memoryview,
    width: int,
    height: int,
    format_code: int | None = None,
    **options: Unpack[WriteOptionsDict],
) -> WriteReport:
    """Write a new file holding one image and no extra header keys.

    Parameters
    ----------
    path
        File to create.  An existing file is removed first unless
        ``overwrite=False``.
    buffer
        Native-endian 32-bit float pixels, row-major.
    width, height
        Image dimensions.
    format_code, optional
        On-disk ``BITPIX``; defaults to -32 (32-bit float).
    **options
        Other `WriteOptions` fields.

    Raises
    ------
    DimensionMismatch
        Raised, before any file is touched, if ``len(buffer)`` is not
        ``width * height * 4``.
    """
    return _make_writer(format_code, options).write(_normalize_path(path), buffer, width, height)


def write_header_cards(path: PathLike, headers: Mapping[str, Any]) -> WriteReport:
    """Apply header keys to an existing file.

    Each key is applied independently; keys that cannot be written are
    reported in `WriteReport.failures` rather than raised.  Structural keys
    are skipped.
    """
    return FitsWriter().update(_normalize_path(path), headers)


def write_full(
    path: PathLike,
    buffer: bytes | bytearray | memoryview,
    width: int,
    height: int,
    format_code: int | None = None,
    headers: Mapping[str, Any] | None = None,
    cards: Sequence[str] = (),
    **options: Unpack[WriteOptionsDict],
) -> WriteReport:
    """Write a new file holding one image and its header in one operation.

    Parameters
    ----------
    path
        File to create.  An existing file is removed first unless
        ``overwrite=False``.
    buffer
        Native-endian 32-bit float pixels, row-major.
    width, height
        Image dimensions.
    format_code, optional
        On-disk ``BITPIX``; defaults to -32 (32-bit float).
    headers, optional
        Header keys to apply, best-effort.
    cards, optional
        Literal 80-character cards to append; a malformed card fails the
        whole write.
    **options
        Other `WriteOptions` fields.

    Returns
    -------
    report
        Which header keys were applied, skipped, or failed.
    """
    return _make_writer(format_code, options).write(
        _normalize_path(path), buffer, width, height, headers=headers, cards=cards
    )


def write_array(
    path: PathLike,
    array: np.ndarray,
    headers: Mapping[str, Any] | None = None,
    **options: Unpack[WriteOptionsDict],
) -> WriteReport:
    """Write a 2-d array as a new file.

    Unless ``format_code`` is given, the on-disk format matches the array's
    dtype when it has a ``BITPIX`` equivalent, and is 32-bit float otherwise.
    """
    array = np.asarray(array)
    if array.ndim != 2:
        raise InputError(f"Expected a 2-d array; got shape {array.shape}.")
    if "format_code" not in options:
        try:
            options["format_code"] = FormatCode.from_numpy(array.dtype)
        except ValueError:
            options["format_code"] = DEFAULT_FORMAT_CODE
    height, width = array.shape
    return _make_writer(None, options).write(
        _normalize_path(path), samples_to_buffer(array), width, height, headers=headers
    )


def write_image_from_rows(
    path: PathLike, rows: Sequence[Sequence[float]], **options: Unpack[WriteOptionsDict]
) -> WriteReport:
    """Write a list of equal-length rows of floats as a new file."""
    buffer, width, height = rows_to_buffer(rows)
    return _make_writer(None, options).write(_normalize_path(path), buffer, width, height)


def get_dimensions(header: Mapping[str, HeaderValue]) -> tuple[int, int]:
    """Return ``(NAXIS1, NAXIS2)`` from a decoded header.

    Raises
    ------
    InputError
        Raised if either key is missing or not an integer.
    """
    try:
        width, height = header["NAXIS1"], header["NAXIS2"]
    except KeyError as err:
        raise InputError(f"Header has no {err.args[0]} key.") from None
    if not isinstance(width, int) or not isinstance(height, int):
        raise InputError(f"Header dimensions are not integers: NAXIS1={width!r}, NAXIS2={height!r}.")
    return width, height


def copy(source: PathLike, dest: PathLike, preserve_bitpix: bool = True) -> WriteReport:
    """Copy the primary image and header keys of one file to a new file.

    Parameters
    ----------
    source
        File to read.
    dest
        File to create (replacing any existing file).
    preserve_bitpix, optional
        Whether to keep the source's ``BITPIX``; if `False` the copy is
        written as 32-bit float.

    Notes
    -----
    Pixels pass through 32-bit floats, so integer images wider than 24 bits
    may lose precision.  Commentary cards and scaling keys are not copied.
    """
    image = read(source)
    format_code: int = DEFAULT_FORMAT_CODE
    if preserve_bitpix:
        bitpix = image.header.get("BITPIX", DEFAULT_FORMAT_CODE)
        try:
            format_code = FormatCode(bitpix)
        except ValueError:
            raise UnsupportedFormat(f"Source file has unsupported BITPIX={bitpix!r}.") from None
    headers = {key: value for key, value in image.header.items() if key not in _PIXEL_LAYOUT_KEYS}
    return write_full(dest, image.data, image.width, image.height, format_code, headers=headers)
