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

__all__ = ("FitsWriter", "WriteReport")

import dataclasses
import logging
import os
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

import numpy as np

from ._buffer import ImageDescriptor, buffer_length, buffer_to_samples, to_pixel_type, validate_dimensions
from ._dtypes import FormatCode
from ._errors import FileNotFound, KeyUpdateWarning, ResourceError, StatusCode, UnderlyingIOError
from ._header_codec import (
    HeaderValue,
    encode_literal_card,
    encode_update,
    make_literal_card,
    split_card,
    validate_header_mapping,
)
from ._library import FitsHandle, OpenMode
from ._options import WriteOptions
from .diagnostics import dump_buffer

_LOG = logging.getLogger(__name__)


def _remove_if_present(path: str, status: StatusCode) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as err:
        raise UnderlyingIOError(status, f"Cannot remove {path!r}: {err}") from err


@dataclasses.dataclass
class WriteReport:
    """Per-key outcome of a write that succeeded overall.

    A report is only returned when the pixel data (if any) were written
    correctly; header keys are applied on a best-effort basis, so callers
    that need every key must check `complete` or `failures`.
    """

    path: str
    applied: list[str] = dataclasses.field(default_factory=list)
    """Header keys that were written, in the order they were applied."""

    skipped: list[str] = dataclasses.field(default_factory=list)
    """Structural keys that were ignored."""

    failures: list[KeyUpdateWarning] = dataclasses.field(default_factory=list)
    """Header keys that could not be written."""

    cards_written: int = 0
    """Number of literal cards appended."""

    @property
    def ok(self) -> bool:
        """Always `True`; fatal failures raise instead of returning."""
        return True

    @property
    def complete(self) -> bool:
        """Whether every requested header key was applied or skipped."""
        return not self.failures


class FitsWriter:
    """Writes single-image FITS files and updates their headers.

    Parameters
    ----------
    options, optional
        Write options; defaults to 32-bit float pixels with overwrite.

    Notes
    -----
    Writing a new file proceeds through fixed stages: the file is created,
    the image is allocated, pixels are written, then header keys are applied
    and the file is closed.  Any failure before the header stage removes the
    new file and raises.  Failures on individual header keys are logged,
    recorded in the returned `WriteReport`, and otherwise ignored.
    Structural keys (see `keywords.STRUCTURAL_KEYS`) are silently skipped.
    """

    def __init__(self, options: WriteOptions | None = None):
        self.options = options if options is not None else WriteOptions()

    def write(
        self,
        path: str,
        buffer: bytes | bytearray | memoryview,
        width: int,
        height: int,
        headers: Mapping[str, Any] | None = None,
        cards: Sequence[str] = (),
    ) -> WriteReport:
        """Create a new file holding one 2-d image.

        Parameters
        ----------
        path
            File to create.
        buffer
            Native-endian 32-bit float pixels, row-major.
        width, height
            Image dimensions; ``len(buffer)`` must be ``width * height * 4``.
        headers, optional
            Header keys to apply after the pixels are written.
        cards, optional
            Literal 80-character cards to append after ``headers``.

        Returns
        -------
        report
            Which header keys were applied, skipped, or failed.
        """
        to_pixel_type(self.options.format_code)
        descriptor = ImageDescriptor(width, height, FormatCode(self.options.format_code))
        validate_dimensions(width, height, buffer_length(buffer))
        header_values = validate_header_mapping(headers) if headers is not None else {}
        for text in cards:
            make_literal_card(text)
        if self.options.debug_dump:
            dump_buffer(buffer, "input data")
        try:
            samples = np.array(buffer_to_samples(buffer), copy=True)
        except MemoryError as err:
            _LOG.error("Failed to allocate memory for %d pixels.", descriptor.n_pixels)
            raise ResourceError(f"Cannot copy {descriptor.buffer_size} bytes of pixel data.") from err
        _LOG.debug(
            "Creating FITS file %s: %dx%d, BITPIX=%d.",
            path,
            descriptor.width,
            descriptor.height,
            descriptor.format_code,
        )
        report = WriteReport(path)
        with self._new_file(path) as handle:
            handle.create_image(descriptor.format_code, descriptor.naxes)
            handle.write_pixels(samples)
            self._apply_headers(handle, header_values, report)
            for text in cards:
                if encode_literal_card(handle, text):
                    report.cards_written += 1
                else:
                    _LOG.debug("Skipping structural card %r.", text)
                    report.skipped.append(split_card(text).keyword)
        _LOG.debug("Wrote FITS file %s.", path)
        return report

    def update(self, path: str, headers: Mapping[str, Any]) -> WriteReport:
        """Apply header keys to the primary HDU of an existing file.

        Raises
        ------
        FileNotFound
            Raised if ``path`` does not exist.
        UnderlyingIOError
            Raised if the file cannot be opened for update or the changes
            cannot be flushed.
        """
        header_values = validate_header_mapping(headers)
        if not os.path.exists(path):
            _LOG.error("Cannot write header cards: file %s does not exist.", path)
            raise FileNotFound(path)
        report = WriteReport(path)
        handle = FitsHandle.open_existing(path, OpenMode.READWRITE)
        try:
            self._apply_headers(handle, header_values, report)
        finally:
            handle.close()
        return report

    @contextmanager
    def _new_file(self, path: str) -> Iterator[FitsHandle]:
        if self.options.overwrite:
            _remove_if_present(path, StatusCode.FILE_NOT_CREATED)
        handle = FitsHandle.create_new(path)
        try:
            yield handle
        except BaseException as err:
            _LOG.error("Error writing FITS file %s: %s", path, err)
            handle.discard()
            raise
        try:
            handle.close()
        except BaseException as err:
            _LOG.error("Error closing FITS file %s: %s", path, err)
            try:
                _remove_if_present(path, StatusCode.FILE_NOT_CLOSED)
            except UnderlyingIOError as cleanup_err:
                _LOG.error("Could not remove partially written file %s: %s", path, cleanup_err)
            raise

    def _apply_headers(
        self, handle: FitsHandle, headers: Mapping[str, HeaderValue], report: WriteReport
    ) -> None:
        for key, value in headers.items():
            try:
                applied = encode_update(handle, key, value)
            except KeyUpdateWarning as warning:
                _LOG.warning(
                    "Failed to update header key %r (status=%s); continuing with others: %s",
                    key,
                    warning.status,
                    warning.reason,
                )
                report.failures.append(warning)
                continue
            if applied:
                _LOG.debug("Updated header key %s = %r.", key, value)
                report.applied.append(key)
            else:
                _LOG.debug("Skipping structural header key %s.", key)
                report.skipped.append(key)
