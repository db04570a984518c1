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

__all__ = ()

import astropy.io.fits
import numpy as np
import pytest

import lsst.fitsbridge as fb


def test_read_foreign_file(tmp_path) -> None:
    path = str(tmp_path / "foreign.fits")
    data = np.arange(12, dtype=np.float64).reshape(3, 4)
    hdu = astropy.io.fits.PrimaryHDU(data)
    hdu.header["OBJECT"] = ("M31", "target")
    hdu.header["EXPTIME"] = 120
    hdu.header["DUPKEY"] = 1
    hdu.header.append(("DUPKEY", 2), useblanks=False, bottom=True)
    hdu.header["HISTORY"] = "made by test_read_foreign_file"
    hdu.header["COMMENT"] = "a comment"
    hdu.writeto(path)
    image = fb.read(path)
    assert (image.width, image.height) == (4, 3)
    assert image.header["BITPIX"] == -64
    assert image.header["OBJECT"] == "M31"
    assert image.header["EXPTIME"] == 120
    assert image.header["DUPKEY"] == 2
    assert image.header["SIMPLE"] == "T"
    assert "HISTORY" not in image.header
    assert "COMMENT" not in image.header
    np.testing.assert_array_equal(image.array, data.astype(np.float32))
    assert image.data == data.astype(np.float32).tobytes()


def test_read_scaled_integers(tmp_path) -> None:
    path = str(tmp_path / "scaled.fits")
    hdu = astropy.io.fits.PrimaryHDU(np.array([[12.0, 14.0], [16.0, 18.0]]))
    hdu.scale("int16", bscale=2.0, bzero=10.0)
    hdu.writeto(path)
    header = fb.read_header(path)
    assert header["BITPIX"] == 16
    assert header["BSCALE"] == 2.0
    np.testing.assert_array_equal(
        fb.read_array(path), np.array([[12.0, 14.0], [16.0, 18.0]], dtype=np.float32)
    )


def test_not_two_dimensional(tmp_path) -> None:
    path = str(tmp_path / "cube.fits")
    astropy.io.fits.PrimaryHDU(np.zeros((2, 3, 4), dtype=np.float32)).writeto(path)
    with pytest.raises(fb.UnsupportedShape) as excinfo:
        fb.read_image(path)
    assert excinfo.value.code == "unsupported_shape"
    assert excinfo.value.naxis == 3
    assert isinstance(excinfo.value, fb.ReadError)
    # The header is still readable.
    header = fb.read_header(path)
    assert header["NAXIS"] == 3
    assert header["NAXIS3"] == 2


def test_open_failures(tmp_path) -> None:
    missing = str(tmp_path / "missing.fits")
    with pytest.raises(fb.UnderlyingIOError) as excinfo:
        fb.probe(missing)
    assert excinfo.value.code == fb.StatusCode.FILE_NOT_OPENED
    with pytest.raises(fb.UnderlyingIOError):
        fb.read_header(missing)
    garbage = tmp_path / "garbage.fits"
    garbage.write_bytes(b"this is not a FITS file" * 200)
    with pytest.raises(fb.UnderlyingIOError):
        fb.read_image(str(garbage))
    with pytest.raises(fb.InputError):
        fb.probe("x" * 1024)


def test_probe(tmp_path) -> None:
    path = str(tmp_path / "probe.fits")
    fb.write_image(path, np.zeros(4, dtype=np.float32).tobytes(), 2, 2)
    assert fb.probe(path) is None


def test_reader_context(tmp_path) -> None:
    path = str(tmp_path / "context.fits")
    fb.write_full(path, np.ones(6, dtype=np.float32).tobytes(), 3, 2, headers={"OBJECT": "M31"})
    with fb.FitsReader.open(path) as reader:
        header = reader.read_all_headers()
        width, height, data = reader.read_image()
    assert header["OBJECT"] == "M31"
    assert (width, height) == (3, 2)
    assert data == np.ones(6, dtype=np.float32).tobytes()


def test_handle_records(tmp_path) -> None:
    path = str(tmp_path / "records.fits")
    fb.write_full(path, np.ones(6, dtype=np.float32).tobytes(), 3, 2, headers={"OBJECT": "M31"})
    with fb.FitsHandle.open_existing(path) as handle:
        assert handle.get_image_params() == (-32, 2, (3, 2))
        n_records = handle.record_count()
        assert handle.read_record(1).startswith("SIMPLE  =")
        assert len(handle.read_record(n_records)) == 80
        assert handle.read_record(n_records).startswith("OBJECT  = 'M31")
        with pytest.raises(fb.UnderlyingIOError) as excinfo:
            handle.read_record(n_records + 1)
        assert excinfo.value.status == fb.StatusCode.KEY_OUT_BOUNDS
        with pytest.raises(fb.UnderlyingIOError):
            handle.read_record(0)
    assert handle.closed


def test_read_continued_strings(tmp_path) -> None:
    path = str(tmp_path / "longstr.fits")
    hdu = astropy.io.fits.PrimaryHDU(np.zeros((2, 2), dtype=np.float32))
    hdu.header["LONGSTR"] = "z" * 100
    hdu.header["QUOTED"] = ("It's " + "q" * 90, "a comment")
    hdu.header["SHORT"] = "fits"
    hdu.writeto(path)
    header = fb.read_header(path)
    assert header["LONGSTR"] == "z" * 100
    assert header["QUOTED"] == "It's " + "q" * 90
    assert header["SHORT"] == "fits"
    assert "CONTINUE" not in header
