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

import numpy as np
import pytest

import lsst.fitsbridge as fb


@pytest.fixture
def handle(tmp_path):
    handle = fb.FitsHandle.create_new(str(tmp_path / "codec.fits"))
    handle.create_image(fb.FormatCode.FLOAT32, (3, 2))
    yield handle
    handle.discard()


def test_quoted_number_is_string() -> None:
    assert fb.decode_card("OBJECT  = '120'") == ("OBJECT", "120")
    assert fb.decode_card("EXPTIME =                  120") == ("EXPTIME", 120)


def test_float_detection_precedes_integer() -> None:
    assert fb.decode_card("GAIN    =                  1.5 / e-/ADU") == ("GAIN", 1.5)
    assert fb.decode_card("SCALE   =                1.5D3") == ("SCALE", 1500.0)
    key, value = fb.decode_card("RATIO   =                   2.")
    assert isinstance(value, float) and value == 2.0


def test_unparseable_integer_falls_back_to_string() -> None:
    assert fb.decode_card("SIMPLE  =                    T") == ("SIMPLE", "T")
    assert fb.decode_card("BIG     =                  1E5") == ("BIG", "1E5")
    assert fb.decode_card("UNDEF   =") == ("UNDEF", "")


def test_unparseable_float_is_an_error() -> None:
    with pytest.raises(fb.CardDecodeError):
        fb.decode_card("BAD     = 1.2.3")


def test_string_values() -> None:
    assert fb.decode_card("OBJECT  = 'M31     '           / target name") == ("OBJECT", "M31")
    assert fb.decode_card("OBSERVER= 'O''Neil'") == ("OBSERVER", "O'Neil")
    assert fb.decode_card("PATH    = 'a/b' / the path") == ("PATH", "a/b")
    assert fb.decode_card("OPEN    = 'unterminated") == ("OPEN", "'unterminated")


def test_commentary_cards_are_not_decoded() -> None:
    assert fb.decode_card("COMMENT   this is a comment") is None
    assert fb.decode_card("HISTORY written by a test") is None
    assert fb.decode_card(" " * 80) is None


def test_split_card() -> None:
    parsed = fb.split_card("EXPTIME =                  120 / exposure time [s]")
    assert parsed == fb.ParsedCard("EXPTIME", "120", "exposure time [s]")
    assert not parsed.is_commentary
    parsed = fb.split_card("COMMENT   free text / with a slash")
    assert parsed.is_commentary
    assert parsed.value == ""
    assert parsed.comment == "free text / with a slash"
    assert fb.split_card("HIERARCH ESO DET NDIT = 5 / number of exposures") == fb.ParsedCard(
        "ESO DET NDIT", "5", "number of exposures"
    )


def test_encode_update_dispatches_on_type(handle: fb.FitsHandle) -> None:
    assert fb.encode_update(handle, "OBJECT", "M31")
    assert fb.encode_update(handle, "EXPTIME", 120)
    assert fb.encode_update(handle, "GAIN", 1.5)
    assert handle.header["OBJECT"] == "M31"
    assert handle.header["EXPTIME"] == 120
    assert isinstance(handle.header["EXPTIME"], int)
    assert handle.header["GAIN"] == 1.5
    decoded = dict(
        card
        for card in (fb.decode_card(handle.read_record(i)) for i in range(1, handle.record_count() + 1))
        if card is not None
    )
    assert decoded["OBJECT"] == "M31"
    assert decoded["EXPTIME"] == 120
    assert decoded["GAIN"] == 1.5


def test_encode_update_skips_structural_keys(handle: fb.FitsHandle) -> None:
    for key in fb.keywords.STRUCTURAL_KEYS:
        assert not fb.encode_update(handle, key, 5)
    assert handle.header["NAXIS1"] == 3
    assert handle.header["NAXIS2"] == 2
    assert handle.header["BITPIX"] == -32


def test_encode_update_failures(handle: fb.FitsHandle) -> None:
    with pytest.raises(fb.KeyUpdateWarning) as excinfo:
        fb.encode_update(handle, "LONGSTR", "x" * 69)
    assert excinfo.value.key == "LONGSTR"
    assert "LONGSTR" not in handle.header
    # Quotes are doubled on disk, so they count twice.
    with pytest.raises(fb.KeyUpdateWarning):
        fb.encode_update(handle, "QUOTES", "'" * 35)
    assert fb.encode_update(handle, "FITS68", "x" * 68)
    with pytest.raises(fb.KeyUpdateWarning) as excinfo:
        fb.encode_update(handle, "HUGE", 2**70)
    assert excinfo.value.status == fb.StatusCode.NUM_OVERFLOW
    with pytest.raises(fb.KeyUpdateWarning) as excinfo:
        fb.encode_update(handle, "BAD=KEY", 1)
    assert excinfo.value.status == fb.StatusCode.BAD_KEYCHAR
    with pytest.raises(fb.KeyUpdateWarning):
        fb.encode_update(handle, "NOTNUM", float("nan"))
    with pytest.raises(fb.KeyUpdateWarning):
        fb.encode_update(handle, "FLAG", True)


def test_encode_literal_card(handle: fb.FitsHandle) -> None:
    n_before = handle.record_count()
    assert fb.encode_literal_card(handle, "HISTORY created by test_encode_literal_card")
    assert fb.encode_literal_card(handle, "OBSERVER= 'Hubble'")
    assert not fb.encode_literal_card(handle, "NAXIS1  =                   99")
    assert handle.record_count() == n_before + 2
    assert handle.header["OBSERVER"] == "Hubble"
    assert handle.header["NAXIS1"] == 3
    with pytest.raises(fb.CardFormatError):
        fb.encode_literal_card(handle, "COMMENT " + "x" * 80)
    with pytest.raises(fb.CardFormatError):
        fb.encode_literal_card(handle, "COMMENT café")


def test_validate_header_mapping() -> None:
    result = fb.validate_header_mapping(
        {"OBJECT": b"M31", "EXPTIME": np.int16(120), "GAIN": np.float32(1.5), "NAME": "x"}
    )
    assert result == {"OBJECT": "M31", "EXPTIME": 120, "GAIN": 1.5, "NAME": "x"}
    assert type(result["EXPTIME"]) is int
    assert type(result["GAIN"]) is float
    assert list(fb.validate_header_mapping({"A": 1, "B": 2.0})) == ["A", "B"]
    assert type(fb.validate_header_mapping({"A": 1})["A"]) is int
    for bad in ({"FLAG": True}, {"NONE": None}, {"LIST": [1, 2]}, {1: "x"}, {"": 1}):
        with pytest.raises(fb.InputError):
            fb.validate_header_mapping(bad)
    with pytest.raises(fb.InputError):
        fb.validate_header_mapping([("A", 1)])  # type: ignore[arg-type]


def test_continued_string_cards() -> None:
    card = "LONGSTR = 'abc&'".ljust(80) + "CONTINUE  'O''Ne&'".ljust(80) + "CONTINUE  'il' / tail".ljust(80)
    assert fb.decode_card(card) == ("LONGSTR", "abcO'Neil")
    parsed = fb.split_card(card)
    assert parsed.keyword == "LONGSTR"
    assert parsed.comment == "tail"
    with pytest.raises(fb.CardDecodeError):
        fb.decode_card("LONGSTR = 'abc&'".ljust(80) + "COMMENT   not a continuation".ljust(80))
