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

"""Constants for FITS header cards and the keywords this package treats
specially.
"""

from __future__ import annotations

__all__ = (
    "CARD_LENGTH",
    "COMMENTARY_KEYWORDS",
    "CONTINUE",
    "HIERARCH",
    "KEYWORD_LENGTH",
    "MAX_PATH_BYTES",
    "MAX_STRING_VALUE_LENGTH",
    "STRUCTURAL_KEYS",
    "is_structural",
    "normalize_key",
)

CARD_LENGTH = 80
KEYWORD_LENGTH = 8
VALUE_INDICATOR = "= "
HIERARCH = "HIERARCH"
CONTINUE = "CONTINUE"

# Columns 11-80 hold the value; a string needs two of them for its quotes.
MAX_STRING_VALUE_LENGTH = CARD_LENGTH - KEYWORD_LENGTH - len(VALUE_INDICATOR) - 2

MAX_PATH_BYTES = 1024

STRUCTURAL_KEYS: frozenset[str] = frozenset(
    {"SIMPLE", "BITPIX", "NAXIS", "NAXIS1", "NAXIS2", "NAXIS3", "END"}
)

COMMENTARY_KEYWORDS: frozenset[str] = frozenset({"", "COMMENT", "HISTORY"})


def normalize_key(key: str) -> str:
    """Return the keyword a key is stored under.

    Standard (eight characters or fewer) keywords are upper-cased the way the
    FITS library stores them, and an explicit ``HIERARCH`` prefix is removed.
    """
    key = key.strip()
    if key[: len(HIERARCH) + 1].upper() == f"{HIERARCH} ":
        key = key[len(HIERARCH) + 1 :].strip()
    return key.upper() if len(key) <= KEYWORD_LENGTH else key


def is_structural(key: str) -> bool:
    """Test whether a header key describes the file's own layout and must
    never be set by callers.

    The test is case-insensitive, since the FITS library upper-cases
    standard keywords.
    """
    return normalize_key(key) in STRUCTURAL_KEYS
