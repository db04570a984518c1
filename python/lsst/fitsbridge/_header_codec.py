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

"""Translation between typed header values and 80-character FITS cards."""

from __future__ import annotations

__all__ = (
    "HeaderValue",
    "ParsedCard",
    "decode_card",
    "encode_literal_card",
    "encode_update",
    "make_literal_card",
    "split_card",
    "validate_header_mapping",
)

import dataclasses
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Annotated, Any, TypeAlias

import astropy.io.fits
import numpy as np
import pydantic

from ._errors import (
    CardDecodeError,
    CardFormatError,
    InputError,
    KeyUpdateWarning,
    StatusCode,
    UnderlyingIOError,
)
from ._library import TypeTag
from .keywords import (
    CARD_LENGTH,
    COMMENTARY_KEYWORDS,
    CONTINUE,
    HIERARCH,
    KEYWORD_LENGTH,
    MAX_STRING_VALUE_LENGTH,
    VALUE_INDICATOR,
    is_structural,
)

if TYPE_CHECKING:
    from ._library import FitsHandle

HeaderValue: TypeAlias = str | int | float

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[EeDd][+-]?\d+)?")
_LONG_MIN = np.iinfo(np.int64).min
_LONG_MAX = np.iinfo(np.int64).max


@dataclasses.dataclass(frozen=True)
class ParsedCard:
    """The three fields of a header card, as text."""

    keyword: str
    """Keyword name (without any ``HIERARCH`` prefix)."""

    value: str
    """Value field with surrounding blanks removed; string values keep
    their quotes.  Empty for cards without a value indicator.
    """

    comment: str
    """Comment text, or the free text of a commentary card."""

    @property
    def is_commentary(self) -> bool:
        """Whether this card carries no structured value (``COMMENT``,
        ``HISTORY`` or a blank keyword).
        """
        return self.keyword in COMMENTARY_KEYWORDS


def split_card(card: str) -> ParsedCard:
    """Split a card into its keyword, value and comment fields.

    A card longer than 80 characters is a string value continued over
    ``CONTINUE`` records; its pieces are joined into one quoted value.
    """
    if len(card) > CARD_LENGTH:
        return _join_continued(card)
    card = card.ljust(CARD_LENGTH)
    if card[: len(HIERARCH) + 1].upper() == f"{HIERARCH} ":
        keyword, sep, value_field = card[len(HIERARCH) + 1 :].partition("=")
        if not sep:
            return ParsedCard(HIERARCH, "", card[len(HIERARCH) :].strip())
        keyword = keyword.strip()
    else:
        keyword = card[:KEYWORD_LENGTH].rstrip()
        if card[KEYWORD_LENGTH : KEYWORD_LENGTH + len(VALUE_INDICATOR)] != VALUE_INDICATOR:
            return ParsedCard(keyword, "", card[KEYWORD_LENGTH:].strip())
        value_field = card[KEYWORD_LENGTH + len(VALUE_INDICATOR) :]
    value, comment = _split_value_field(value_field)
    return ParsedCard(keyword, value, comment)


def _join_continued(card: str) -> ParsedCard:
    records = [card[i : i + CARD_LENGTH] for i in range(0, len(card), CARD_LENGTH)]
    head = split_card(records[0])
    values = [head.value]
    comments = [head.comment]
    for record in records[1:]:
        if record[:KEYWORD_LENGTH].rstrip() != CONTINUE:
            raise CardDecodeError(head.keyword, record.rstrip())
        value, comment = _split_value_field(record[KEYWORD_LENGTH:])
        values.append(value)
        comments.append(comment)
    pieces = []
    for value in values:
        if len(value) < 2 or not (value.startswith("'") and value.endswith("'")):
            raise CardDecodeError(head.keyword, value)
        piece = value[1:-1].rstrip().replace("''", "'")
        pieces.append(piece.removesuffix("&"))
    joined = "".join(pieces).replace("'", "''")
    return ParsedCard(head.keyword, f"'{joined}'", " ".join(c for c in comments if c))


def _split_value_field(field: str) -> tuple[str, str]:
    field = field.lstrip()
    if field.startswith("'"):
        i = 1
        while i < len(field):
            if field[i] == "'":
                if field[i + 1 : i + 2] == "'":
                    i += 2
                    continue
                _, _, comment = field[i + 1 :].partition("/")
                return field[: i + 1], comment.strip()
            i += 1
        # No closing quote; keep the raw text.
        return field.rstrip(), ""
    value, _, comment = field.partition("/")
    return value.strip(), comment.strip()


def _classify_value(keyword: str, value: str) -> HeaderValue:
    if value.startswith("'"):
        if len(value) >= 2 and value.endswith("'"):
            return value[1:-1].rstrip().replace("''", "'")
        return value
    if "." in value:
        if not _FLOAT_RE.fullmatch(value):
            raise CardDecodeError(keyword, value)
        return float(value.replace("D", "E").replace("d", "e"))
    if _INT_RE.fullmatch(value):
        return int(value)
    return value


def decode_card(card: str) -> tuple[str, HeaderValue] | None:
    """Decode one card into a key and a typed value.

    Parameters
    ----------
    card
        Card text, at most 80 characters.

    Returns
    -------
    decoded
        ``(key, value)``, or `None` for ``COMMENT``, ``HISTORY`` and
        blank-keyword cards.

    Raises
    ------
    CardDecodeError
        Raised if a value that looks like a float cannot be parsed as one.

    Notes
    -----
    Quoted values are always strings, even if they look like numbers.  An
    unquoted value containing a decimal point is a float; otherwise an
    integer parse is attempted, and the raw text is returned as a string if
    that fails (e.g. logical ``T``/``F`` values).
    """
    parsed = split_card(card)
    if parsed.is_commentary:
        return None
    return parsed.keyword, _classify_value(parsed.keyword, parsed.value)


def encode_update(handle: FitsHandle, key: str, value: HeaderValue) -> bool:
    """Set one header key, dispatching on the type of its value.

    Parameters
    ----------
    handle
        Open file to update.
    key
        Header key.  Structural keys are never written.
    value
        `int` values are written as longs, `float` as doubles and `str` as
        quoted strings.

    Returns
    -------
    applied
        `False` if the key is structural and was skipped, `True` if the
        key was written.

    Raises
    ------
    KeyUpdateWarning
        Raised if this key could not be written.  This is never fatal to a
        multi-key write; callers are expected to catch and record it.
    """
    if is_structural(key):
        return False
    match value:
        case bool():
            raise KeyUpdateWarning(key, value, "logical values are not supported", StatusCode.BAD_DATATYPE)
        case int():
            if not _LONG_MIN <= value <= _LONG_MAX:
                raise KeyUpdateWarning(key, value, "integer does not fit in a long", StatusCode.NUM_OVERFLOW)
            tag = TypeTag.TLONG
        case float():
            tag = TypeTag.TDOUBLE
        case str():
            if len(value.replace("'", "''")) > MAX_STRING_VALUE_LENGTH:
                raise KeyUpdateWarning(
                    key, value, f"string is longer than {MAX_STRING_VALUE_LENGTH} characters"
                )
            tag = TypeTag.TSTRING
        case _:
            raise KeyUpdateWarning(
                key, value, f"unsupported value type {type(value).__name__}", StatusCode.BAD_DATATYPE
            )
    try:
        handle.update_key(tag, key, value)
    except UnderlyingIOError as err:
        raise KeyUpdateWarning(key, value, str(err), err.status) from err
    return True


def make_literal_card(text: str) -> astropy.io.fits.Card:
    """Build and verify a card from its literal text.

    Raises
    ------
    CardFormatError
        Raised if ``text`` is longer than 80 characters, is not printable
        ASCII, or does not verify as a FITS card.
    """
    if len(text) > CARD_LENGTH:
        raise CardFormatError(f"Card is {len(text)} characters long; the limit is {CARD_LENGTH}: {text!r}.")
    if not (text.isascii() and text.isprintable()):
        raise CardFormatError(f"Card contains characters that are not printable ASCII: {text!r}.")
    card = astropy.io.fits.Card.fromstring(text.ljust(CARD_LENGTH))
    try:
        card.verify("exception")
        card.value
    except (astropy.io.fits.VerifyError, ValueError) as err:
        raise CardFormatError(f"Invalid card {text!r}: {err}") from err
    return card


def encode_literal_card(handle: FitsHandle, text: str) -> bool:
    """Append a pre-formatted card to the header verbatim.

    Returns `False` (without writing) for cards whose keyword is structural.
    Any failure is fatal: `CardFormatError` for malformed text, and
    `UnderlyingIOError` if the library rejects the record.
    """
    if is_structural(split_card(text).keyword):
        return False
    handle.write_record(make_literal_card(text))
    return True


def _coerce_host_value(value: Any) -> Any:
    match value:
        case bytes() | bytearray():
            return bytes(value).decode("latin-1")
        case np.bool_():
            return value
        case np.integer():
            return int(value)
        case np.floating():
            return float(value)
    return value


_HEADER_MAPPING_ADAPTER: pydantic.TypeAdapter[dict[str, HeaderValue]] = pydantic.TypeAdapter(
    dict[
        Annotated[str, pydantic.StringConstraints(strict=True, min_length=1)],
        Annotated[
            pydantic.StrictInt | pydantic.StrictFloat | pydantic.StrictStr,
            pydantic.BeforeValidator(_coerce_host_value),
        ],
    ]
)


def validate_header_mapping(headers: Mapping[str, Any]) -> dict[str, HeaderValue]:
    """Check and normalize a host-supplied header mapping.

    Byte strings are decoded as Latin-1 and numpy scalars are converted to
    Python numbers.  Any other value that is not `str`, `int` or `float`
    (including `bool` and `None`) is rejected.

    Raises
    ------
    InputError
        Raised if any key or value has an unsupported type.
    """
    if not isinstance(headers, Mapping):
        raise InputError(f"Header must be a mapping, not {type(headers).__name__}.")
    try:
        return _HEADER_MAPPING_ADAPTER.validate_python(dict(headers))
    except pydantic.ValidationError as err:
        raise InputError(f"Invalid header mapping: {err}") from err
