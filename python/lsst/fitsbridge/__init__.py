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

from . import diagnostics, keywords
from ._buffer import (
    ImageDescriptor,
    buffer_to_rows,
    rows_to_buffer,
    to_pixel_type,
    validate_dimensions,
)
from ._dtypes import DEFAULT_FORMAT_CODE, SAMPLE_SIZE, FormatCode, SampleKind, bitpix_constants
from ._errors import (
    CardDecodeError,
    CardFormatError,
    DimensionError,
    DimensionMismatch,
    FileNotFound,
    FitsBridgeError,
    InputError,
    InvalidDimensions,
    KeyUpdateWarning,
    NotTwoDimensional,
    ReadError,
    ResourceError,
    StatusCode,
    UnderlyingIOError,
    UnsupportedFormat,
    UnsupportedShape,
    WriteError,
)
from ._fits_reader import FitsImage, FitsReader
from ._fits_writer import FitsWriter, WriteReport
from ._header_codec import (
    HeaderValue,
    ParsedCard,
    decode_card,
    encode_literal_card,
    encode_update,
    split_card,
    validate_header_mapping,
)
from ._library import FitsHandle, OpenMode, TypeTag
from ._operations import (
    copy,
    get_dimensions,
    probe,
    read,
    read_array,
    read_header,
    read_image,
    write_array,
    write_full,
    write_header_cards,
    write_image,
    write_image_from_rows,
)
from ._options import WriteOptions, WriteOptionsDict
