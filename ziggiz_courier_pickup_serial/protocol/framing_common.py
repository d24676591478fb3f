# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Common module for framing-related constants and errors shared by the line reader

# Standard library imports
import re

# Constants
DEFAULT_DELIMITER = b"\n"
DEFAULT_MAX_BUFFER_SIZE = 64 * 1024  # 64 KiB
STAGING_THRESHOLD = 512  # wrapped lines up to this size use the fixed scratch buffer

_HEX_ESCAPE_PATTERN = re.compile(r"\\x([0-9a-fA-F]{2})")


class FramingConfigurationError(ValueError):
    """
    Exception raised when a line reader is constructed with an invalid framing setup,
    such as an empty delimiter or a non-positive buffer size.
    """


def validate_framing(delimiter: bytes, max_buffer_size: int) -> bytes:
    """
    Validate the framing parameters of a line reader.

    Args:
        delimiter: The byte sequence terminating each line
        max_buffer_size: Capacity of the ring buffer in bytes

    Returns:
        The delimiter as an immutable bytes object

    Raises:
        FramingConfigurationError: If either parameter is invalid
    """
    if delimiter is None or len(delimiter) == 0:
        raise FramingConfigurationError("Delimiter cannot be empty")
    if isinstance(max_buffer_size, bool) or not isinstance(max_buffer_size, int):
        raise FramingConfigurationError(
            f"Buffer size must be an integer, got {type(max_buffer_size).__name__}"
        )
    if max_buffer_size <= 0:
        raise FramingConfigurationError(
            f"Buffer size must be positive, got {max_buffer_size}"
        )
    return bytes(delimiter)


def parse_delimiter(marker: str) -> bytes:
    """
    Parse a string representation of a line delimiter into bytes.

    Handles the escape sequences \\n, \\r, \\t, \\0 and hex sequences (\\x03).

    Args:
        marker: String representation of the delimiter

    Returns:
        Bytes representation of the delimiter

    Raises:
        FramingConfigurationError: If the marker parses to an empty delimiter
        ValueError: If the marker cannot be encoded
    """
    # Hex escapes first so that "\\x0a" is not touched by the plain replacements
    marker = _HEX_ESCAPE_PATTERN.sub(lambda m: chr(int(m.group(1), 16)), marker)
    marker = (
        marker.replace("\\n", "\n")
        .replace("\\r", "\r")
        .replace("\\t", "\t")
        .replace("\\0", "\0")
    )

    try:
        delimiter = marker.encode("latin-1")
    except UnicodeEncodeError as e:
        raise ValueError(f"Cannot encode delimiter '{marker}': {e}") from e

    if not delimiter:
        raise FramingConfigurationError("Delimiter cannot be empty")
    return delimiter
