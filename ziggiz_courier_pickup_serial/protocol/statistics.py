# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Statistics snapshot for the serial line reader

# Third-party imports
from pydantic import BaseModel, ConfigDict


class ReaderStatistics(BaseModel):
    """
    Immutable snapshot of a line reader's counters.

    All fields are captured under the reader's lock, so one snapshot always describes
    a single instant.

    Attributes:
        total_lines_received (int): Lines delivered to the handler.
        total_bytes_received (int): Bytes read from the source, including bytes later dropped.
        total_overflow_count (int): Ingest cycles that had to evict data.
        total_bytes_discarded (int): Bytes dropped by overflow and by manual discards.
        total_empty_lines_skipped (int): Delimiters found at the head of the buffer.
        total_discard_count (int): Calls to `discard_buffer()`, empty or not.
        total_callback_errors (int): Handler calls that raised and were isolated.
        peak_buffer_usage (int): Highest buffered byte count seen, never lowered.
        current_buffer_usage (int): Bytes buffered at the time of the snapshot.
    """

    model_config = ConfigDict(frozen=True)

    total_lines_received: int = 0
    total_bytes_received: int = 0
    total_overflow_count: int = 0
    total_bytes_discarded: int = 0
    total_empty_lines_skipped: int = 0
    total_discard_count: int = 0
    total_callback_errors: int = 0
    peak_buffer_usage: int = 0
    current_buffer_usage: int = 0
