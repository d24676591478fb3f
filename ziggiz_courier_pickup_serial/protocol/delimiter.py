# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Resumable delimiter search over a ring store

# Local/package imports
from ziggiz_courier_pickup_serial.protocol.ring_buffer import RingStore


class DelimiterScanner:
    """
    Incremental search for an exact delimiter byte sequence in a RingStore.

    The scanner remembers the offset (relative to the store's head) before which the
    delimiter is known not to start. Each search resumes there, so bytes that arrive
    over many partial deliveries are compared only once.
    """

    def __init__(self, delimiter: bytes):
        self.delimiter = delimiter
        self.position = 0

    def find(self, store: RingStore) -> int:
        """
        Find the next delimiter in the buffered region.

        Args:
            store: The ring store holding the buffered bytes

        Returns:
            The logical offset of the delimiter, or -1 if none is buffered yet
        """
        if store.count < len(self.delimiter):
            return -1

        index = store.find(self.delimiter, self.position)
        if index == -1:
            # The tail may hold the start of a delimiter that is still arriving
            self.position = max(0, store.count - len(self.delimiter) + 1)
        return index

    def reset(self) -> None:
        """Restart scanning at the head after bytes were removed from the front."""
        self.position = 0

    def rewind(self, evicted: int) -> None:
        """Shift the scan position back after `evicted` bytes were dropped by overflow."""
        self.position = max(0, self.position - evicted)
