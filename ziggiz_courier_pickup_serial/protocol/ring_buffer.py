# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Fixed-capacity circular byte storage used by the serial line reader

# Standard library imports
from typing import Union


class RingStore:
    """
    Fixed-capacity circular byte store addressed by head/tail/count.

    The backing bytearray is allocated once and never resized, so memoryviews handed
    out by `view()` and `write_region()` stay valid for the lifetime of the store.
    Offsets taken by the read helpers are logical offsets relative to `head`; every
    physical index is computed modulo `capacity`.

    The store is not thread-safe on its own. The owning reader serialises access.
    """

    def __init__(self, capacity: int):
        """
        Initialize the ring store.

        Args:
            capacity: Number of bytes the store can hold
        """
        self.capacity = capacity
        self.storage = bytearray(capacity)
        self.head = 0  # oldest unread byte
        self.tail = 0  # next write position
        self.count = 0  # buffered bytes

    @property
    def free_space(self) -> int:
        """Number of bytes that can be written before the store is full."""
        return self.capacity - self.count

    def contiguous_write_space(self) -> int:
        """
        Get the number of bytes writable at `tail` without wrapping or reaching `head`.

        Returns:
            The contiguous writable length, 0 when the store is full
        """
        if self.count == self.capacity:
            return 0
        if self.tail >= self.head:
            return self.capacity - self.tail
        return self.head - self.tail

    def write_region(self, size: int) -> memoryview:
        """
        Get a writable view of the free region at `tail`.

        The view is bounded by `size` and by the contiguous space at `tail`. Data written
        into it only becomes part of the buffered region after `commit()`.

        Args:
            size: The requested number of bytes

        Returns:
            A writable memoryview into the backing storage
        """
        size = min(size, self.contiguous_write_space())
        return memoryview(self.storage)[self.tail : self.tail + size]

    def commit(self, size: int) -> None:
        """Append `size` bytes that were written at `tail` to the buffered region."""
        if size > self.free_space:
            raise ValueError(
                f"Cannot commit {size} bytes, only {self.free_space} bytes free"
            )
        self.tail = (self.tail + size) % self.capacity
        self.count += size

    def drop(self, size: int) -> None:
        """Remove `size` bytes from the front of the buffered region."""
        if size > self.count:
            raise ValueError(f"Cannot drop {size} bytes, only {self.count} buffered")
        self.head = (self.head + size) % self.capacity
        self.count -= size

    def reset(self) -> None:
        """Forget all buffered bytes and rewind both cursors to the start."""
        self.head = 0
        self.tail = 0
        self.count = 0

    def _physical(self, offset: int) -> int:
        return (self.head + offset) % self.capacity

    def is_contiguous(self, offset: int, length: int) -> bool:
        """Check whether a logical range does not cross the end of the storage array."""
        return self._physical(offset) + length <= self.capacity

    def view(self, offset: int, length: int) -> memoryview:
        """
        Get a read-only, zero-copy view of a contiguous logical range.

        Args:
            offset: Logical offset from `head`
            length: Number of bytes

        Returns:
            A read-only memoryview into the backing storage

        Raises:
            ValueError: If the range crosses the wrap point
        """
        if not self.is_contiguous(offset, length):
            raise ValueError(
                f"Range at offset {offset} with length {length} wraps around the buffer"
            )
        start = self._physical(offset)
        return memoryview(self.storage)[start : start + length].toreadonly()

    def copy_into(
        self, destination: Union[bytearray, memoryview], offset: int, length: int
    ) -> int:
        """
        Copy a logical range into a contiguous destination buffer.

        A range that straddles the wrap point is copied as two contiguous sub-copies.

        Args:
            destination: Writable buffer of at least `length` bytes
            offset: Logical offset from `head`
            length: Number of bytes to copy

        Returns:
            The number of contiguous sub-copies performed
        """
        source = self._physical(offset)
        written = 0
        copies = 0
        with memoryview(self.storage) as storage:
            while written < length:
                chunk = min(length - written, self.capacity - source)
                destination[written : written + chunk] = storage[source : source + chunk]
                source = (source + chunk) % self.capacity
                written += chunk
                copies += 1
        return copies

    def peek(self, offset: int, length: int) -> bytes:
        """Return a copy of a logical range as bytes."""
        length = max(0, min(length, self.count - offset))
        staging = bytearray(length)
        self.copy_into(staging, offset, length)
        return bytes(staging)

    def matches_at(self, pattern: bytes, offset: int) -> bool:
        """Compare `pattern` byte by byte against the buffered data at a logical offset."""
        for index, byte in enumerate(pattern):
            if self.storage[(self.head + offset + index) % self.capacity] != byte:
                return False
        return True

    def find(self, pattern: bytes, start: int = 0) -> int:
        """
        Find the first occurrence of `pattern` beginning at or after a logical offset.

        The buffered region is searched as up to two physical segments. Matches that
        straddle the wrap point are found with a window comparison across the seam.

        Args:
            pattern: The byte sequence to search for
            start: Logical offset where the search begins

        Returns:
            The logical offset of the match, or -1 if there is none
        """
        size = len(pattern)
        last = self.count - size  # last offset a complete match can begin at
        if start > last:
            return -1

        # Single bytes are searched for as an integer, no window needed
        needle: Union[int, bytes] = pattern[0] if size == 1 else pattern
        split = self.capacity - self.head  # logical offset of the wrap point

        if self.count <= split:
            index = self.storage.find(needle, self.head + start, self.head + self.count)
            return -1 if index == -1 else index - self.head

        if start < split:
            index = self.storage.find(needle, self.head + start, self.capacity)
            if index != -1:
                return index - self.head

            for offset in range(max(start, split - size + 1), min(split, last + 1)):
                if self.matches_at(pattern, offset):
                    return offset

        index = self.storage.find(needle, max(start, split) - split, self.count - split)
        return -1 if index == -1 else index + split
