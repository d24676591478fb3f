# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Bounded-memory line reader for continuous serial byte streams

# Standard library imports
import logging
import threading

from typing import Optional

# Local/package imports
from ziggiz_courier_pickup_serial.protocol.delimiter import DelimiterScanner
from ziggiz_courier_pickup_serial.protocol.framing_common import (
    DEFAULT_DELIMITER,
    DEFAULT_MAX_BUFFER_SIZE,
    STAGING_THRESHOLD,
    validate_framing,
)
from ziggiz_courier_pickup_serial.protocol.handlers import LineHandler
from ziggiz_courier_pickup_serial.protocol.ring_buffer import RingStore
from ziggiz_courier_pickup_serial.protocol.statistics import ReaderStatistics
from ziggiz_courier_pickup_serial.protocol.transport import ByteSource


class SerialLineReader:
    """
    Split a continuous byte stream into delimiter-terminated lines using a fixed-size
    ring buffer.

    The reader subscribes to the source's "data ready" notification. Each notification
    runs one ingest cycle: the available bytes are pulled into the ring buffer (dropping
    the oldest buffered bytes when they would not fit), then every complete line is
    handed to the handler without its delimiter. Empty lines are counted but never
    delivered.

    One re-entrant lock guards the buffer and all counters, including while the handler
    runs. A slow handler therefore stalls ingestion and concurrent discard/statistics
    calls. Exceptions raised by the handler are logged, counted and otherwise ignored so
    that they cannot corrupt the buffer.
    """

    def __init__(
        self,
        source: ByteSource,
        handler: Optional[LineHandler] = None,
        delimiter: bytes = DEFAULT_DELIMITER,
        max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE,
        owns_source: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the line reader and subscribe to the source.

        Args:
            source: The transport providing bytes and "data ready" notifications
            handler: Consumer of lines and overflow events
            delimiter: Byte sequence terminating each line
            max_buffer_size: Ring buffer capacity in bytes
            owns_source: Whether close() also closes the source
            logger: Logger instance

        Raises:
            FramingConfigurationError: If the delimiter is empty or the buffer size is
                not a positive integer
        """
        if source is None:
            raise ValueError("Source cannot be None")
        self.delimiter = validate_framing(delimiter, max_buffer_size)
        self.max_buffer_size = max_buffer_size
        self.source = source
        self.handler = handler or LineHandler()
        self.owns_source = owns_source
        self.logger = logger or logging.getLogger(
            "ziggiz_courier_pickup_serial.protocol.line_reader"
        )

        self._lock = threading.RLock()
        self._store: Optional[RingStore] = RingStore(max_buffer_size)
        self._scanner = DelimiterScanner(self.delimiter)

        # Scratch space for lines that wrap around the end of the ring buffer
        self._staging = bytearray(STAGING_THRESHOLD)
        self._pooled_staging = bytearray()

        # Bumped by discard_buffer() and close() so that a handler resetting the reader
        # from inside a delivery ends the current processing loop
        self._generation = 0

        # Teardown guard, independent of the main lock
        self._close_lock = threading.Lock()
        self._closed = False

        # Statistics
        self._total_lines_received = 0
        self._total_bytes_received = 0
        self._total_overflow_count = 0
        self._total_bytes_discarded = 0
        self._total_empty_lines_skipped = 0
        self._total_discard_count = 0
        self._total_callback_errors = 0
        self._peak_buffer_usage = 0

        self.source.subscribe(self.on_data_ready)

    def __enter__(self) -> "SerialLineReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_buffer_usage(self) -> int:
        """Number of bytes currently buffered."""
        with self._lock:
            return self._store.count if self._store is not None else 0

    @property
    def search_position(self) -> int:
        """
        Offset from the buffer head before which the delimiter is known not to start.

        Diagnostic accessor for tests and debugging; not needed for normal operation.
        """
        with self._lock:
            return self._scanner.position

    def get_statistics(self) -> ReaderStatistics:
        """
        Take a consistent snapshot of all counters.

        Returns:
            A ReaderStatistics instance
        """
        with self._lock:
            return ReaderStatistics(
                total_lines_received=self._total_lines_received,
                total_bytes_received=self._total_bytes_received,
                total_overflow_count=self._total_overflow_count,
                total_bytes_discarded=self._total_bytes_discarded,
                total_empty_lines_skipped=self._total_empty_lines_skipped,
                total_discard_count=self._total_discard_count,
                total_callback_errors=self._total_callback_errors,
                peak_buffer_usage=self._peak_buffer_usage,
                current_buffer_usage=(
                    self._store.count if self._store is not None else 0
                ),
            )

    def discard_buffer(self) -> int:
        """
        Drop everything currently buffered, including any partial line.

        Every call counts as a discard operation, even when nothing was buffered.
        Peak usage is not affected.

        Returns:
            The number of bytes that were dropped
        """
        with self._lock:
            store = self._store
            discarded_bytes = store.count if store is not None else 0

            self._total_discard_count += 1
            if discarded_bytes > 0:
                self._total_bytes_discarded += discarded_bytes

            if store is not None:
                store.reset()
            self._scanner.reset()
            self._generation += 1

            self.logger.debug(
                f"Discarded {discarded_bytes} buffered bytes",
                extra={"discarded_bytes": discarded_bytes},
            )
            return discarded_bytes

    def on_data_ready(self) -> None:
        """
        Run one ingest cycle.

        Called by the source whenever new bytes are available. Reads what the source
        reports as available, then delivers every complete line.
        """
        with self._lock:
            store = self._store
            if store is None:
                return

            bytes_to_read = self.source.bytes_available
            if bytes_to_read <= 0:
                return

            generation = self._generation
            self._write_to_ring_buffer(store, bytes_to_read, generation)
            if generation != self._generation:
                # The overflow handler discarded the buffer or closed the reader,
                # the unread bytes stay with the source
                return
            self._process_lines(store)

            self.logger.debug(
                f"Data received after. head=[{store.head}], tail=[{store.tail}], "
                f"count=[{store.count}], search=[{self._scanner.position}]"
            )

    def close(self) -> None:
        """
        Unsubscribe from the source, release the buffer and, when the reader owns the
        source, close it. Only the first call has any effect.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self.source.unsubscribe(self.on_data_ready)

        with self._lock:
            self._store = None
            self._staging = bytearray()
            self._pooled_staging = bytearray()
            self._generation += 1

        if self.owns_source:
            self.source.close()

        self.logger.debug("Line reader closed")

    # ------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------

    def _write_to_ring_buffer(
        self, store: RingStore, bytes_to_read: int, generation: int
    ) -> None:
        """
        Pull up to `bytes_to_read` bytes from the source, evicting old data first.

        Nothing is read when the overflow handler resets or closes the reader, that is
        when `generation` no longer matches.
        """
        bytes_to_skip = 0
        available_space = store.free_space

        if bytes_to_read > available_space:
            discarded_bytes = bytes_to_read - available_space

            # Existing bytes go first; if the batch alone exceeds the capacity, its
            # leading bytes are read and dropped so that exactly the newest
            # `capacity` bytes remain
            evicted = min(discarded_bytes, store.count)
            store.drop(evicted)
            bytes_to_skip = discarded_bytes - evicted
            self._scanner.rewind(discarded_bytes)

            self._total_overflow_count += 1
            self._total_bytes_discarded += discarded_bytes

            self.logger.debug(
                f"Buffer overflow, dropping {discarded_bytes} oldest bytes",
                extra={"dropped_bytes": discarded_bytes},
            )
            self._notify_overflow(discarded_bytes)
            if generation != self._generation:
                return

        remaining = bytes_to_read
        while remaining > 0:
            with store.write_region(remaining) as region:
                chunk_size = len(region)
                if chunk_size <= 0:
                    break
                if bytes_to_skip > 0:
                    # Bytes that would be evicted by this very batch
                    chunk_size = min(chunk_size, bytes_to_skip)
                    bytes_read = self.source.readinto(region[:chunk_size])
                else:
                    bytes_read = self.source.readinto(region)

            if bytes_read <= 0:
                # Short read, the rest is picked up on the next notification
                break

            remaining -= bytes_read
            self._total_bytes_received += bytes_read

            if bytes_to_skip > 0:
                bytes_to_skip -= bytes_read
                continue

            store.commit(bytes_read)
            if store.count > self._peak_buffer_usage:
                self._peak_buffer_usage = store.count

    # ------------------------------------------------------------
    # Line processing
    # ------------------------------------------------------------

    def _process_lines(self, store: RingStore) -> None:
        generation = self._generation
        while store.count > 0:
            delimiter_index = self._scanner.find(store)
            if delimiter_index == -1:
                break

            if delimiter_index > 0:
                self._total_lines_received += 1
                self._emit_line(store, delimiter_index)
                if generation != self._generation:
                    # The handler discarded the buffer or closed the reader
                    break
            else:
                self._total_empty_lines_skipped += 1

            store.drop(delimiter_index + len(self.delimiter))
            self._scanner.reset()

    def _emit_line(self, store: RingStore, length: int) -> None:
        """Deliver the first `length` buffered bytes to the handler."""
        if store.is_contiguous(0, length):
            self._notify_line(store.view(0, length))
            return

        # The line wraps around the end of the storage, stage it contiguously
        if length <= STAGING_THRESHOLD:
            staging = self._staging
        else:
            if len(self._pooled_staging) < length:
                self._pooled_staging = bytearray(length)
            staging = self._pooled_staging

        store.copy_into(staging, 0, length)
        self._notify_line(memoryview(staging)[:length].toreadonly())

    def _notify_line(self, line: memoryview) -> None:
        try:
            self.handler.on_line(line)
        except Exception as exc:
            self._total_callback_errors += 1
            self.logger.warning(
                f"Line handler failed: {exc}",
                exc_info=True,
                extra={"line_length": len(line)},
            )

    def _notify_overflow(self, dropped: int) -> None:
        try:
            self.handler.on_overflow(dropped)
        except Exception as exc:
            self._total_callback_errors += 1
            self.logger.warning(
                f"Overflow handler failed: {exc}",
                exc_info=True,
                extra={"dropped_bytes": dropped},
            )
