# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Pytest configuration file

# Standard library imports
import logging

from typing import Callable, List, Optional

# Third-party imports
import pytest

# Local/package imports
from ziggiz_courier_pickup_serial.protocol.handlers import LineHandler
from ziggiz_courier_pickup_serial.protocol.line_reader import SerialLineReader


# Define test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark a test as an integration test"
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    # Reset root logger after each test
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)  # Default level


class FakeByteSource:
    """
    In-memory byte source.

    Bytes passed to feed() become available and, unless told otherwise, every
    subscribed listener is notified synchronously. `max_read` caps how many bytes a
    single readinto() call returns, to simulate short reads.
    """

    def __init__(self, max_read: Optional[int] = None):
        self.pending = bytearray()
        self.listeners: List[Callable[[], None]] = []
        self.max_read = max_read
        self.read_sizes: List[int] = []
        self.closed = False

    @property
    def bytes_available(self) -> int:
        return len(self.pending)

    def readinto(self, buffer: memoryview) -> int:
        size = min(len(buffer), len(self.pending))
        if self.max_read is not None:
            size = min(size, self.max_read)
        buffer[:size] = self.pending[:size]
        del self.pending[:size]
        self.read_sizes.append(size)
        return size

    def subscribe(self, listener: Callable[[], None]) -> None:
        self.listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def close(self) -> None:
        self.closed = True

    def feed(self, data: bytes, notify: bool = True) -> None:
        self.pending.extend(data)
        if notify:
            self.notify()

    def notify(self) -> None:
        for listener in list(self.listeners):
            listener()


class RecordingHandler(LineHandler):
    """Line handler that keeps copies of everything it receives."""

    def __init__(self):
        self.lines: List[bytes] = []
        self.overflows: List[int] = []

    def on_line(self, line: memoryview) -> None:
        self.lines.append(bytes(line))

    def on_overflow(self, dropped: int) -> None:
        self.overflows.append(dropped)

    @property
    def text_lines(self) -> List[str]:
        return [line.decode("utf-8") for line in self.lines]


@pytest.fixture
def source():
    """Create an in-memory byte source."""
    return FakeByteSource()


@pytest.fixture
def recorder():
    """Create a handler recording lines and overflow events."""
    return RecordingHandler()


@pytest.fixture
def make_reader(source, recorder):
    """Factory creating line readers attached to the fake source and recorder."""
    readers = []

    def _make(**kwargs) -> SerialLineReader:
        kwargs.setdefault("handler", recorder)
        reader = SerialLineReader(source, **kwargs)
        readers.append(reader)
        return reader

    yield _make

    for reader in readers:
        reader.close()
