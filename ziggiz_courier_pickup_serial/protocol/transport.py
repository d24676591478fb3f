# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Byte sources feeding the line reader
#
# A byte source exposes a non-blocking "bytes available" query, a short-read-tolerant
# readinto() and a "data ready" notification. SerialPortSource implements it on top of
# pySerial with a watcher thread polling the port.

# Standard library imports
import logging
import threading

from typing import Callable, List, Optional, Protocol

# Third-party imports
import serial

DEFAULT_POLL_INTERVAL = 0.01  # seconds
WATCHER_JOIN_TIMEOUT = 1.0  # seconds

DataReadyListener = Callable[[], None]


class ByteSource(Protocol):
    """Interface the line reader expects from its transport."""

    @property
    def bytes_available(self) -> int:
        """Number of bytes that can be read right now without blocking."""

    def readinto(self, buffer: memoryview) -> int:
        """Copy up to len(buffer) available bytes into buffer and return the count."""

    def subscribe(self, listener: DataReadyListener) -> None:
        """Register a listener called whenever new bytes are available."""

    def unsubscribe(self, listener: DataReadyListener) -> None:
        """Remove a previously registered listener."""

    def close(self) -> None:
        """Release the transport."""


class SerialPortSource:
    """
    Byte source backed by a pySerial port.

    The port is used in non-blocking mode (timeout=0). After `open()` a daemon watcher
    thread polls `in_waiting` and notifies the subscribed listeners from that thread
    whenever bytes are pending. Any pySerial URL is accepted, including "loop://".
    """

    def __init__(
        self,
        port: serial.SerialBase,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the serial source.

        Args:
            port: A configured (open or not yet opened) pySerial port
            poll_interval: Seconds to wait between polls while the port is idle
            logger: Logger instance
        """
        self.port = port
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(
            "ziggiz_courier_pickup_serial.protocol.transport"
        )
        self._listeners: List[DataReadyListener] = []
        self._listeners_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._watcher: Optional[threading.Thread] = None
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_url(
        cls,
        url: str,
        baudrate: int = 9600,
        bytesize: int = serial.EIGHTBITS,
        parity: str = serial.PARITY_NONE,
        stopbits: float = serial.STOPBITS_ONE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> "SerialPortSource":
        """
        Create a source for a device name or pySerial URL without opening it.

        Raises:
            ValueError: If pySerial rejects one of the port settings
        """
        port = serial.serial_for_url(
            url,
            baudrate=baudrate,
            bytesize=bytesize,
            parity=parity,
            stopbits=stopbits,
            timeout=0,
            do_not_open=True,
        )
        return cls(port, poll_interval=poll_interval)

    def __str__(self) -> str:
        return self.name

    @property
    def name(self) -> str:
        return self.port.port or "unidentified port"

    @property
    def is_open(self) -> bool:
        return self.port.is_open

    @property
    def bytes_available(self) -> int:
        return self.port.in_waiting

    def readinto(self, buffer: memoryview) -> int:
        return self.port.readinto(buffer) or 0

    def write(self, data: bytes) -> int:
        return self.port.write(data) or 0

    def subscribe(self, listener: DataReadyListener) -> None:
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: DataReadyListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def open(self) -> None:
        """
        Open the port if necessary and start the watcher thread.

        Raises:
            serial.SerialException: If the port cannot be opened
            RuntimeError: If the source was already closed
        """
        if self._closed:
            raise RuntimeError(f"Serial source {self.name} is closed")

        if not self.port.is_open:
            self.port.open()
            self.logger.info(f"Serial port {self.name} opened")

        if self._watcher is None or not self._watcher.is_alive():
            self._stop_event.clear()
            self._watcher = threading.Thread(
                target=self._watch, name=f"serial-watcher-{self.name}", daemon=True
            )
            self._watcher.start()

    def close(self) -> None:
        """Stop the watcher thread and close the port. Further calls do nothing."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._stop_event.set()
        watcher = self._watcher
        if watcher is not None and watcher is not threading.current_thread():
            watcher.join(timeout=WATCHER_JOIN_TIMEOUT)
        self._watcher = None

        with self._listeners_lock:
            self._listeners.clear()

        if self.port.is_open:
            try:
                self.port.close()
            except (OSError, serial.SerialException) as e:
                # The device may already be gone
                self.logger.warning(f"Error closing serial port {self.name}: {e}")
        self.logger.info(f"Serial port {self.name} closed")

    def __enter__(self) -> "SerialPortSource":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _watch(self) -> None:
        """Poll the port and notify listeners until stopped or the port fails."""
        self.logger.debug(f"Watcher started for {self.name}")
        while not self._stop_event.is_set():
            try:
                available = self.port.in_waiting
                if available:
                    self._notify()
                    # Poll again at once only if the listeners made progress
                    if self.port.in_waiting < available:
                        continue
            except (OSError, serial.SerialException) as e:
                # Read failed, probably port closed or device removed
                self.logger.error(f"Serial port {self.name} failed: {e}")
                break
            except Exception:
                self.logger.exception(f"Data ready listener failed on {self.name}")
                raise
            self._stop_event.wait(self.poll_interval)
        self.logger.debug(f"Watcher stopped for {self.name}")

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()
