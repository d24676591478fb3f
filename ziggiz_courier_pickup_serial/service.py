# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Service implementation for the serial pickup

# Standard library imports
import asyncio
import logging

from typing import Optional

# Local/package imports
from ziggiz_courier_pickup_serial.config import Config
from ziggiz_courier_pickup_serial.protocol.handlers import LoggingLineHandler
from ziggiz_courier_pickup_serial.protocol.line_reader import SerialLineReader
from ziggiz_courier_pickup_serial.protocol.transport import SerialPortSource


class SerialPickupService:
    """
    AsyncIO service wrapping a serial line reader.

    The reader itself is driven by the serial watcher thread; the event loop only owns
    the lifecycle and the optional periodic statistics report.
    """

    def __init__(self, config: Config = None):
        """
        Initialize the serial pickup service.

        Args:
            config: The configuration object
        """
        self.logger = logging.getLogger("ziggiz_courier_pickup_serial.service")
        self.config = config or Config()
        self.loop = None
        self.source: Optional[SerialPortSource] = None
        self.reader: Optional[SerialLineReader] = None
        self.stats_task: Optional[asyncio.Task] = None

    def create_source(self) -> SerialPortSource:
        """Create the (unopened) serial source described by the configuration."""
        return SerialPortSource.from_url(
            self.config.port,
            baudrate=self.config.baudrate,
            bytesize=self.config.bytesize,
            parity=self.config.parity,
            stopbits=self.config.stopbits,
            poll_interval=self.config.poll_interval,
        )

    def create_reader(self, source: SerialPortSource) -> SerialLineReader:
        """Create a line reader logging every line received from `source`."""
        handler = LoggingLineHandler(
            port_name=self.config.port, output_format=self.config.output_format
        )
        return SerialLineReader(
            source,
            handler=handler,
            delimiter=self.config.delimiter_bytes,
            max_buffer_size=self.config.max_buffer_size,
            owns_source=self.config.owns_port,
        )

    async def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start the serial pickup service.

        Args:
            loop: Optional event loop to use

        Raises:
            RuntimeError: If the service fails to start
        """
        self.loop = loop or asyncio.get_event_loop()

        self.logger.info(
            f"Starting serial pickup on {self.config.port} at {self.config.baudrate} baud "
            f"with delimiter {self.config.delimiter!r} and "
            f"{self.config.max_buffer_size} byte buffer"
        )

        try:
            self.source = self.create_source()
            self.reader = self.create_reader(self.source)
            self.source.open()
        except Exception as e:
            self.logger.error(f"Failed to start serial pickup: {e}")
            if self.reader is not None:
                self.reader.close()
            if self.source is not None:
                self.source.close()
            self.reader = None
            self.source = None
            raise RuntimeError(f"Failed to start serial pickup: {e}")

        if self.config.stats_interval > 0:
            self.stats_task = self.loop.create_task(
                self.report_statistics(self.config.stats_interval)
            )

    async def stop(self) -> None:
        """Stop the service, closing the reader and (when owned) the serial port."""
        if self.stats_task is not None:
            self.stats_task.cancel()
            try:
                await self.stats_task
            except asyncio.CancelledError:
                pass
            self.stats_task = None

        if self.reader is not None:
            self.log_statistics()
            self.reader.close()
            self.reader = None
            self.logger.info("Serial line reader stopped")

        if self.source is not None and not self.config.owns_port:
            # Not closed by the reader
            self.source.close()
        self.source = None

    async def report_statistics(self, interval: float) -> None:
        """Log reader statistics every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.log_statistics()

    def log_statistics(self) -> None:
        if self.reader is None:
            return
        stats = self.reader.get_statistics()
        self.logger.info(
            f"Lines: {stats.total_lines_received}, "
            f"bytes: {stats.total_bytes_received}, "
            f"overflows: {stats.total_overflow_count}, "
            f"discarded: {stats.total_bytes_discarded}, "
            f"buffer: {stats.current_buffer_usage}/{self.config.max_buffer_size} "
            f"(peak {stats.peak_buffer_usage})",
            extra={"statistics": stats.model_dump()},
        )
