# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Line handler interface and the handlers shipped with the pickup service
#
# A line reader delivers every extracted line and every overflow event to exactly one
# handler. Handler failures are isolated by the reader, so handlers may raise freely.

# Standard library imports
import logging

from typing import Callable, Optional

# Local/package imports
from ziggiz_courier_pickup_serial.telemetry import get_tracer

LineCallback = Callable[[memoryview], None]
OverflowCallback = Callable[[int], None]


class LineHandler:
    """
    Base class for consumers of a line reader.

    Both methods are no-ops by default; subclasses override what they need. They are
    called synchronously while the reader holds its lock, so a slow handler delays
    ingestion as well as concurrent discard and statistics calls.
    """

    def on_line(self, line: memoryview) -> None:
        """
        Handle one line, without its delimiter.

        The view is read-only and borrowed from the reader; it is only valid for the
        duration of the call. Copy it with bytes(line) to keep it.
        """

    def on_overflow(self, dropped: int) -> None:
        """Handle an overflow event that dropped the `dropped` oldest bytes."""


class CallbackLineHandler(LineHandler):
    """Handler that forwards to plain callables."""

    def __init__(
        self,
        on_line: Optional[LineCallback] = None,
        on_overflow: Optional[OverflowCallback] = None,
    ):
        self._on_line = on_line
        self._on_overflow = on_overflow

    def on_line(self, line: memoryview) -> None:
        if self._on_line is not None:
            self._on_line(line)

    def on_overflow(self, dropped: int) -> None:
        if self._on_overflow is not None:
            self._on_overflow(dropped)


class LoggingLineHandler(LineHandler):
    """
    Handler that traces and logs each received line.

    Lines are logged either as text (UTF-8, undecodable bytes replaced) or as a hex
    string, inside an OpenTelemetry span per line.
    """

    def __init__(
        self,
        port_name: str,
        output_format: str = "text",
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the logging handler.

        Args:
            port_name: Name of the serial port, added to spans and log records
            output_format: "text" or "hex"
            logger: Logger instance
        """
        if output_format not in ("text", "hex"):
            raise ValueError(
                f"Invalid output format: {output_format}. Must be 'text' or 'hex'"
            )
        self.port_name = port_name
        self.output_format = output_format
        self.logger = logger or logging.getLogger(
            "ziggiz_courier_pickup_serial.protocol.handlers"
        )

    def format_line(self, line: memoryview) -> str:
        if self.output_format == "hex":
            return line.hex().upper()
        return bytes(line).decode("utf-8", errors="replace")

    def on_line(self, line: memoryview) -> None:
        tracer = get_tracer()
        with tracer.start_as_current_span(
            "serial_line_processing",
            attributes={"serial.port": self.port_name, "line.length": len(line)},
        ):
            message = self.format_line(line)
            self.logger.info(
                f"Received line: {message}",
                extra={"port": self.port_name, "line": message, "length": len(line)},
            )

    def on_overflow(self, dropped: int) -> None:
        self.logger.warning(
            f"Buffer overflow on {self.port_name}, dropped {dropped} oldest bytes",
            extra={"port": self.port_name, "dropped_bytes": dropped},
        )
