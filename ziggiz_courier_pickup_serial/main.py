# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Main entry point for the serial pickup service

# Standard library imports
import argparse
import asyncio
import logging
import sys

from typing import Optional

# Local/package imports
from ziggiz_courier_pickup_serial.config import Config, configure_logging, load_config
from ziggiz_courier_pickup_serial.telemetry import configure_telemetry


def setup_logging(log_level: str = "INFO", config: Optional[Config] = None) -> None:
    """
    Configure logging with appropriate formatters and handlers.

    Args:
        log_level: The logging level to set (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        config: Optional configuration object to use for logging setup
    """
    if config:
        # Use the configuration-based logging setup
        configure_logging(config)
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

        # Create a formatter with timestamp, level, and logger name
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Configure the root logger
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        # Add console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        # Set specific log levels for third-party libraries
        logging.getLogger("opentelemetry").setLevel(logging.WARNING)


def run_service(config: Optional[Config] = None) -> None:
    """
    Run the serial pickup service until interrupted.

    Args:
        config: Optional configuration object, defaults are used if omitted
    """
    logger = logging.getLogger("ziggiz_courier_pickup_serial.main")

    try:
        if not config:
            config = Config()

        configure_telemetry(console_export=config.enable_console_spans)

        # Create and run the event loop
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        # Local/package imports
        from ziggiz_courier_pickup_serial.service import SerialPickupService

        service = SerialPickupService(config)

        try:
            loop.run_until_complete(service.start(loop))

            # Run the event loop until interrupted
            loop.run_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
        finally:
            loop.run_until_complete(service.stop())
            loop.close()

    except Exception as e:
        logger.exception(f"Failed to run service: {e}")
        sys.exit(1)


def main() -> None:
    """
    Main entry point for the serial pickup service.
    Parses command-line arguments, sets up logging, and starts the service.
    """
    parser = argparse.ArgumentParser(description="Ziggiz Courier Serial Pickup")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides config file)",
    )
    parser.add_argument(
        "--port",
        type=str,
        help="Serial device or pySerial URL to read from (overrides config file)",
    )
    parser.add_argument(
        "--baudrate",
        type=int,
        help="Serial baud rate (overrides config file)",
    )
    parser.add_argument(
        "--delimiter",
        type=str,
        help="Line delimiter, escape sequences such as \\r\\n allowed (overrides config file)",
    )
    parser.add_argument(
        "--max-buffer-size",
        type=int,
        help="Ring buffer capacity in bytes (overrides config file)",
    )
    parser.add_argument(
        "--output-format",
        type=str,
        choices=["text", "hex"],
        help="How received lines are logged (overrides config file)",
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config if args.config else None)

        # Override config with command line arguments if provided
        overrides = {}
        if args.log_level is not None:
            overrides["log_level"] = args.log_level
        if args.port is not None:
            overrides["port"] = args.port
        if args.baudrate is not None:
            overrides["baudrate"] = args.baudrate
        if args.delimiter is not None:
            overrides["delimiter"] = args.delimiter
        if args.max_buffer_size is not None:
            overrides["max_buffer_size"] = args.max_buffer_size
        if args.output_format is not None:
            overrides["output_format"] = args.output_format
        if overrides:
            # Re-validate so overrides get the same checks as the config file
            config = Config(**{**config.model_dump(), **overrides})

        # Setup logging based on configuration
        setup_logging(config=config)
        logger = logging.getLogger("ziggiz_courier_pickup_serial.main")

        # Log configuration source
        if args.config:
            logger.info(f"Loaded configuration from {args.config}")
        else:
            logger.info("Using default or automatically detected configuration")

        # Run the service
        logger.info("Starting Ziggiz Courier Serial Pickup")
        run_service(config)
    except KeyboardInterrupt:
        logger = logging.getLogger("ziggiz_courier_pickup_serial.main")
        logger.info("Service shutdown requested by user")
    except Exception as e:
        # Setup basic logging if we couldn't load the configuration
        if not logging.root.handlers:
            setup_logging("ERROR")
        logger = logging.getLogger("ziggiz_courier_pickup_serial.main")
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
