# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Configuration module for loading and parsing configuration files

# Standard library imports
import logging

from pathlib import Path
from typing import List, Optional, Union

# Third-party imports
import yaml

from pydantic import BaseModel, Field, field_validator

# Local/package imports
from ziggiz_courier_pickup_serial.protocol.framing_common import parse_delimiter


class LoggerConfig(BaseModel):
    """
    Configuration for individual loggers.

    Attributes:
        name (str): Logger name.
        level (str): Logging level (default: "INFO").
        propagate (bool): Whether to propagate logs to parent (default: True).
    """

    name: str
    level: str = "INFO"
    propagate: bool = True


class Config(BaseModel):
    """
    Main configuration class for the Ziggiz Courier Pickup Serial service.

    This class defines all configuration options for the service, including serial
    port settings, line framing, output, telemetry and logging.
    """

    # Serial port configuration
    port: str = "/dev/ttyUSB0"  # Device name or pySerial URL (e.g. "loop://")
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"  # "N", "E", "O", "M" or "S"
    stopbits: float = 1
    owns_port: bool = True  # Close the port when the reader is closed
    poll_interval: float = 0.01  # Seconds between polls of an idle port

    # Framing configuration
    delimiter: str = "\\n"  # Line delimiter, escape sequences allowed
    max_buffer_size: int = 64 * 1024  # Ring buffer capacity in bytes

    # Output configuration
    output_format: str = "text"  # "text" or "hex"
    stats_interval: float = 0.0  # Seconds between statistics log lines, 0 disables

    # Telemetry configuration
    enable_console_spans: bool = False  # Export tracing spans to the console

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    loggers: List[LoggerConfig] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a valid Python logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("parity")
    @classmethod
    def validate_parity(cls, v: str) -> str:
        """Validate that the parity is one of the pySerial parity codes."""
        valid_parities = ["N", "E", "O", "M", "S"]
        v = v.upper()
        if v not in valid_parities:
            raise ValueError(f"Invalid parity: {v}. Must be one of {valid_parities}")
        return v

    @field_validator("bytesize")
    @classmethod
    def validate_bytesize(cls, v: int) -> int:
        """Validate that the byte size is supported by pySerial."""
        valid_sizes = [5, 6, 7, 8]
        if v not in valid_sizes:
            raise ValueError(f"Invalid byte size: {v}. Must be one of {valid_sizes}")
        return v

    @field_validator("stopbits")
    @classmethod
    def validate_stopbits(cls, v: float) -> float:
        """Validate that the number of stop bits is supported by pySerial."""
        valid_stopbits = [1, 1.5, 2]
        if v not in valid_stopbits:
            raise ValueError(
                f"Invalid stop bits: {v}. Must be one of {valid_stopbits}"
            )
        return v

    @field_validator("baudrate", "max_buffer_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate that sizes and rates are positive."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        """Validate that the poll interval is positive."""
        if v <= 0:
            raise ValueError(f"Poll interval must be positive, got {v}")
        return v

    @field_validator("stats_interval")
    @classmethod
    def validate_stats_interval(cls, v: float) -> float:
        """Validate that the statistics interval is not negative."""
        if v < 0:
            raise ValueError(f"Statistics interval cannot be negative, got {v}")
        return v

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        """Validate that the delimiter parses to a non-empty byte sequence."""
        parse_delimiter(v)
        return v

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate that the output format is valid."""
        valid_formats = ["text", "hex"]
        v = v.lower()
        if v not in valid_formats:
            raise ValueError(
                f"Invalid output format: {v}. Must be one of {valid_formats}"
            )
        return v

    @property
    def delimiter_bytes(self) -> bytes:
        """The configured delimiter as bytes."""
        return parse_delimiter(self.delimiter)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, will look for config.yaml
                   in the current directory and default directories.

    Returns:
        A Config object containing the loaded configuration.

    Raises:
        FileNotFoundError: If the configuration file cannot be found.
        yaml.YAMLError: If the configuration file contains invalid YAML.
    """
    # Default search paths
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config.yml",
        Path("/etc/ziggiz-courier-pickup-serial/config.yaml"),
        Path("/etc/ziggiz-courier-pickup-serial/config.yml"),
    ]

    # If config path is provided, try that first
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        # Try default paths
        for path in search_paths:
            if path.exists():
                config_file = path
                break
        else:
            # No config file found, return default configuration
            logging.warning("No configuration file found, using default configuration")
            return Config()

    # Load YAML configuration
    with open(config_file, "r") as f:
        try:
            config_data = yaml.safe_load(f) or {}
            return Config(**config_data)
        except yaml.YAMLError as e:
            logging.error("Error parsing configuration file", extra={"error": e})
            raise
        except Exception as e:
            logging.error("Error loading configuration", extra={"error": e})
            raise


class SafeExtraFormatter(logging.Formatter):
    """
    Custom formatter that substitutes missing extra fields with a blank string.
    """

    def format(self, record: logging.LogRecord) -> str:
        # Add any expected extra fields with blank default if missing
        if not hasattr(record, "port"):
            record.port = ""
        return super().format(record)


def configure_logging(config: "Config") -> None:
    """
    Configure logging based on the provided configuration.

    Args:
        config: The loaded configuration object.
    """
    # Reset logging configuration
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    # Configure root logger
    level = getattr(logging, config.log_level, logging.INFO)
    formatter = SafeExtraFormatter(config.log_format, datefmt=config.log_date_format)

    # Add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logging.root.setLevel(level)
    logging.root.addHandler(console_handler)

    # Configure additional loggers from config
    for logger_config in config.loggers:
        logger = logging.getLogger(logger_config.name)
        logger.setLevel(getattr(logging, logger_config.level, logging.INFO))
        logger.propagate = logger_config.propagate
