# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tests for the main module

# Standard library imports
import logging
import sys

from unittest.mock import MagicMock

# Third-party imports
import pytest

# Local/package imports
from ziggiz_courier_pickup_serial.config import Config
from ziggiz_courier_pickup_serial.main import main, run_service, setup_logging


@pytest.fixture
def patched_main(mocker):
    """Patch configuration loading and the service runner used by main()."""
    mocks = MagicMock()
    mocks.load_config = mocker.patch(
        "ziggiz_courier_pickup_serial.main.load_config", return_value=Config()
    )
    mocks.setup_logging = mocker.patch(
        "ziggiz_courier_pickup_serial.main.setup_logging"
    )
    mocks.run_service = mocker.patch("ziggiz_courier_pickup_serial.main.run_service")
    return mocks


class TestMainModule:
    """Tests for the main entry point module."""

    @pytest.mark.unit
    def test_setup_logging(self, caplog):
        """Test that logging is set up correctly."""
        # Test with DEBUG level
        setup_logging("DEBUG")
        root_logger = logging.getLogger()

        # Check that the root logger level is set correctly
        assert root_logger.level == logging.DEBUG

        # Check that we have at least one handler
        assert len(root_logger.handlers) >= 1

        # Check that opentelemetry logger is set to WARNING
        otel_logger = logging.getLogger("opentelemetry")
        assert otel_logger.level == logging.WARNING

        # Test with INFO level (reset handlers first)
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        setup_logging("INFO")
        assert root_logger.level == logging.INFO

    @pytest.mark.unit
    def test_setup_logging_with_config(self, mocker):
        """Test that a configuration object is passed on to configure_logging."""
        mock_configure = mocker.patch(
            "ziggiz_courier_pickup_serial.main.configure_logging"
        )
        config = Config(log_level="WARNING")

        setup_logging(config=config)

        mock_configure.assert_called_once_with(config)

    @pytest.mark.unit
    def test_run_service_normal(self, mocker, caplog):
        """Test the run_service function with normal execution."""
        # Capture logs
        caplog.set_level(logging.INFO)

        mock_telemetry = mocker.patch(
            "ziggiz_courier_pickup_serial.main.configure_telemetry"
        )

        # Mock SerialPickupService class
        mock_service = mocker.MagicMock()
        mock_service_class = mocker.patch(
            "ziggiz_courier_pickup_serial.service.SerialPickupService",
            return_value=mock_service,
        )

        # Mock the event loop
        mock_loop = MagicMock()
        mocker.patch("asyncio.new_event_loop", return_value=mock_loop)
        mocker.patch("asyncio.set_event_loop")

        # Mock KeyboardInterrupt when run_forever is called
        mock_loop.run_forever.side_effect = KeyboardInterrupt()

        config = Config(port="loop://", enable_console_spans=True)
        run_service(config)

        assert "Received keyboard interrupt" in caplog.text
        mock_telemetry.assert_called_once_with(console_export=True)
        mock_service_class.assert_called_once_with(config)
        mock_service.start.assert_called_once_with(mock_loop)
        mock_service.stop.assert_called_once_with()
        mock_loop.close.assert_called_once()

    @pytest.mark.unit
    def test_run_service_exception(self, mocker, caplog):
        """Test handling of exceptions in run_service."""
        caplog.set_level(logging.ERROR)
        mocker.patch(
            "ziggiz_courier_pickup_serial.main.configure_telemetry",
            side_effect=Exception("Test error"),
        )

        # Mock sys.exit to avoid test termination
        mock_exit = mocker.patch("sys.exit")

        # Run the function and expect it to handle the exception
        run_service()

        # Check that sys.exit was called with code 1
        assert "Failed to run service: Test error" in caplog.text
        mock_exit.assert_called_once_with(1)

    @pytest.mark.unit
    def test_main_function(self, mocker, patched_main):
        """Test the main function without command-line overrides."""
        mocker.patch.object(sys, "argv", ["ziggiz-courier-pickup-serial"])

        main()

        patched_main.load_config.assert_called_once_with(None)
        config = patched_main.run_service.call_args[0][0]
        assert config == Config()
        patched_main.setup_logging.assert_called_once_with(config=config)

    @pytest.mark.unit
    def test_main_config_path(self, mocker, patched_main):
        """Test that --config is passed to load_config."""
        mocker.patch.object(
            sys, "argv", ["ziggiz-courier-pickup-serial", "--config", "serial.yaml"]
        )

        main()

        patched_main.load_config.assert_called_once_with("serial.yaml")

    @pytest.mark.unit
    def test_main_overrides(self, mocker, patched_main):
        """Test that command-line arguments override the configuration."""
        mocker.patch.object(
            sys,
            "argv",
            [
                "ziggiz-courier-pickup-serial",
                "--log-level",
                "DEBUG",
                "--port",
                "loop://",
                "--baudrate",
                "115200",
                "--delimiter",
                "\\r\\n",
                "--max-buffer-size",
                "128",
                "--output-format",
                "hex",
            ],
        )

        main()

        config = patched_main.run_service.call_args[0][0]
        assert config.log_level == "DEBUG"
        assert config.port == "loop://"
        assert config.baudrate == 115200
        assert config.delimiter_bytes == b"\r\n"
        assert config.max_buffer_size == 128
        assert config.output_format == "hex"

    @pytest.mark.unit
    def test_main_invalid_override(self, mocker, patched_main, caplog):
        """Test that invalid overrides are validated like the configuration file."""
        caplog.set_level(logging.ERROR)
        mocker.patch.object(
            sys, "argv", ["ziggiz-courier-pickup-serial", "--max-buffer-size", "0"]
        )
        mock_exit = mocker.patch("sys.exit")

        main()

        patched_main.run_service.assert_not_called()
        assert "Unexpected error" in caplog.text
        mock_exit.assert_called_once_with(1)

    @pytest.mark.unit
    def test_main_keyboard_interrupt(self, mocker, patched_main, caplog):
        """Test handling of KeyboardInterrupt in main."""
        caplog.set_level(logging.INFO)
        mocker.patch.object(sys, "argv", ["ziggiz-courier-pickup-serial"])
        patched_main.run_service.side_effect = KeyboardInterrupt

        main()

        assert "Service shutdown requested by user" in caplog.text

    @pytest.mark.unit
    def test_main_unexpected_exception(self, mocker, patched_main, caplog):
        """Test handling of unexpected exceptions in main."""
        caplog.set_level(logging.ERROR)
        mocker.patch.object(sys, "argv", ["ziggiz-courier-pickup-serial"])
        patched_main.run_service.side_effect = RuntimeError("Unexpected error")

        # Mock sys.exit to avoid test termination
        mock_exit = mocker.patch("sys.exit")

        main()

        assert "Unexpected error" in caplog.text
        mock_exit.assert_called_once_with(1)

    @pytest.mark.unit
    def test_argument_parsing_rejects_unknown_format(self, mocker, patched_main):
        """Test that argparse rejects an unsupported output format."""
        mocker.patch.object(
            sys, "argv", ["ziggiz-courier-pickup-serial", "--output-format", "json"]
        )

        with pytest.raises(SystemExit):
            main()

        patched_main.run_service.assert_not_called()
