# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# OpenTelemetry setup for Ziggiz Courier Pickup Serial
#
# This module configures OpenTelemetry tracing for the serial pickup service.
# Until configure_telemetry() is called the API hands out no-op tracers, so the
# line reader can be used as a library without exporting anything.

# Standard library imports
from typing import Optional

# Third-party imports
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

SERVICE_NAME = "ziggiz-courier-pickup-serial"

_tracer_provider: Optional[TracerProvider] = None


def configure_telemetry(console_export: bool = False) -> TracerProvider:
    """
    Install the global tracer provider for the service.

    Args:
        console_export: Export spans to the console (development/demo use)

    Returns:
        The installed tracer provider
    """
    global _tracer_provider
    if _tracer_provider is not None:
        return _tracer_provider

    resource = Resource.create({"service.name": SERVICE_NAME})
    _tracer_provider = TracerProvider(resource=resource)

    # For demo/dev: export to console. Replace with OTLPSpanExporter for production.
    if console_export:
        span_processor = BatchSpanProcessor(ConsoleSpanExporter())
        _tracer_provider.add_span_processor(span_processor)

    trace.set_tracer_provider(_tracer_provider)
    return _tracer_provider


def get_tracer() -> Tracer:
    return trace.get_tracer(SERVICE_NAME)
