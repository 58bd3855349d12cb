# src/orgauthz/tracing.py

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    SimpleSpanProcessor,
    ConsoleSpanExporter,
)

from orgauthz import config


def configure_tracing(service_name: str = config.SERVICE_NAME) -> None:
    """
    Configure OpenTelemetry tracing with a console exporter.

    Spans are printed to stdout. Swapping ConsoleSpanExporter for an OTLP
    exporter does not affect callers, which only use trace.get_tracer().
    """
    # If there's already a provider, don't reconfigure
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    # SimpleSpanProcessor exports synchronously. BatchSpanProcessor's worker
    # thread can write to stdout after pytest has closed its capture file.
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
