"""OpenTelemetry tracing configuration for Object Copy.

A copy produces one ``copy_object`` span with a ``transfer_chunk`` child per
dispatched chunk. Worker threads inherit the copy span through the context
captured at dispatch time.
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from object_copy import __version__
from object_copy.infrastructure.config import ObservabilityConfig, get_config

TRACER_NAME = "object_copy"


def build_tracer_provider(
    config: ObservabilityConfig,
    exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """Build a tracer provider for the configured exporter.

    An explicit ``exporter`` is attached with a synchronous processor, which
    is what tests want. Otherwise spans go to the OTLP endpoint when one is
    configured, or to the console when ``trace_exporter`` asks for it.
    """
    resource = Resource.create(
        {
            "service.name": TRACER_NAME,
            "service.version": __version__,
            "deployment.environment": config.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    elif config.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    elif config.trace_exporter == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    return provider


def setup_tracing() -> trace.Tracer:
    """Install the global tracer provider and return the copy tracer."""
    config = get_config()
    trace.set_tracer_provider(build_tracer_provider(config.observability))
    return trace.get_tracer(TRACER_NAME)


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name)
