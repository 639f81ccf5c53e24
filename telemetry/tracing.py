"""
OpenTelemetry tracing setup.

init_tracer() installs a global TracerProvider that batches spans to an
OTLP/gRPC collector (OTEL_ENDPOINT) and returns a shutdown function for
the lifespan to call on exit. With OTEL_ENABLED=false nothing is
installed and the returned function does nothing.

HTTP spans come from FastAPIInstrumentor, applied in api/main.py.
"""

import logging
from typing import Callable

from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from config.settings import Settings

logger = logging.getLogger(__name__)

ShutdownFunc = Callable[[], None]


def _noop_shutdown() -> None:
    return None


def build_resource(cfg: Settings) -> Resource:
    return Resource.create({
        "service.name": cfg.SERVICE_NAME,
        "service.namespace": cfg.SERVICE_NAMESPACE,
        "service.version": cfg.SERVICE_VERSION,
        "deployment.environment": cfg.ENVIRONMENT,
    })


def build_tracer_provider(cfg: Settings) -> TracerProvider:
    """Provider exporting every span to the configured collector."""
    exporter = OTLPSpanExporter(endpoint=cfg.OTEL_ENDPOINT, insecure=True)
    provider = TracerProvider(resource=build_resource(cfg), sampler=ALWAYS_ON)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(cfg: Settings) -> ShutdownFunc:
    """
    Install the global tracer provider and W3C propagators.

    A collector that cannot be set up does not stop the service: the error
    is logged and the service runs untraced.
    """
    if not cfg.OTEL_ENABLED:
        logger.info("OpenTelemetry tracing disabled")
        return _noop_shutdown

    try:
        provider = build_tracer_provider(cfg)
    except Exception as e:
        logger.error(f"Failed to initialize OpenTelemetry tracing: {e}")
        return _noop_shutdown

    trace.set_tracer_provider(provider)
    set_global_textmap(
        CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])
    )
    logger.info(f"OpenTelemetry tracing initialized (endpoint={cfg.OTEL_ENDPOINT})")

    def shutdown() -> None:
        try:
            provider.shutdown()
        except Exception as e:
            logger.error(f"Failed to shutdown OpenTelemetry tracer: {e}")

    return shutdown
