"""OpenTelemetry tracing configuration.

Instruments incoming FastAPI requests, SQLAlchemy queries and the Redis
calls made by the rate limiter. Spans go to an OTLP backend when
OTLP_ENDPOINT is set, to the console in debug mode, and nowhere
otherwise.
"""

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from flowgrid_auth.config import settings
from flowgrid_auth.core.database import async_engine


log = structlog.get_logger()


def setup_tracing(app: FastAPI) -> None:
    """Configure tracing and instrument the application.

    Args:
        app: The FastAPI application instance to instrument
    """
    resource = Resource.create(
        {
            "service.name": settings.app_name.lower().replace(" ", "-"),
            "service.version": "0.1.0",
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=settings.otlp_endpoint,
            insecure=not settings.otlp_endpoint.startswith("https"),
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        log.info("tracing_configured", exporter="otlp", endpoint=settings.otlp_endpoint)
    elif settings.debug:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("tracing_configured", exporter="console")
    else:
        log.info("tracing_disabled", reason="no OTLP_ENDPOINT configured")
        return

    trace.set_tracer_provider(provider)

    # Health probes are polled constantly and would drown real traffic
    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls="health/.*,docs,redoc,openapi.json",
    )
    RedisInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument(engine=async_engine.sync_engine)
    log.info("tracing_setup_complete")


def shutdown_tracing() -> None:
    """Flush pending spans. Call during application shutdown."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()
        log.info("tracing_shutdown_complete")
