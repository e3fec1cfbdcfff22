"""
User Service — Tracing Handle
===============================

What:  Owns the OpenTelemetry TracerProvider and everything hung off it:
       the OTLP exporter, the named tracer used for per-operation spans,
       and the FastAPI / SQLAlchemy instrumentations.
How:   `Telemetry.from_settings()` builds the production pipeline
       (OTLP/HTTP exporter → BatchSpanProcessor → TracerProvider) and makes
       it the global provider. Tests construct `Telemetry(provider)` with
       their own SDK provider instead.

Span layout for one request:

    GET /users                (server span, FastAPI instrumentation)
    └── Fetch Users           (UserService)
        └── SELECT example    (SQLAlchemy instrumentation)
"""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from user_service.exceptions import StartupError

logger = logging.getLogger(__name__)


class Telemetry:
    """
    Tracer handle passed explicitly to the app factory and the service layer.

    Attributes:
        service_name:    Value of the `service.name` resource attribute
        tracer_provider: SDK provider that owns span processors and exporters
        tracer:          Named tracer for application spans
    """

    def __init__(self, tracer_provider: TracerProvider, service_name: str = "example-service"):
        self.service_name = service_name
        self.tracer_provider = tracer_provider
        self.tracer = tracer_provider.get_tracer(service_name)
        self._sqlalchemy = SQLAlchemyInstrumentor()

    @classmethod
    def from_settings(cls, settings) -> "Telemetry":
        """
        Build the exporting pipeline and register it globally.

        Raises:
            StartupError: the exporter could not be created. The caller
            lets this propagate so the process does not start untraced.
        """
        endpoint = settings.otel_exporter_endpoint
        if not settings.otel_exporter_insecure and not endpoint.startswith("https://"):
            raise StartupError(
                message=f"Secure trace export requested but endpoint is not https: {endpoint}",
                context={"endpoint": endpoint},
            )

        try:
            exporter = OTLPSpanExporter(endpoint=endpoint)
        except Exception as e:
            logger.error("Failed to create OTLP span exporter for %s: %s", endpoint, e)
            raise StartupError(
                message="Failed to initialize trace exporter",
                context={"endpoint": endpoint, "original_error": type(e).__name__},
            ) from e

        resource = Resource.create({SERVICE_NAME: settings.otel_service_name})
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        logger.info(
            "Tracing enabled: service=%s exporter=%s",
            settings.otel_service_name,
            endpoint,
        )
        return cls(provider, service_name=settings.otel_service_name)

    def instrument_app(self, app) -> None:
        """Emit a server span for every request handled by `app`."""
        FastAPIInstrumentor.instrument_app(app, tracer_provider=self.tracer_provider)

    def instrument_engine(self, engine) -> bool:
        """
        Emit a child span for every statement executed on `engine`.

        Accepts an AsyncEngine; events are attached to its sync engine.

        Returns:
            True when SQL spans are enabled. The instrumentor declines
            unsupported SQLAlchemy versions with only a log line of its own,
            so that case is reported here at ERROR.
        """
        sync_engine = getattr(engine, "sync_engine", engine)
        if self._sqlalchemy.is_instrumented_by_opentelemetry:
            # The instrumentor is process-wide; release the previous engine first
            self._sqlalchemy.uninstrument()
        self._sqlalchemy.instrument(
            engine=sync_engine,
            tracer_provider=self.tracer_provider,
        )

        if not self._sqlalchemy.is_instrumented_by_opentelemetry:
            logger.error(
                "SQLAlchemy instrumentation was not applied; SQL statements will not "
                "be traced. Check that the installed sqlalchemy version is supported "
                "by opentelemetry-instrumentation-sqlalchemy."
            )
            return False
        return True

    def shutdown(self) -> None:
        """Flush pending spans and stop the exporter. Errors are logged only."""
        if self._sqlalchemy.is_instrumented_by_opentelemetry:
            self._sqlalchemy.uninstrument()
        try:
            self.tracer_provider.shutdown()
        except Exception as e:
            logger.error("Error shutting down tracer provider: %s", e)
