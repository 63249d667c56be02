"""OpenTelemetry tracing configuration for paygate.

Library code only creates spans. Installing a provider and exporters is left
to the application; the command line calls ``init_tracing`` itself.

This module sets up distributed tracing with support for:
- OTLP export to a collector
- Automatic httpx instrumentation for outbound HTTP calls
- Custom spans for credential and signing operations
"""

import os
from functools import wraps
from typing import Any, Callable, TypeVar, ParamSpec

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

from . import __version__

# Type variables for decorator
P = ParamSpec("P")
T = TypeVar("T")

# Global tracer instance
_tracer: trace.Tracer | None = None
_initialized = False


def init_tracing(
    service_name: str = "paygate",
    otlp_endpoint: str | None = None,
    enable_console_export: bool = False,
) -> trace.Tracer:
    """Initialize OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
                      If None, uses OTEL_EXPORTER_OTLP_ENDPOINT env var
        enable_console_export: If True, also export spans to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer, _initialized

    if _initialized and _tracer is not None:
        return _tracer

    resource = Resource.create({
        SERVICE_NAME: service_name,
        "service.version": __version__,
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    })
    provider = TracerProvider(resource=resource)

    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if enable_console_export or os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)
    _initialized = True

    HTTPXClientInstrumentor().instrument()

    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the tracer for paygate spans.

    Never installs a provider. Before ``init_tracing`` runs, spans go to
    whatever provider the host application has set, or nowhere.

    Returns:
        The configured tracer, or the API tracer bound to the global provider
    """
    if _tracer is None:
        return trace.get_tracer("paygate", __version__)
    return _tracer


def traced(
    name: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to add tracing to a function.

    Args:
        name: Span name (defaults to function name)
        attributes: Additional span attributes

    Returns:
        Decorated function with tracing
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_name = name or func.__name__

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            tracer = get_tracer()
            with tracer.start_as_current_span(span_name) as span:
                if attributes:
                    for key, value in attributes.items():
                        span.set_attribute(key, value)
                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return wrapper

    return decorator


def add_signing_span_attributes(
    span: trace.Span,
    mch_id: str | None = None,
    sign_type: str | None = None,
    environment: str | None = None,
    param_count: int | None = None,
    cert_fingerprint: str | None = None,
) -> None:
    """Add signing-specific attributes to a span.

    Secrets (API keys, derived keys, private keys) are never recorded.

    Args:
        span: The span to add attributes to
        mch_id: Merchant ID
        sign_type: Signature algorithm
        environment: "production" or "sandbox"
        param_count: Number of signed parameters
        cert_fingerprint: SHA-256 fingerprint of the client certificate
    """
    if mch_id:
        span.set_attribute("paygate.mch_id", mch_id)
    if sign_type:
        span.set_attribute("paygate.sign_type", sign_type)
    if environment:
        span.set_attribute("paygate.environment", environment)
    if param_count is not None:
        span.set_attribute("paygate.param_count", param_count)
    if cert_fingerprint:
        span.set_attribute("paygate.cert.fingerprint", cert_fingerprint)
