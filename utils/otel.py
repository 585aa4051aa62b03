"""OpenTelemetry instrumentation for the changelog generator.

Tracing is opt-in for a command-line tool: spans are only recorded when
``CHANGELOG_OTEL_ENABLED`` is set, and are exported to stderr.

Configuration:
    Environment variables:
    - CHANGELOG_OTEL_ENABLED: Enable tracing (default: false)
    - OTEL_SERVICE_NAME: Service name (default: changelog)

Usage:
    from utils.otel import create_span, init_tracing, trace_operation

    init_tracing()

    @trace_operation("changelog.generate")
    def generate():
        ...

    with create_span("changelog.render", attributes={"sections": 2}):
        ...
"""

import functools
import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger("changelog.otel")

F = TypeVar("F", bound=Callable[..., Any])

# Global tracer instance
_tracer: Optional[Any] = None
_initialized: bool = False
_provider: Optional[TracerProvider] = None

OTEL_ENABLED = os.getenv("CHANGELOG_OTEL_ENABLED", "false").lower() in ("true", "1", "yes")
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "changelog")


class NoOpSpan:
    """Span stand-in used while tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, status: Any) -> None:
        pass

    def record_exception(self, exception: Exception) -> None:
        pass

    def add_event(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
        pass

    def __enter__(self) -> "NoOpSpan":
        return self

    def __exit__(self, *args: Any) -> None:
        pass


class NoOpTracer:
    """Tracer stand-in used while tracing is disabled."""

    def start_as_current_span(self, name: str, **kwargs: Any) -> NoOpSpan:
        return NoOpSpan()


def init_tracing(
    service_name: Optional[str] = None,
    enabled: Optional[bool] = None,
) -> bool:
    """Initialize OpenTelemetry tracing.

    Args:
        service_name: Override OTEL_SERVICE_NAME
        enabled: Override CHANGELOG_OTEL_ENABLED

    Returns:
        True if spans will be recorded, False otherwise
    """
    global _tracer, _initialized, _provider

    if _initialized:
        return not isinstance(_tracer, NoOpTracer)

    use_tracing = OTEL_ENABLED if enabled is None else enabled
    if not use_tracing:
        logger.debug("OpenTelemetry tracing disabled")
        _tracer = NoOpTracer()
        _initialized = True
        return False

    svc_name = service_name or OTEL_SERVICE_NAME

    resource = Resource.create({"service.name": svc_name})
    # A private provider, so repeated init/shutdown cycles do not fight
    # over the process-wide global provider.
    _provider = TracerProvider(resource=resource)
    _provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))
    _tracer = _provider.get_tracer(svc_name)
    _initialized = True

    logger.debug(f"OpenTelemetry tracing initialized for service: {svc_name}")
    return True


def get_tracer() -> Union[Any, NoOpTracer]:
    """Get the global tracer instance, initializing it on first use."""
    if _tracer is None:
        init_tracing()
    return _tracer


def shutdown_tracing() -> None:
    """Flush pending spans and reset tracing state."""
    global _tracer, _initialized, _provider

    if _provider is not None:
        _provider.shutdown()
        logger.debug("OpenTelemetry tracing shutdown complete")

    _tracer = None
    _initialized = False
    _provider = None


def _is_recording(span: Any) -> bool:
    return not isinstance(span, NoOpSpan)


def trace_operation(operation_name: str, *, record_args: bool = False) -> Callable[[F], F]:
    """Decorator to trace a function call as a span.

    The span records success or failure, any exception raised, and counts
    from the returned result where it has them.

    Args:
        operation_name: Name of the operation (used as span name)
        record_args: Record simple arguments as attributes (default: False)
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer()

            with tracer.start_as_current_span(operation_name) as span:
                span.set_attribute("operation.name", operation_name)

                if record_args:
                    _record_arguments(span, args, kwargs)

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    if _is_recording(span):
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                        span.record_exception(e)
                    raise

                if _is_recording(span):
                    span.set_status(Status(StatusCode.OK))
                _record_result(span, result)
                return result

        return wrapper  # type: ignore

    return decorator


def _record_arguments(span: Any, args: tuple, kwargs: dict) -> None:
    """Record simple function arguments as span attributes."""
    for i, arg in enumerate(args):
        if isinstance(arg, (str, int, float, bool)):
            span.set_attribute(f"arg.{i}", str(arg))
        else:
            span.set_attribute(f"arg.{i}.type", type(arg).__name__)

    for key, value in kwargs.items():
        if isinstance(value, (str, int, float, bool)):
            span.set_attribute(f"kwarg.{key}", str(value))
        else:
            span.set_attribute(f"kwarg.{key}.type", type(value).__name__)


def _record_result(span: Any, result: Any) -> None:
    """Record result information as span attributes."""
    if result is None:
        return

    span.set_attribute("result.type", type(result).__name__)
    if hasattr(result, "new_entry_count"):
        span.set_attribute("result.new_entry_count", result.new_entry_count)
    if hasattr(result, "new_sections"):
        span.set_attribute("result.new_section_count", len(result.new_sections))
    if hasattr(result, "backfilled"):
        span.set_attribute("result.backfilled", result.backfilled)


def add_span_attributes(**attributes: Any) -> None:
    """Add attributes to the current span.

    Example:
        add_span_attributes(section="All Changes", entry_count=5)
    """
    span = trace.get_current_span()
    for key, value in attributes.items():
        if isinstance(value, (str, int, float, bool)):
            span.set_attribute(key, value)
        else:
            span.set_attribute(key, str(value))


@contextmanager
def create_span(
    name: str,
    *,
    attributes: Optional[Dict[str, Any]] = None,
):
    """Context manager to create a child span.

    Example:
        with create_span("changelog.load", attributes={"path": "CHANGELOG.md"}):
            content = read_changelog(path)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            if _is_recording(span):
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
            raise
        else:
            if _is_recording(span):
                span.set_status(Status(StatusCode.OK))
