"""
OpenTelemetry Tracing Setup for the retry coordinator
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

# Global tracer instance
tracer: Optional[trace.Tracer] = None


def init_tracing(
    service_name: str = "vehicle-data-receiver",
    enable_console_export: bool = False,
) -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing

    Args:
        service_name: Name of the service for trace identification
        enable_console_export: Whether to export traces to console (dev mode)

    Returns:
        Configured Tracer instance
    """
    global tracer

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    tracer = trace.get_tracer(__name__)

    return tracer


def trace_retry_pass(batch_size: int) -> trace.Span:
    """
    Create a span for one retry coordinator pass

    Args:
        batch_size: Maximum number of records the pass may attempt

    Returns:
        Span for the pass (non-recording if tracing is not initialized)
    """
    if tracer is None:
        return trace.INVALID_SPAN

    return tracer.start_span("retry_pass", attributes={"batch.size": batch_size})


def trace_failed_event_retry(
    failed_event_id: int,
    handler_name: str,
    imei: str,
) -> trace.Span:
    """
    Create a span for reprocessing a single failed event

    Args:
        failed_event_id: Failed event ID
        handler_name: Handler the event is dispatched to
        imei: Device IMEI

    Returns:
        Span for the retry (non-recording if tracing is not initialized)
    """
    if tracer is None:
        return trace.INVALID_SPAN

    return tracer.start_span(
        "retry_failed_event",
        attributes={
            "failed_event.id": failed_event_id,
            "handler.name": handler_name,
            "device.imei": imei,
        },
    )
