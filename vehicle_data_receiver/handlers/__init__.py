"""
Telemetry event handlers, their registry and the dead-letter ingestion path
"""

from vehicle_data_receiver.handlers.base import BaseEventHandler, HandlerError, UnknownHandlerError
from vehicle_data_receiver.handlers.forwarding import HttpForwardingHandler, build_forwarding_handlers
from vehicle_data_receiver.handlers.ingestion import DeadLetterIngestion
from vehicle_data_receiver.handlers.registry import HandlerRegistry

__all__ = [
    "BaseEventHandler",
    "DeadLetterIngestion",
    "HandlerError",
    "HandlerRegistry",
    "HttpForwardingHandler",
    "UnknownHandlerError",
    "build_forwarding_handlers",
]
