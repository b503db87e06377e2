"""
Base Event Handler Interface
Abstract base class for named telemetry event handlers
"""

from abc import ABC, abstractmethod

from vehicle_data_receiver.models.telemetry_event import TelemetryEvent


class HandlerError(Exception):
    """Domain-specific failure while processing an event; the event can be retried"""

    def __init__(self, handler_name: str, message: str):
        super().__init__(f"[{handler_name}] {message}")
        self.handler_name = handler_name


class UnknownHandlerError(Exception):
    """No handler is registered under the requested name"""

    def __init__(self, handler_name: str):
        super().__init__(f"No event handler registered as '{handler_name}'")
        self.handler_name = handler_name


class BaseEventHandler(ABC):
    """
    A named unit of logic that processes one kind of telemetry event

    Handlers are looked up by name when a dead-lettered event is retried, so
    the name must stay stable across deployments.
    """

    name: str = ""

    @abstractmethod
    async def process(self, event: TelemetryEvent) -> None:
        """
        Process a telemetry event

        Args:
            event: Event to process

        Raises:
            HandlerError: If processing fails and should be retried later
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
