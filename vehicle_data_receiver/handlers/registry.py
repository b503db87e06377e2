"""
Handler Registry
Explicit mapping from handler_name to handler implementation
"""

from typing import Dict, Iterable, Iterator, List

import structlog

from vehicle_data_receiver.handlers.base import BaseEventHandler, UnknownHandlerError
from vehicle_data_receiver.models.failed_event import MAX_HANDLER_NAME_LENGTH

logger = structlog.get_logger(__name__)


class HandlerRegistry:
    """Registry of event handlers, built once at startup"""

    def __init__(self, handlers: Iterable[BaseEventHandler] = ()):
        self._handlers: Dict[str, BaseEventHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: BaseEventHandler) -> None:
        """
        Register a handler under its name

        Raises:
            ValueError: If the name is empty, too long to store or already taken
        """
        if not handler.name:
            raise ValueError(f"Handler {handler!r} has no name")
        if len(handler.name) > MAX_HANDLER_NAME_LENGTH:
            raise ValueError(
                f"Handler name must be at most {MAX_HANDLER_NAME_LENGTH} characters"
            )
        if handler.name in self._handlers:
            raise ValueError(f"Handler '{handler.name}' is already registered")

        self._handlers[handler.name] = handler
        logger.debug("Event handler registered", handler_name=handler.name)

    def resolve(self, handler_name: str) -> BaseEventHandler:
        """
        Look up a handler by name

        Raises:
            UnknownHandlerError: If no handler is registered under the name
        """
        try:
            return self._handlers[handler_name]
        except KeyError:
            raise UnknownHandlerError(handler_name) from None

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, handler_name: object) -> bool:
        return handler_name in self._handlers

    def __iter__(self) -> Iterator[BaseEventHandler]:
        return iter(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)
