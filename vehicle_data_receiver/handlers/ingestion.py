"""
Dead-Letter Ingestion
Runs live events through their handler and captures failures in the failed event store
"""

import asyncio
from typing import Callable, Optional

import structlog

from vehicle_data_receiver.codec import encode
from vehicle_data_receiver.handlers.base import HandlerError, UnknownHandlerError
from vehicle_data_receiver.handlers.registry import HandlerRegistry
from vehicle_data_receiver.models.failed_event import epoch_seconds
from vehicle_data_receiver.models.telemetry_event import TelemetryEvent
from vehicle_data_receiver.observability.metrics import increment_dead_lettered
from vehicle_data_receiver.store.base import BaseFailedEventStore

logger = structlog.get_logger(__name__)


class DeadLetterIngestion:
    """
    Live ingestion path with dead-letter capture

    Safe to call from many concurrent workers; the only shared state is the
    store.
    """

    def __init__(
        self,
        store: BaseFailedEventStore,
        registry: HandlerRegistry,
        handler_timeout_seconds: float = 10.0,
        clock: Callable[[], int] = epoch_seconds,
    ):
        """
        Initialize ingestion

        Args:
            store: Store receiving failed events
            registry: Registered event handlers
            handler_timeout_seconds: Maximum time a handler may take per event
            clock: Source of the current epoch seconds
        """
        self.store = store
        self.registry = registry
        self.handler_timeout_seconds = handler_timeout_seconds
        self.clock = clock

    async def handle(self, handler_name: str, event: TelemetryEvent) -> Optional[int]:
        """
        Process an event with the named handler, dead-lettering it on failure

        Args:
            handler_name: Handler to run
            event: Live event

        Returns:
            None if the handler succeeded, otherwise the failed event ID

        Raises:
            StorageError: If the failure could not be recorded
        """
        try:
            handler = self.registry.resolve(handler_name)
            await asyncio.wait_for(handler.process(event), timeout=self.handler_timeout_seconds)
            return None

        except UnknownHandlerError as e:
            # Keep the event; it is retried once the handler is deployed
            error = str(e)
        except HandlerError as e:
            error = str(e)
        except asyncio.TimeoutError:
            error = f"Handler timed out after {self.handler_timeout_seconds}s"
        except Exception as e:
            logger.exception(
                "Event handler raised unexpectedly",
                handler_name=handler_name,
                event_key=event.event_key,
            )
            error = f"{type(e).__name__}: {e}"

        logger.error(
            "Failed to handle event, persisting so it can be retried later",
            handler_name=handler_name,
            imei=event.imei,
            event_key=event.event_key,
            error=error,
        )
        return await self.dead_letter(handler_name, event)

    async def dead_letter(self, handler_name: str, event: TelemetryEvent) -> int:
        """
        Record an event the caller failed to process

        Args:
            handler_name: Handler that must reprocess the event
            event: Event to record

        Returns:
            Failed event ID

        Raises:
            StorageError: If the store rejects the write
        """
        failed_event_id = await self.store.record(
            event_data=encode(event),
            handler_name=handler_name,
            imei=event.imei,
            timestamp=event.timestamp,
            attempted_at=self.clock(),
        )
        increment_dead_lettered(handler_name)

        logger.info(
            "Event dead-lettered",
            failed_event_id=failed_event_id,
            handler_name=handler_name,
            imei=event.imei,
        )
        return failed_event_id
