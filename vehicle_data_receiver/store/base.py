"""
Base Failed Event Store Interface
Abstract base class for durable dead-letter stores
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import structlog

from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason

logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Persistence layer is unreachable or rejected the operation"""

    pass


class NotFoundError(Exception):
    """The failed event does not exist (e.g. removed by a concurrent retry)"""

    def __init__(self, failed_event_id: int):
        super().__init__(f"Failed event {failed_event_id} not found")
        self.failed_event_id = failed_event_id


class BaseFailedEventStore(ABC):
    """
    Abstract base class for failed event stores

    All stores must implement:
    - record(): Durably insert a failed event
    - list_pending(): Ordered scan of events awaiting retry
    - mark_retried(): Record another failed attempt
    - remove(): Delete an event after successful reprocessing (idempotent)
    - quarantine() / release(): Exclude an event from or return it to retry

    Every operation reads or writes persistent storage directly; stores do
    not cache records between calls.
    """

    def __init__(self) -> None:
        self.is_connected = False

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the backing database

        Raises:
            StorageError: If connection fails
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the backing database"""
        pass

    @abstractmethod
    async def record(
        self,
        event_data: str,
        handler_name: str,
        imei: str,
        timestamp: int,
        attempted_at: int,
    ) -> int:
        """
        Insert a new failed event

        Args:
            event_data: Serialized event (codec envelope)
            handler_name: Handler that failed and must reprocess the event
            imei: Device IMEI
            timestamp: Origin time of the event (epoch seconds)
            attempted_at: Time of the failed attempt (epoch seconds)

        Returns:
            Identifier assigned to the new record

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def list_pending(
        self,
        limit: Optional[int] = None,
        before: Optional[int] = None,
        *,
        after: Optional[Tuple[int, int]] = None,
        imei: Optional[str] = None,
    ) -> List[FailedEvent]:
        """
        List failed events awaiting retry, oldest timestamp first

        Args:
            limit: Maximum number of records to return, or None for all pending
            before: Only return events with timestamp strictly below this value
            after: Keyset cursor (timestamp, id); only return events ordered after it
            imei: Only return events for this device

        Returns:
            Records ordered by ascending (timestamp, id)

        Raises:
            StorageError: If the query fails
        """
        pass

    @abstractmethod
    async def get(self, failed_event_id: int) -> Optional[FailedEvent]:
        """Fetch a single record, pending or quarantined"""
        pass

    @abstractmethod
    async def mark_retried(self, failed_event_id: int, attempted_at: int) -> None:
        """
        Record another failed attempt for an event

        Sets attempted_at and increments attempt_count.

        Raises:
            NotFoundError: If the record no longer exists
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def remove(self, failed_event_id: int) -> None:
        """
        Delete a record after successful reprocessing

        Removing an absent record is not an error.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def quarantine(
        self,
        failed_event_id: int,
        reason: QuarantineReason,
        quarantined_at: int,
    ) -> None:
        """
        Exclude a record from automatic retry, leaving attempted_at untouched

        Raises:
            NotFoundError: If the record no longer exists
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def release(self, failed_event_id: int) -> None:
        """
        Return a quarantined record to the pending set

        Raises:
            NotFoundError: If the record no longer exists
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def list_quarantined(self, limit: int) -> List[FailedEvent]:
        """List quarantined records, oldest timestamp first"""
        pass

    @abstractmethod
    async def count_pending(self) -> int:
        pass

    @abstractmethod
    async def count_quarantined(self) -> int:
        pass

    @abstractmethod
    async def next_failed_imei(self) -> Optional[str]:
        """IMEI of the most recently attempted pending record, if any"""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backing database is healthy and reachable

        Returns:
            True if healthy, False otherwise
        """
        pass

    async def ensure_connected(self) -> None:
        """
        Ensure store is connected, reconnect if needed

        Raises:
            StorageError: If connection cannot be established
        """
        if not self.is_connected:
            logger.info("Connecting to failed event store", store=type(self).__name__)
            await self.connect()

    async def __aenter__(self):
        """Async context manager entry"""
        await self.ensure_connected()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.disconnect()
