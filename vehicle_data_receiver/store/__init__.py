"""
Durable stores for dead-lettered failed events
"""

from vehicle_data_receiver.store.base import BaseFailedEventStore, NotFoundError, StorageError
from vehicle_data_receiver.store.postgres import PostgresFailedEventStore

__all__ = [
    "BaseFailedEventStore",
    "NotFoundError",
    "PostgresFailedEventStore",
    "StorageError",
]
