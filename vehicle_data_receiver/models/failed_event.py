"""
Failed Event Model
Represents a telemetry event that could not be processed and awaits retry
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

MAX_HANDLER_NAME_LENGTH = 191


class QuarantineReason(str, Enum):
    """Why a failed event was set aside from automatic retry"""

    DECODE_ERROR = "decode_error"
    MAX_ATTEMPTS_EXCEEDED = "max_attempts_exceeded"


def epoch_seconds() -> int:
    """Current time as integer epoch seconds"""
    return int(time.time())


@dataclass(frozen=True)
class FailedEvent:
    """
    A dead-lettered event as persisted in the failed_event table

    Attributes:
        id: Store-assigned identifier, never reused
        timestamp: Origin time of the event (epoch seconds)
        attempted_at: Time of the most recent failed attempt (epoch seconds)
        event_data: Serialized event payload (codec envelope)
        handler_name: Name of the handler that must reprocess the event
        imei: IMEI of the device the event belongs to
        attempt_count: Number of failed processing attempts so far
        quarantined_at: When the event was excluded from retry, None while pending
        quarantine_reason: Why the event was quarantined
    """

    id: int
    timestamp: int
    attempted_at: int
    event_data: str
    handler_name: str
    imei: str
    attempt_count: int = 1
    quarantined_at: Optional[int] = None
    quarantine_reason: Optional[QuarantineReason] = None

    @property
    def is_quarantined(self) -> bool:
        return self.quarantined_at is not None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FailedEvent":
        """
        Build a FailedEvent from a database row

        Args:
            row: Mapping of column name to value

        Returns:
            FailedEvent instance
        """
        reason = row.get("quarantine_reason")
        return cls(
            id=int(row["id"]),
            timestamp=int(row["timestamp"]),
            attempted_at=int(row["attempted_at"]),
            event_data=row["event_data"],
            handler_name=row["handler_name"],
            imei=row["imei"],
            attempt_count=int(row.get("attempt_count", 1)),
            quarantined_at=row.get("quarantined_at"),
            quarantine_reason=QuarantineReason(reason) if reason else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "attempted_at": self.attempted_at,
            "event_data": self.event_data,
            "handler_name": self.handler_name,
            "imei": self.imei,
            "attempt_count": self.attempt_count,
            "quarantined_at": self.quarantined_at,
            "quarantine_reason": self.quarantine_reason.value if self.quarantine_reason else None,
        }
