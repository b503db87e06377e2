"""
TelemetryEvent Data Model - live vehicle telemetry event representation
Events are produced by the device data receiver and consumed by event handlers
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

MAX_IMEI_LENGTH = 20


class EventKind(str, Enum):
    """Kind of telemetry carried by an event"""

    SPEED = "speed"
    LOCATION = "location"
    ODOMETER_READING = "odometer_reading"
    DRIVER_CARD = "driver_card"
    DRIVE_STATE = "drive_state"
    TEMPERATURE_READINGS = "temperature_readings"


@dataclass
class TelemetryEvent:
    """
    A single telemetry event received from a vehicle tracking device

    Attributes:
        kind: Kind of telemetry (speed, location, ...)
        imei: IMEI of the reporting device
        timestamp: Time the device recorded the event (epoch seconds)
        payload: Kind-specific JSON-compatible values
    """

    kind: EventKind
    imei: str
    timestamp: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate TelemetryEvent after initialization"""
        if not isinstance(self.kind, EventKind):
            self.kind = EventKind(self.kind)

        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise ValueError("timestamp must be an integer (epoch seconds)")
        if self.timestamp <= 0:
            raise ValueError("timestamp must be positive")

        if not self.imei or not self.imei.isdigit():
            raise ValueError("imei must be a non-empty string of digits")
        if len(self.imei) > MAX_IMEI_LENGTH:
            raise ValueError(f"imei must be at most {MAX_IMEI_LENGTH} characters")

        if not isinstance(self.payload, dict):
            raise ValueError("payload must be a mapping")
        if not _survives_json(self.payload):
            raise ValueError("payload must be JSON-compatible (str keys, no tuples, sets or NaN)")

    def to_dict(self) -> Dict[str, Any]:
        """Convert TelemetryEvent to dictionary (for serialization)"""
        return {
            "kind": self.kind.value,
            "imei": self.imei,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }

    @property
    def event_key(self) -> str:
        """Key identifying the event for log correlation (imei + kind + timestamp)"""
        return f"{self.imei}:{self.kind.value}:{self.timestamp}"


def _survives_json(payload: Dict[str, Any]) -> bool:
    """True if the payload serializes to JSON and reads back unchanged"""
    try:
        return json.loads(json.dumps(payload, allow_nan=False)) == payload
    except (TypeError, ValueError):
        return False
