"""
Data models for telemetry events and dead-lettered failed events
"""

from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason, epoch_seconds
from vehicle_data_receiver.models.telemetry_event import EventKind, TelemetryEvent

__all__ = ["EventKind", "FailedEvent", "QuarantineReason", "TelemetryEvent", "epoch_seconds"]
