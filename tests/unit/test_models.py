"""
Unit tests for data models
Tests TelemetryEvent validation and FailedEvent row mapping
"""

import pytest

from tests.fakes import TEST_IMEI, make_event
from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason
from vehicle_data_receiver.models.telemetry_event import EventKind, TelemetryEvent


class TestTelemetryEvent:
    """Test TelemetryEvent validation"""

    def test_kind_is_coerced_from_string(self):
        event = TelemetryEvent(kind="location", imei=TEST_IMEI, timestamp=1000)

        assert event.kind is EventKind.LOCATION
        assert event.payload == {}

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            TelemetryEvent(kind="tachograph", imei=TEST_IMEI, timestamp=1000)

    @pytest.mark.parametrize("timestamp", [0, -5, 1.5, True, "1000"])
    def test_invalid_timestamp_rejected(self, timestamp):
        with pytest.raises(ValueError):
            make_event(timestamp=timestamp)

    @pytest.mark.parametrize("imei", ["", "35630704244101A", "1" * 21])
    def test_invalid_imei_rejected(self, imei):
        with pytest.raises(ValueError):
            make_event(imei=imei)

    @pytest.mark.parametrize(
        "payload",
        [
            {"sensors": {1, 2}},
            {"position": (52.1, 4.3)},
            {"readings": {1: -18.5}},
            {"speed": float("nan")},
            {"seen_at": object()},
        ],
        ids=["set", "tuple", "int-key", "nan", "object"],
    )
    def test_non_json_payload_rejected(self, payload):
        """Test that payloads which would not survive the codec are refused"""
        with pytest.raises(ValueError):
            make_event(payload=payload)

    def test_event_key(self, sample_event):
        assert sample_event.event_key == f"{TEST_IMEI}:speed:1000"


class TestFailedEvent:
    """Test FailedEvent mapping from database rows"""

    def test_from_row(self):
        row = {
            "id": 7,
            "timestamp": 1000,
            "attempted_at": 1050,
            "event_data": "{}",
            "handler_name": "speed",
            "imei": TEST_IMEI,
            "attempt_count": 3,
            "quarantined_at": 1100,
            "quarantine_reason": "max_attempts_exceeded",
        }

        failed_event = FailedEvent.from_row(row)

        assert failed_event.id == 7
        assert failed_event.attempt_count == 3
        assert failed_event.is_quarantined
        assert failed_event.quarantine_reason is QuarantineReason.MAX_ATTEMPTS_EXCEEDED

    def test_pending_row_defaults(self):
        row = {
            "id": 1,
            "timestamp": 1000,
            "attempted_at": 1000,
            "event_data": "{}",
            "handler_name": "speed",
            "imei": TEST_IMEI,
        }

        failed_event = FailedEvent.from_row(row)

        assert failed_event.attempt_count == 1
        assert not failed_event.is_quarantined
        assert failed_event.to_dict()["quarantine_reason"] is None
