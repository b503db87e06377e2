"""
Unit tests for the poison event writer
Tests JSONL output of quarantined failed events
"""

import json

from vehicle_data_receiver.dlq.writer import PoisonEventWriter
from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason


def quarantined_event(handler_name: str = "speed", failed_event_id: int = 7) -> FailedEvent:
    return FailedEvent(
        id=failed_event_id,
        timestamp=1000,
        attempted_at=1050,
        event_data='{"format":"vdr.tele',
        handler_name=handler_name,
        imei="356307042441013",
        quarantined_at=1100,
        quarantine_reason=QuarantineReason.DECODE_ERROR,
    )


class TestPoisonEventWriter:
    """Test poison sink functionality"""

    def test_write_event(self, tmp_path):
        """Test writing a quarantined event creates a JSONL file"""
        writer = PoisonEventWriter(directory=str(tmp_path / "poison"))

        writer.write_event(quarantined_event(), QuarantineReason.DECODE_ERROR, "Malformed event data")

        files = writer.get_poison_files()
        assert len(files) == 1
        assert files[0].name.startswith("poison_speed_")

    def test_file_format(self, tmp_path):
        """Test that every line is a complete JSON record"""
        writer = PoisonEventWriter(directory=str(tmp_path / "poison"))

        writer.write_event(quarantined_event(), QuarantineReason.DECODE_ERROR, "Malformed event data")

        with open(writer.get_poison_files()[0], encoding="utf-8") as f:
            entry = json.loads(f.readline())

        assert entry["id"] == 7
        assert entry["event_data"] == '{"format":"vdr.tele'
        assert entry["quarantine_reason"] == "decode_error"
        assert entry["error_message"] == "Malformed event data"
        assert "written_at" in entry

    def test_count_by_handler(self, tmp_path):
        writer = PoisonEventWriter(directory=str(tmp_path / "poison"))

        for failed_event_id in range(3):
            writer.write_event(
                quarantined_event("speed", failed_event_id),
                QuarantineReason.MAX_ATTEMPTS_EXCEEDED,
                "HTTP 500",
            )
        writer.write_event(quarantined_event("location"), QuarantineReason.DECODE_ERROR, "bad")

        assert writer.count_poison_events() == 4
        assert writer.count_poison_events("speed") == 3
        assert writer.count_poison_events("location") == 1

    def test_handler_name_sanitized_in_filename(self, tmp_path):
        writer = PoisonEventWriter(directory=str(tmp_path / "poison"))

        writer.write_event(quarantined_event("../speed"), QuarantineReason.DECODE_ERROR, "bad")

        assert all(path.parent == writer.directory for path in writer.get_poison_files())
        assert writer.count_poison_events("../speed") == 1
