"""
Poison Event Writer
Mirrors quarantined failed events to JSONL files for operator review
"""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason

logger = structlog.get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _file_component(handler_name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", handler_name)


class PoisonEventWriter:
    """
    Writes quarantined failed events to the poison-record sink

    Records are appended as JSONL (one JSON object per line), organized by
    handler and date. The database row stays in place; these files are the
    operator-facing trail of events that will not be retried automatically.
    """

    def __init__(self, directory: str = "data/poison"):
        """
        Initialize poison event writer

        Args:
            directory: Directory to write poison files
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

        logger.info("Poison event writer initialized", directory=str(self.directory))

    def write_event(
        self,
        failed_event: FailedEvent,
        reason: QuarantineReason,
        error_message: str,
    ) -> None:
        """
        Append a quarantined failed event to the poison sink

        Args:
            failed_event: Record that was quarantined
            reason: Why it was quarantined
            error_message: Last error seen for the record
        """
        entry = failed_event.to_dict()
        entry["quarantine_reason"] = QuarantineReason(reason).value
        entry["error_message"] = error_message
        entry["written_at"] = datetime.now(timezone.utc).isoformat()

        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        filename = f"poison_{_file_component(failed_event.handler_name)}_{date_str}.jsonl"
        filepath = self.directory / filename

        try:
            with open(filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")

            logger.warning(
                "Failed event written to poison sink",
                failed_event_id=failed_event.id,
                handler_name=failed_event.handler_name,
                reason=entry["quarantine_reason"],
                poison_file=filename,
            )

        except OSError as e:
            # The record is still quarantined in the store, so nothing is lost
            logger.error(
                "Failed to write to poison sink",
                error=str(e),
                failed_event_id=failed_event.id,
            )

    def get_poison_files(self, handler_name: Optional[str] = None) -> list[Path]:
        """
        Get list of poison files

        Args:
            handler_name: Filter by handler (None for all)

        Returns:
            List of poison file paths
        """
        if handler_name:
            pattern = f"poison_{_file_component(handler_name)}_*.jsonl"
        else:
            pattern = "poison_*.jsonl"

        return sorted(self.directory.glob(pattern))

    def count_poison_events(self, handler_name: Optional[str] = None) -> int:
        """
        Count total events in the poison sink

        Args:
            handler_name: Filter by handler (None for all)

        Returns:
            Total number of events
        """
        total = 0

        for filepath in self.get_poison_files(handler_name):
            with open(filepath, encoding="utf-8") as f:
                total += sum(1 for _ in f)

        return total
