"""
Event Record Codec
Converts TelemetryEvents to and from the self-describing JSON envelope stored in event_data
"""

import json
from typing import Any, Dict

from jsonschema import ValidationError, validate

from vehicle_data_receiver.models.telemetry_event import EventKind, TelemetryEvent

ENVELOPE_FORMAT = "vdr.telemetry"
ENVELOPE_VERSION = 1

ENVELOPE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "FailedEventEnvelope",
    "type": "object",
    "required": ["format", "version", "kind", "imei", "timestamp", "payload"],
    "properties": {
        "format": {"const": ENVELOPE_FORMAT},
        "version": {"const": ENVELOPE_VERSION},
        "kind": {"type": "string", "enum": [kind.value for kind in EventKind]},
        "imei": {"type": "string", "pattern": "^[0-9]{1,20}$"},
        "timestamp": {"type": "integer", "minimum": 1},
        "payload": {"type": "object"},
    },
    "additionalProperties": False,
}


class DecodeError(Exception):
    """Exception raised when a stored event payload cannot be decoded"""

    pass


def encode(event: TelemetryEvent) -> str:
    """
    Serialize a TelemetryEvent into its durable text form

    The envelope carries its own format tag, version and event kind so a
    record can be decoded without any other context.

    Args:
        event: Event to serialize

    Returns:
        JSON envelope text
    """
    envelope = {
        "format": ENVELOPE_FORMAT,
        "version": ENVELOPE_VERSION,
        **event.to_dict(),
    }
    return json.dumps(envelope, sort_keys=True, separators=(",", ":"))


def decode(text: str) -> TelemetryEvent:
    """
    Reconstruct a TelemetryEvent from its durable text form

    Args:
        text: JSON envelope text produced by encode()

    Returns:
        Decoded TelemetryEvent

    Raises:
        DecodeError: If the text is malformed or does not describe a valid event
    """
    if not isinstance(text, str) or not text:
        raise DecodeError("Empty event data")

    try:
        envelope = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed event data: {e}") from e

    try:
        validate(instance=envelope, schema=ENVELOPE_SCHEMA)
    except ValidationError as e:
        raise DecodeError(f"Event envelope rejected: {e.message}") from e

    try:
        return TelemetryEvent(
            kind=EventKind(envelope["kind"]),
            imei=envelope["imei"],
            timestamp=envelope["timestamp"],
            payload=envelope["payload"],
        )
    except ValueError as e:
        raise DecodeError(f"Invalid event in envelope: {e}") from e
