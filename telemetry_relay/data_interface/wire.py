"""Datagram codec: one JSON telemetry record per UDP packet."""

import json
import math

import jsonschema

from telemetry_relay.errors import TelemetryDecodeError

from .schema_loader import get_schema
from .telemetry_data import TelemetryRecord

RECORD_SCHEMA = "telemetry_record"

# Largest payload that still fits a single IPv4 UDP datagram.
MAX_DATAGRAM_SIZE = 65507

_validator = None


def _get_validator():
    global _validator
    if _validator is None:
        schema = get_schema(RECORD_SCHEMA)
        validator_cls = jsonschema.validators.validator_for(schema)
        _validator = validator_cls(schema)
    return _validator


def _reject_constant(token: str):
    raise ValueError(f"Non-finite number {token} is not valid JSON")


def _parse_finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"Number {token} is out of range")
    return value


def encode_packet(record: TelemetryRecord) -> bytes:
    """Serialize a record into a datagram body."""
    payload = json.dumps(record.to_dict(), allow_nan=False).encode("utf-8")
    if len(payload) > MAX_DATAGRAM_SIZE:
        raise ValueError(f"Encoded record is {len(payload)} bytes, too large")
    return payload


def decode_packet(data: bytes) -> TelemetryRecord:
    """Decode and validate a datagram body.

    Raises:
        TelemetryDecodeError: if the payload is not UTF-8 JSON matching the
            telemetry record schema.
    """
    try:
        message = json.loads(
            data.decode("utf-8"),
            parse_constant=_reject_constant,
            parse_float=_parse_finite_float,
        )
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise TelemetryDecodeError(f"Malformed payload: {e}") from e

    try:
        _get_validator().validate(message)
    except jsonschema.ValidationError as e:
        raise TelemetryDecodeError(
            f"Invalid record: {e.message} at {list(e.path)}"
        ) from e

    try:
        return TelemetryRecord.from_dict(message)
    except (ValueError, OverflowError) as e:
        raise TelemetryDecodeError(f"Invalid field value: {e}") from e
