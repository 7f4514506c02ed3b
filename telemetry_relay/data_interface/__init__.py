"""Data interface module."""

from .telemetry_data import EnrichedTelemetryEvent, TelemetryRecord
from .wire import decode_packet, encode_packet

__all__ = [
    "TelemetryRecord",
    "EnrichedTelemetryEvent",
    "decode_packet",
    "encode_packet",
]
