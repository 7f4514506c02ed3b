"""Telemetry data types."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone

# fromisoformat before 3.11 only accepts 3 or 6 fractional digits.
_FRACTION = re.compile(r"(?<=:\d\d)\.(\d+)")


def _six_digit_fraction(match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def format_timestamp(value: datetime) -> str:
    """Format an instant as an ISO-8601 UTC string with a trailing Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string, assuming UTC when no offset is given."""
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(_six_digit_fraction, value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class TelemetryRecord:
    """One flat, timestamped flight telemetry sample."""

    timestamp: datetime
    altitude: float
    speed_x: float
    speed_y: float
    speed_z: float
    heading: float
    latitude: float
    longitude: float
    temperature: float
    battery_percentage: float

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": format_timestamp(self.timestamp),
            "altitude": self.altitude,
            "speedX": self.speed_x,
            "speedY": self.speed_y,
            "speedZ": self.speed_z,
            "heading": self.heading,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "temperature": self.temperature,
            "battery_percentage": self.battery_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TelemetryRecord":
        """Build a record from its wire dictionary."""
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            altitude=float(data["altitude"]),
            speed_x=float(data["speedX"]),
            speed_y=float(data["speedY"]),
            speed_z=float(data["speedZ"]),
            heading=float(data["heading"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            temperature=float(data["temperature"]),
            battery_percentage=float(data["battery_percentage"]),
        )


@dataclass(frozen=True)
class EnrichedTelemetryEvent:
    """A decoded record annotated by the listener before fan-out."""

    record: TelemetryRecord
    processing_latency: float  # milliseconds
    sequence_id: int
    source_key: str

    def to_dict(self) -> dict:
        payload = self.record.to_dict()
        payload["processingLatency"] = self.processing_latency
        payload["messageId"] = self.sequence_id
        payload["sourceConnection"] = self.source_key
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> "EnrichedTelemetryEvent":
        return cls(
            record=TelemetryRecord.from_dict(data),
            processing_latency=float(data.get("processingLatency", 0.0)),
            sequence_id=int(data.get("messageId", 0)),
            source_key=str(data.get("sourceConnection", "")),
        )
