import json
from dataclasses import replace

import pytest

from telemetry_relay.data_interface import decode_packet, encode_packet
from telemetry_relay.errors import TelemetryDecodeError


def test_decode_keeps_every_field(sample_record):
    decoded = decode_packet(encode_packet(sample_record))
    assert decoded == sample_record


def test_decode_accepts_external_sender_payload():
    payload = {
        "timestamp": "2024-05-01T12:30:15.250Z",
        "altitude": 35000,
        "speedX": 450,
        "speedY": 360,
        "speedZ": 270,
        "heading": 90,
        "latitude": 40.7128,
        "longitude": -74.006,
        "temperature": 15,
        "battery_percentage": 99.5,
    }
    record = decode_packet(json.dumps(payload).encode("utf-8"))
    assert record.altitude == 35000
    assert (record.speed_x, record.speed_y, record.speed_z) == (450, 360, 270)
    assert record.timestamp.microsecond == 250000
    assert record.timestamp.utcoffset().total_seconds() == 0


def test_encoded_payload_uses_wire_keys(sample_record):
    payload = json.loads(encode_packet(sample_record))
    assert set(payload) == {
        "timestamp",
        "altitude",
        "speedX",
        "speedY",
        "speedZ",
        "heading",
        "latitude",
        "longitude",
        "temperature",
        "battery_percentage",
    }
    assert payload["timestamp"].endswith("Z")


@pytest.mark.parametrize(
    "data",
    [
        b"not json",
        b"\xff\xfe\x00",
        b"",
        b"[1, 2, 3]",
        b'{"altitude": 1}',
    ],
)
def test_malformed_payloads_raise_decode_error(data):
    with pytest.raises(TelemetryDecodeError):
        decode_packet(data)


def test_wrong_field_type_is_rejected(sample_payload):
    sample_payload["altitude"] = "high"
    with pytest.raises(TelemetryDecodeError):
        decode_packet(json.dumps(sample_payload).encode())


def test_boolean_is_not_a_number(sample_payload):
    sample_payload["heading"] = True
    with pytest.raises(TelemetryDecodeError):
        decode_packet(json.dumps(sample_payload).encode())


def test_bad_timestamp_is_rejected(sample_payload):
    sample_payload["timestamp"] = "yesterday"
    with pytest.raises(TelemetryDecodeError):
        decode_packet(json.dumps(sample_payload).encode())


@pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity", "1e999"])
def test_non_finite_numbers_are_rejected(sample_payload, token):
    text = json.dumps(sample_payload).replace(
        f'"altitude": {json.dumps(sample_payload["altitude"])}',
        f'"altitude": {token}',
    )
    assert token in text
    with pytest.raises(TelemetryDecodeError):
        decode_packet(text.encode())


def test_encode_refuses_non_finite_values(sample_record):
    with pytest.raises(ValueError):
        encode_packet(replace(sample_record, altitude=float("nan")))


def test_deeply_nested_payload_is_a_decode_error():
    with pytest.raises(TelemetryDecodeError):
        decode_packet(b"[" * 60000)


@pytest.mark.parametrize(
    "timestamp, microsecond",
    [
        ("2024-05-01T12:30:15.25Z", 250000),
        ("2024-05-01T12:30:15.1Z", 100000),
        ("2024-05-01T12:30:15.1234567Z", 123456),
        ("2024-05-01T12:30:15Z", 0),
        ("2024-05-01T12:30:15.5+02:00", 500000),
    ],
)
def test_fractional_seconds_of_any_length_are_accepted(
    sample_payload, timestamp, microsecond
):
    sample_payload["timestamp"] = timestamp
    record = decode_packet(json.dumps(sample_payload).encode())
    assert record.timestamp.microsecond == microsecond
    assert record.timestamp.tzinfo is not None
