import json
import socket

import pytest

from conftest import wait_for
from telemetry_relay.data_interface import encode_packet
from telemetry_relay.errors import TransportBindError
from telemetry_relay.input.telemetry_receiver import TelemetryListener
from telemetry_relay.metrics import MetricsAggregator
from telemetry_relay.tracking import LISTENING_KEY, PeerStatus, PeerTracker


@pytest.fixture
def events():
    return []


@pytest.fixture
def listener(events):
    listener = TelemetryListener(
        host="127.0.0.1",
        port=0,
        peer_tracker=PeerTracker(),
        metrics=MetricsAggregator(),
        callback=events.append,
    )
    yield listener
    listener.stop()


def test_valid_datagram_is_enriched_and_counted(listener, events, sample_record):
    event = listener.handle_datagram(encode_packet(sample_record), ("10.1.1.1", 5555))

    assert event.record == sample_record
    assert event.sequence_id == 1
    assert event.source_key == "10.1.1.1:5555"
    assert event.processing_latency >= 0
    assert events == [event]

    snapshot = listener.metrics.snapshot()
    assert snapshot.messages_received == 1
    assert snapshot.messages_sent == 1
    assert listener.peer_tracker.get("10.1.1.1:5555").messages_received == 1


def test_sequence_ids_are_monotonic_across_peers(listener, sample_record):
    data = encode_packet(sample_record)
    ids = [
        listener.handle_datagram(data, (f"10.1.1.{i % 3}", 5555)).sequence_id
        for i in range(6)
    ]
    assert ids == [1, 2, 3, 4, 5, 6]


def test_malformed_datagram_is_dropped(listener, events, capsys):
    assert listener.handle_datagram(b"{broken", ("10.1.1.1", 5555)) is None
    assert listener.handle_datagram(json.dumps({"a": 1}).encode(), ("10.1.1.1", 5555)) is None

    snapshot = listener.metrics.snapshot()
    assert snapshot.messages_received == 0
    assert snapshot.messages_sent == 0
    assert snapshot.decode_errors == 2
    assert events == []
    assert listener.peer_tracker.get("10.1.1.1:5555") is None
    assert "Error parsing UDP message" in capsys.readouterr().out


@pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_reading_produces_no_event(listener, events, sample_payload, token):
    sample_payload["altitude"] = "__altitude__"
    data = json.dumps(sample_payload).replace('"__altitude__"', token).encode()

    assert listener.handle_datagram(data, ("10.1.1.1", 5555)) is None
    snapshot = listener.metrics.snapshot()
    assert snapshot.messages_received == 0
    assert snapshot.decode_errors == 1
    assert events == []


def test_deeply_nested_datagram_counts_as_decode_error(listener, events):
    assert listener.handle_datagram(b"[" * 60000, ("10.1.1.1", 5555)) is None
    assert listener.metrics.snapshot().decode_errors == 1
    assert events == []


def test_bind_registers_listening_entry(listener):
    host, port = listener.start()
    assert host == "127.0.0.1"
    assert port > 0
    entry = listener.peer_tracker.get(LISTENING_KEY)
    assert entry.status == PeerStatus.LISTENING
    assert entry.port == port


def test_bind_failure_is_reported():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    blocker.bind(("127.0.0.1", 0))
    try:
        listener = TelemetryListener(
            "127.0.0.1",
            blocker.getsockname()[1],
            PeerTracker(),
            MetricsAggregator(),
        )
        with pytest.raises(TransportBindError):
            listener.start()
        assert not listener.running
    finally:
        blocker.close()


def test_end_to_end_single_record(listener, events, sample_record):
    _, port = listener.start()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
        sender.sendto(encode_packet(sample_record), ("127.0.0.1", port))
        sender_port = sender.getsockname()[1]

    assert wait_for(lambda: len(events) == 1)
    event = events[0]
    assert event.sequence_id == 1
    assert event.record.altitude == 35000
    assert (event.record.speed_x, event.record.speed_y, event.record.speed_z) == (
        450,
        360,
        270,
    )
    assert event.source_key == f"127.0.0.1:{sender_port}"
    assert listener.metrics.snapshot().messages_received == 1


def test_listener_survives_bad_packets(listener, events, sample_record):
    _, port = listener.start()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
        sender.sendto(b"garbage", ("127.0.0.1", port))
        sender.sendto(encode_packet(sample_record), ("127.0.0.1", port))

    assert wait_for(lambda: len(events) == 1)
    assert listener.metrics.snapshot().decode_errors == 1


def test_stop_unblocks_receive_loop(listener):
    listener.start()
    thread = listener.receive_thread
    listener.stop()
    assert not thread.is_alive()
    assert listener.socket is None
