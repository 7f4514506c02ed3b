from dataclasses import replace

import pytest

from conftest import wait_for
from telemetry_relay.client.back_pressure_queue import BackpressureQueue
from telemetry_relay.client.queue_consumer import QueueConsumer, processing_interval_ms
from telemetry_relay.data_interface.telemetry_data import EnrichedTelemetryEvent


@pytest.fixture
def make_event(sample_record):
    def _make(sequence_id):
        return EnrichedTelemetryEvent(
            record=replace(sample_record, speed_x=float(sequence_id)),
            processing_latency=0.0,
            sequence_id=sequence_id,
            source_key="127.0.0.1:5000",
        )

    return _make


def test_queue_drops_oldest_on_overflow():
    queue = BackpressureQueue(max_queue_size=3)
    assert [queue.put(i) for i in range(5)] == [0, 0, 0, 1, 1]
    assert queue.snapshot() == [2, 3, 4]
    assert queue.dropped_items == 2


def test_drain_latest_keeps_most_recent_in_order():
    queue = BackpressureQueue(max_queue_size=10)
    for i in range(8):
        queue.put(i)
    batch, left_out = queue.drain_latest(5)
    assert batch == [3, 4, 5, 6, 7]
    assert left_out == 3
    assert queue.empty()


def test_rapid_arrivals_keep_newest_fifty(make_event):
    consumer = QueueConsumer()
    for i in range(1, 61):
        consumer.on_event(make_event(i))

    stats = consumer.stats()
    assert stats.queue_size == 50
    assert stats.dropped == 10
    assert stats.received == 60
    assert [e.sequence_id for e in consumer.queue.snapshot()] == list(range(11, 61))


def test_queue_never_exceeds_capacity(make_event):
    consumer = QueueConsumer()
    for i in range(1, 500):
        consumer.on_event(make_event(i))
        assert len(consumer.queue) <= 50
    assert consumer.stats().dropped == 499 - 50


def test_drain_renders_latest_batch(make_event):
    rendered = []
    consumer = QueueConsumer(render_callback=rendered.append)
    for i in range(1, 13):
        consumer.on_event(make_event(i))

    batch = consumer.drain()

    assert [e.sequence_id for e in batch] == [8, 9, 10, 11, 12]
    assert rendered == [batch]
    stats = consumer.stats()
    assert stats.processed == 5
    assert stats.skipped == 7
    assert stats.dropped == 0
    assert stats.queue_size == 0
    assert consumer.chart.series()["speedX"] == [8.0, 9.0, 10.0, 11.0, 12.0]


def test_drain_on_empty_queue_does_nothing():
    consumer = QueueConsumer()
    assert consumer.drain() == []
    assert consumer.stats().processed == 0


def test_chart_buffer_is_bounded(make_event):
    consumer = QueueConsumer()
    for i in range(1, 301):
        consumer.on_event(make_event(i))
        consumer.drain()
    points = consumer.chart.points()
    assert len(points) == 250
    assert points[0].sequence_id == 51
    assert points[-1].sequence_id == 300


@pytest.mark.parametrize(
    "length, interval",
    [(0, 100), (15, 100), (16, 75), (30, 75), (31, 50), (50, 50)],
)
def test_processing_interval_adapts_to_backlog(length, interval):
    assert processing_interval_ms(length) == interval


def test_paused_consumer_rejects_and_skips_drain(make_event):
    consumer = QueueConsumer()
    consumer.on_event(make_event(1))
    consumer.pause()

    assert consumer.on_event(make_event(2)) is False
    assert consumer.drain() == []
    assert consumer.stats().rejected == 1
    assert len(consumer.queue) == 1

    consumer.resume()
    assert [e.sequence_id for e in consumer.drain()] == [1]


def test_clear_empties_chart_and_queue_but_keeps_stats(make_event):
    consumer = QueueConsumer(max_queue_size=3)
    for i in range(5):
        consumer.on_event(make_event(i))
    consumer.drain()
    consumer.on_event(make_event(5))
    before = consumer.stats()

    consumer.clear()

    assert len(consumer.chart) == 0
    assert consumer.chart.series()["speedX"] == []
    assert len(consumer.queue) == 0
    after = consumer.stats()
    assert after.received == before.received == 6
    assert after.processed == before.processed
    assert after.dropped == before.dropped == 2
    assert after.queue_size == 0
    assert consumer.drain() == []


def test_backpressure_clear_keeps_eviction_count():
    queue = BackpressureQueue(max_queue_size=2)
    for i in range(4):
        queue.put(i)
    queue.clear()
    assert queue.empty()
    assert queue.dropped_items == 2


def test_render_errors_are_contained(make_event, capsys):
    def broken(batch):
        raise RuntimeError("canvas gone")

    consumer = QueueConsumer(render_callback=broken)
    consumer.on_event(make_event(1))
    assert len(consumer.drain()) == 1
    assert "Render callback failed" in capsys.readouterr().out


def test_drain_thread_processes_queue(make_event):
    consumer = QueueConsumer()
    consumer.start()
    try:
        for i in range(1, 4):
            consumer.on_event(make_event(i))
        assert wait_for(lambda: consumer.stats().processed == 3, timeout=2.0)
        assert consumer.stats().avg_processing_time >= 0
    finally:
        consumer.stop()
    assert not consumer.running
