"""Client-side consumer that renders a live stream at a bounded rate."""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional

from telemetry_relay.data_interface.telemetry_data import EnrichedTelemetryEvent

from .back_pressure_queue import BackpressureQueue

MAX_QUEUE_SIZE = 50
BATCH_SIZE = 5
MAX_DATA_POINTS = 250


@dataclass(frozen=True)
class ProcessingStats:
    received: int
    processed: int
    dropped: int
    skipped: int
    rejected: int
    queue_size: int
    avg_processing_time: float

    def to_dict(self) -> dict:
        return {
            "received": self.received,
            "processed": self.processed,
            "dropped": self.dropped,
            "skipped": self.skipped,
            "rejected": self.rejected,
            "queueSize": self.queue_size,
            "avgProcessingTime": self.avg_processing_time,
        }


class ChartBuffer:
    """The most recent points handed to the rendering surface."""

    def __init__(self, max_points: int = MAX_DATA_POINTS):
        self.max_points = max_points
        self._points = deque(maxlen=max_points)
        self._lock = threading.Lock()

    def extend(self, events: List[EnrichedTelemetryEvent]):
        with self._lock:
            self._points.extend(events)

    def clear(self):
        with self._lock:
            self._points.clear()

    def points(self) -> List[EnrichedTelemetryEvent]:
        with self._lock:
            return list(self._points)

    def series(self) -> dict:
        points = self.points()
        return {
            "timestamps": [p.record.timestamp for p in points],
            "speedX": [p.record.speed_x for p in points],
            "speedY": [p.record.speed_y for p in points],
            "speedZ": [p.record.speed_z for p in points],
        }

    def __len__(self):
        with self._lock:
            return len(self._points)


def processing_interval_ms(queue_length: int) -> int:
    """Drain period for the current backlog: heavier backlogs drain faster."""
    if queue_length > 30:
        return 50
    if queue_length > 15:
        return 75
    return 100


class QueueConsumer:
    """
    Buffers incoming telemetry events and drains them in small batches.

    Overflowing arrivals evict the oldest queued events (counted as
    `dropped`). Each drain keeps only the newest `batch_size` events and
    discards the rest of the queue (counted as `skipped`).

    Args:
        render_callback (callable): Receives each drained batch.
        max_queue_size (int): Queue capacity.
        batch_size (int): Maximum events rendered per drain.
        max_data_points (int): Capacity of the chart buffer.
    """

    def __init__(
        self,
        render_callback: Optional[Callable[[List[EnrichedTelemetryEvent]], None]] = None,
        max_queue_size: int = MAX_QUEUE_SIZE,
        batch_size: int = BATCH_SIZE,
        max_data_points: int = MAX_DATA_POINTS,
    ):
        self.render_callback = render_callback
        self.batch_size = batch_size
        self.queue = BackpressureQueue(max_queue_size=max_queue_size)
        self.chart = ChartBuffer(max_points=max_data_points)

        self.paused = False
        self.running = False
        self._stop_event = threading.Event()
        self._drain_thread: Optional[threading.Thread] = None

        self._stats_lock = threading.Lock()
        self._received = 0
        self._processed = 0
        self._skipped = 0
        self._rejected = 0
        self._processing_times = deque(maxlen=10)

    def on_event(self, event: EnrichedTelemetryEvent) -> bool:
        """Arrival handler. Returns False if the event was rejected."""
        if self.paused:
            with self._stats_lock:
                self._rejected += 1
            return False
        self.queue.put(event)
        with self._stats_lock:
            self._received += 1
        return True

    def drain(self) -> List[EnrichedTelemetryEvent]:
        """Move the newest batch into the chart buffer and clear the queue."""
        if self.paused:
            return []
        start = time.perf_counter()
        batch, skipped = self.queue.drain_latest(self.batch_size)
        if not batch:
            return []

        self.chart.extend(batch)
        processing_time = (time.perf_counter() - start) * 1000
        with self._stats_lock:
            self._processed += len(batch)
            self._skipped += skipped
            self._processing_times.append(processing_time)

        if self.render_callback:
            try:
                self.render_callback(batch)
            except Exception as e:
                print(f"[Consumer] Render callback failed: {e}")
        return batch

    def next_interval_ms(self) -> int:
        return processing_interval_ms(len(self.queue))

    def _drain_loop(self):
        while not self._stop_event.wait(self.next_interval_ms() / 1000.0):
            self.drain()

    def start(self):
        if self.running:
            return
        self.running = True
        self._stop_event.clear()
        self._drain_thread = threading.Thread(target=self._drain_loop, daemon=True)
        self._drain_thread.start()

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self._drain_thread:
            self._drain_thread.join(timeout=1.0)
            self._drain_thread = None

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def clear(self):
        """Empty the chart and the pending queue. Counters are not reset."""
        self.queue.clear()
        self.chart.clear()

    def stats(self) -> ProcessingStats:
        with self._stats_lock:
            times = list(self._processing_times)
            return ProcessingStats(
                received=self._received,
                processed=self._processed,
                dropped=self.queue.dropped_items,
                skipped=self._skipped,
                rejected=self._rejected,
                queue_size=len(self.queue),
                avg_processing_time=sum(times) / len(times) if times else 0.0,
            )
