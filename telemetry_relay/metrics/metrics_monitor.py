import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import psutil

from telemetry_relay.errors import MetricsInvariantError


@dataclass(frozen=True)
class MetricsSnapshot:
    messages_received: int
    messages_sent: int
    avg_latency: float
    connections_count: int
    memory_usage: int
    start_time: int
    decode_errors: int = 0

    def to_dict(self) -> dict:
        return {
            "messagesReceived": self.messages_received,
            "messagesSent": self.messages_sent,
            "avgLatency": self.avg_latency,
            "connectionsCount": self.connections_count,
            "memoryUsage": self.memory_usage,
            "startTime": self.start_time,
            "decodeErrors": self.decode_errors,
        }


class MetricsAggregator:
    """Process-wide throughput, latency and subscriber counters.

    Counters are never reset during the lifetime of the process. All
    mutation goes through the record_* methods, guarded by one lock.
    """

    def __init__(
        self,
        memory_threshold_mb: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.process = psutil.Process(os.getpid())
        self.memory_threshold_mb = memory_threshold_mb
        self._clock = clock or time.time
        self._lock = threading.Lock()

        self._messages_received = 0
        self._messages_sent = 0
        self._avg_latency = 0.0
        self._connections_count = 0
        self._memory_usage = 0
        self._decode_errors = 0
        self._start_time = self._clock()

    @property
    def start_time(self) -> float:
        return self._start_time

    def record_receive(self, latency: float) -> int:
        """Count one decoded packet and fold its latency (ms) into the average."""
        with self._lock:
            self._messages_received += 1
            # Two-term running average, kept as-is for parity with the dashboard.
            self._avg_latency = (self._avg_latency + latency) / 2
            return self._messages_received

    def record_send(self):
        with self._lock:
            self._messages_sent += 1

    def record_decode_error(self):
        with self._lock:
            self._decode_errors += 1

    def subscriber_connected(self) -> int:
        with self._lock:
            self._connections_count += 1
            return self._connections_count

    def subscriber_disconnected(self) -> int:
        with self._lock:
            if self._connections_count == 0:
                raise MetricsInvariantError(
                    "Subscriber disconnected while connections_count is 0"
                )
            self._connections_count -= 1
            return self._connections_count

    def refresh_memory(self) -> int:
        """Sample the process RSS into the snapshot and warn above threshold."""
        rss = self.process.memory_info().rss
        with self._lock:
            self._memory_usage = rss
        mem_mb = rss / (1024 * 1024)
        if self.memory_threshold_mb is not None and mem_mb > self.memory_threshold_mb:
            print(f"[Metrics] HIGH MEMORY USAGE: {mem_mb:.1f}MB")
        return rss

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                messages_received=self._messages_received,
                messages_sent=self._messages_sent,
                avg_latency=self._avg_latency,
                connections_count=self._connections_count,
                memory_usage=self._memory_usage,
                start_time=int(self._start_time * 1000),
                decode_errors=self._decode_errors,
            )

    def uptime_ms(self) -> float:
        return max(0.0, (self._clock() - self._start_time) * 1000)

    def messages_per_second(self) -> float:
        """Throughput derived at read time from the receive counter."""
        elapsed_s = self.uptime_ms() / 1000
        if elapsed_s <= 0:
            return 0.0
        with self._lock:
            received = self._messages_received
        return round(received / elapsed_s, 2)
