"""Fan-out of telemetry and status events to connected subscribers."""

import threading
from typing import Callable, Optional, Protocol

from telemetry_relay.data_interface.telemetry_data import EnrichedTelemetryEvent
from telemetry_relay.metrics.metrics_monitor import MetricsAggregator
from telemetry_relay.tracking.peer_tracker import PeerTracker

TELEMETRY_DATA = "telemetryData"
PERFORMANCE_METRICS = "performanceMetrics"
PERFORMANCE_UPDATE = "performanceUpdate"
UDP_CONNECTIONS = "udpConnections"
SIMULATOR_STATUS = "simulatorStatus"
STRESS_MODE_CHANGED = "stressModeChanged"


class Subscriber(Protocol):
    def send(self, event: str, payload) -> None:
        ...


class Broadcaster:
    """Explicit subscriber registry with connect/disconnect hooks.

    Delivery to each subscriber is the subscriber's own concern; a
    subscriber whose send() raises is disconnected.
    """

    def __init__(
        self,
        metrics: MetricsAggregator,
        peer_tracker: PeerTracker,
        simulator_status: Optional[Callable[[], dict]] = None,
    ):
        self.metrics = metrics
        self.peer_tracker = peer_tracker
        self.simulator_status = simulator_status or (
            lambda: {"isRunning": False, "isPaused": False}
        )
        self._subscribers = set()
        self._lock = threading.Lock()
        self.send_errors = 0

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def connect(self, subscriber: Subscriber):
        """Send the current state to a new subscriber, then add it to the set."""
        subscriber.send(PERFORMANCE_METRICS, self.metrics.snapshot().to_dict())
        subscriber.send(UDP_CONNECTIONS, self._peers_payload())
        subscriber.send(SIMULATOR_STATUS, self.simulator_status())
        with self._lock:
            if subscriber in self._subscribers:
                return
            self._subscribers.add(subscriber)
        total = self.metrics.subscriber_connected()
        print(f"[Broadcaster] Client connected - Total connections: {total}")

    def disconnect(self, subscriber: Subscriber):
        with self._lock:
            if subscriber not in self._subscribers:
                return
            self._subscribers.discard(subscriber)
        total = self.metrics.subscriber_disconnected()
        print(f"[Broadcaster] Client disconnected - Total connections: {total}")

    def publish(self, event: EnrichedTelemetryEvent):
        self.emit(TELEMETRY_DATA, event.to_dict())

    def publish_status(self):
        """Periodic tick: push metrics and peers, then run the liveness sweep."""
        self.metrics.refresh_memory()
        self.emit(PERFORMANCE_UPDATE, self.metrics.snapshot().to_dict())
        self.emit(UDP_CONNECTIONS, self._peers_payload())
        self.peer_tracker.sweep()

    def emit(self, event: str, payload):
        with self._lock:
            subscribers = list(self._subscribers)
        failed = []
        for subscriber in subscribers:
            try:
                subscriber.send(event, payload)
            except Exception as e:
                self.send_errors += 1
                print(f"[Broadcaster] Send error ({event}): {type(e).__name__}: {e}")
                failed.append(subscriber)
        for subscriber in failed:
            self.disconnect(subscriber)

    def _peers_payload(self):
        return [peer.to_dict() for peer in self.peer_tracker.snapshot()]
