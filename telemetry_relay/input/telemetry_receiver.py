"""Telemetry listener for UDP input from simulators or real senders."""

import itertools
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from telemetry_relay.data_interface.telemetry_data import EnrichedTelemetryEvent
from telemetry_relay.data_interface.wire import MAX_DATAGRAM_SIZE, decode_packet
from telemetry_relay.errors import TelemetryDecodeError, TransportBindError
from telemetry_relay.metrics.metrics_monitor import MetricsAggregator
from telemetry_relay.network.network_type import NetworkEnum, NetworkHandler
from telemetry_relay.tracking.peer_tracker import PeerTracker


class TelemetryListener:
    """Receives telemetry datagrams, tracks their origin and hands them on."""

    def __init__(
        self,
        host: str,
        port: int,
        peer_tracker: PeerTracker,
        metrics: MetricsAggregator,
        callback: Optional[Callable[[EnrichedTelemetryEvent], None]] = None,
        buffer_size: int = MAX_DATAGRAM_SIZE,
    ):
        self.host = host
        self.port = port
        self.peer_tracker = peer_tracker
        self.metrics = metrics
        self.callback = callback
        self.buffer_size = buffer_size

        self.running = False
        self.socket: Optional[socket.socket] = None
        self.receive_thread: Optional[threading.Thread] = None
        self.bound_address: Optional[Tuple[str, int]] = None

        self._sequence = itertools.count(1)
        self._network_handler = NetworkHandler(NetworkEnum.UDP, NetworkEnum.NONE)

    def start(self) -> Tuple[str, int]:
        """Bind the UDP endpoint and start the receive loop.

        Raises:
            TransportBindError: if the address cannot be bound.
        """
        sock = self._network_handler.get_input_network_socket()
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise TransportBindError(self.host, self.port, e) from e

        self.socket = sock
        self.bound_address = sock.getsockname()[:2]
        self.peer_tracker.mark_listening(*self.bound_address)
        print(
            f"[Listener] UDP server listening on "
            f"{self.bound_address[0]}:{self.bound_address[1]}"
        )

        self.running = True
        self.receive_thread = threading.Thread(target=self._receive_loop)
        self.receive_thread.daemon = True
        self.receive_thread.start()
        return self.bound_address

    def stop(self):
        """Stop receiving telemetry data."""
        if not self.running:
            return
        self.running = False
        self._wake_receive_loop()
        if self.receive_thread:
            self.receive_thread.join(timeout=1.0)
            self.receive_thread = None
        if self.socket:
            self.socket.close()
            self.socket = None

    def _wake_receive_loop(self):
        # recvfrom has no timeout, so unblock it with an empty datagram.
        host, port = self.bound_address
        if host == "0.0.0.0":
            host = "127.0.0.1"
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.sendto(b"", (host, port))
        except OSError as e:
            print(f"[Listener] Could not wake receive loop: {e}")

    def _receive_loop(self):
        """Main receive loop."""
        while self.running:
            try:
                data, addr = self.socket.recvfrom(self.buffer_size)
            except OSError as e:
                if self.running:
                    print(f"[Listener] Socket error: {e}")
                break
            arrival = time.perf_counter()
            if not self.running:
                break
            try:
                self.handle_datagram(data, addr, arrival)
            except Exception as e:
                print(f"[Listener] Receive error (skipping packet): {e}")

    def handle_datagram(
        self, data: bytes, addr: Tuple[str, int], arrival: Optional[float] = None
    ) -> Optional[EnrichedTelemetryEvent]:
        """Decode one datagram and publish it. Returns None if it was dropped."""
        if arrival is None:
            arrival = time.perf_counter()
        address, port = addr[0], addr[1]

        try:
            record = decode_packet(data)
        except TelemetryDecodeError as e:
            self.metrics.record_decode_error()
            print(f"[Listener] Error parsing UDP message from {address}:{port}: {e}")
            return None

        peer = self.peer_tracker.upsert(address, port)
        processing_latency = (time.perf_counter() - arrival) * 1000
        self.metrics.record_receive(processing_latency)

        event = EnrichedTelemetryEvent(
            record=record,
            processing_latency=processing_latency,
            sequence_id=next(self._sequence),
            source_key=peer.id,
        )
        if self.callback:
            self.callback(event)
        self.metrics.record_send()
        return event
