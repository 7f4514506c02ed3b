"""Self-rescheduling UDP sender driven by the current stress profile."""

import random
import threading
from enum import Enum
from typing import Callable, Optional

from telemetry_relay.data_interface.telemetry_data import TelemetryRecord
from telemetry_relay.data_interface.wire import encode_packet
from telemetry_relay.network.network_type import NetworkEnum, NetworkHandler

from .flight_telemetry_simulator import FlightTelemetrySimulator
from .stress_profiles import DEFAULT_PROFILE, StressProfile, get_profile


class GeneratorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class TrafficGenerator:
    """
    Sends synthetic telemetry to the listener on a jittered schedule.

    Each tick is a cancellable threading.Timer. Every start/resume opens a
    new generation; ticks from an older generation are ignored, so once
    stop() or pause() returns no further datagram is sent.

    Args:
        target_host (str): Address of the listener.
        target_port (int): Port of the listener.
        profile_name (str): Initial stress profile.
        simulator (FlightTelemetrySimulator): Record source.
        on_send (callable): Called with every record successfully sent.
    """

    def __init__(
        self,
        target_host: str,
        target_port: int,
        profile_name: str = DEFAULT_PROFILE,
        simulator: Optional[FlightTelemetrySimulator] = None,
        rng: Optional[random.Random] = None,
        on_send: Optional[Callable[[TelemetryRecord], None]] = None,
    ):
        self.target_host = target_host
        self.target_port = target_port
        self.simulator = simulator or FlightTelemetrySimulator()
        self.rng = rng or random.Random()
        self.on_send = on_send

        self._profile = get_profile(profile_name)
        self._state = GeneratorState.STOPPED
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()
        self._network_handler = NetworkHandler(NetworkEnum.NONE, NetworkEnum.UDP)
        self.socket = None

        self.packets_sent = 0
        self.send_errors = 0

    @property
    def state(self) -> GeneratorState:
        return self._state

    @property
    def profile(self) -> StressProfile:
        return self._profile

    def select_profile(self, name: str) -> StressProfile:
        """Swap the current profile; the next tick picks it up."""
        profile = get_profile(name)
        self._profile = profile
        print(f"[Generator] Stress mode set to {profile.name} {profile.to_dict()}")
        return profile

    def status(self) -> dict:
        state = self._state
        return {
            "isRunning": state != GeneratorState.STOPPED,
            "isPaused": state == GeneratorState.PAUSED,
        }

    def start(self) -> dict:
        """Begin sending. No-op while already running."""
        with self._lock:
            if self._state == GeneratorState.RUNNING:
                return self.status()
            if self.socket is None:
                self.socket = self._network_handler.get_output_network_socket()
            print(
                f"[Generator] Sending to {self.target_host}:{self.target_port} "
                f"in {self._profile.name} mode"
            )
            self._enter_running()
            return self.status()

    def stop(self) -> dict:
        with self._lock:
            self._state = GeneratorState.STOPPED
            self._cancel_pending()
            if self.socket is not None:
                self.socket.close()
                self.socket = None
            return self.status()

    def pause(self) -> dict:
        with self._lock:
            if self._state == GeneratorState.RUNNING:
                self._state = GeneratorState.PAUSED
                self._cancel_pending()
            return self.status()

    def resume(self) -> dict:
        """Continue a paused generator. Does nothing if it was never started."""
        with self._lock:
            if self._state == GeneratorState.PAUSED:
                self._enter_running()
            return self.status()

    def _enter_running(self):
        self._state = GeneratorState.RUNNING
        self._generation += 1
        self._schedule(0.0, self._generation)

    def _cancel_pending(self):
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self, delay_s: float, generation: int):
        timer = threading.Timer(delay_s, self._tick, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def next_delay_ms(self, profile: StressProfile) -> float:
        return profile.interval + self.rng.uniform(0, profile.jitter)

    def _tick(self, generation: int):
        with self._lock:
            if generation != self._generation or self._state != GeneratorState.RUNNING:
                return
            profile = self._profile
            delay_ms = self.next_delay_ms(profile)
            self._send(self.simulator.generate_telemetry_data())
            self._schedule(delay_ms / 1000.0, generation)

    def _send(self, record: TelemetryRecord):
        try:
            self.socket.sendto(
                encode_packet(record), (self.target_host, self.target_port)
            )
        except OSError as e:
            self.send_errors += 1
            print(f"[Generator] Error sending UDP message: {e}")
            return
        self.packets_sent += 1
        if self.on_send:
            self.on_send(record)
