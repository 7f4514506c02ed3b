"""Main entry point for the telemetry relay."""

import argparse
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from dotenv import load_dotenv

from telemetry_relay.api.main import create_app
from telemetry_relay.config import Settings
from telemetry_relay.data_interface.telemetry_data import format_timestamp
from telemetry_relay.errors import InvalidStressModeError, TransportBindError
from telemetry_relay.input.telemetry_receiver import TelemetryListener
from telemetry_relay.metrics.metrics_monitor import MetricsAggregator
from telemetry_relay.network.network_type import get_network_interfaces
from telemetry_relay.output.broadcaster import (
    SIMULATOR_STATUS,
    STRESS_MODE_CHANGED,
    Broadcaster,
)
from telemetry_relay.output.websocket_broadcaster import WebSocketBroadcaster
from telemetry_relay.simulators.stress_profiles import STRESS_PROFILES
from telemetry_relay.simulators.traffic_generator import TrafficGenerator
from telemetry_relay.tracking.peer_tracker import PeerTracker


class TelemetryRelay:
    """Coordinates listening, tracking, simulating and broadcasting."""

    def __init__(self, settings: Settings, enable_websocket: bool = True):
        self.settings = settings
        self.enable_websocket = enable_websocket
        self.running = False

        self.peer_tracker = PeerTracker(liveness_window_s=settings.LIVENESS_WINDOW_S)
        self.metrics = MetricsAggregator(
            memory_threshold_mb=settings.MEMORY_THRESHOLD_MB
        )
        self.generator = TrafficGenerator(
            target_host=self._loopback_for(settings.UDP_HOST),
            target_port=settings.UDP_PORT,
            profile_name=settings.STRESS_MODE,
        )
        self.broadcaster = Broadcaster(
            self.metrics, self.peer_tracker, simulator_status=self.generator.status
        )
        self.listener = TelemetryListener(
            host=settings.UDP_HOST,
            port=settings.UDP_PORT,
            peer_tracker=self.peer_tracker,
            metrics=self.metrics,
            callback=self.broadcaster.publish,
        )
        self.websocket_server: Optional[WebSocketBroadcaster] = None

        self._stop_event = threading.Event()
        self._status_thread: Optional[threading.Thread] = None
        self._autostart_timer: Optional[threading.Timer] = None

        self._controls = {
            "simulatorStart": lambda data: self.start_simulator(),
            "simulatorStop": lambda data: self.stop_simulator(),
            "simulatorPause": lambda data: self.pause_simulator(),
            "simulatorResume": lambda data: self.resume_simulator(),
            "changeStressMode": self.select_stress_mode,
        }

    @staticmethod
    def _loopback_for(host: str) -> str:
        return "127.0.0.1" if host in ("0.0.0.0", "") else host

    @property
    def udp_port(self) -> int:
        if self.listener.bound_address:
            return self.listener.bound_address[1]
        return self.settings.UDP_PORT

    def start(self):
        """Bind the listener and start background tasks.

        Raises:
            TransportBindError: if the UDP or websocket port cannot be bound.
        """
        print("Starting Telemetry Relay...")
        self.listener.start()
        self.generator.target_port = self.udp_port

        if self.enable_websocket:
            self.websocket_server = WebSocketBroadcaster(
                self.broadcaster,
                host=self.settings.WS_HOST,
                port=self.settings.WS_PORT,
                on_control=self.handle_control,
            )
            self.websocket_server.start()
            self.websocket_server.wait_ready(timeout=5.0)
            if self.websocket_server.start_error is not None:
                error = self.websocket_server.start_error
                self.websocket_server = None
                self.listener.stop()
                raise TransportBindError(
                    self.settings.WS_HOST, self.settings.WS_PORT, error
                )

        self.running = True
        self._stop_event.clear()
        self._status_thread = threading.Thread(target=self._status_loop, daemon=True)
        self._status_thread.start()

        if self.settings.AUTOSTART_SIMULATOR:
            self._autostart_timer = threading.Timer(
                self.settings.AUTOSTART_DELAY_S, self._autostart
            )
            self._autostart_timer.daemon = True
            self._autostart_timer.start()

    def stop(self):
        """Stop all components."""
        if self._autostart_timer:
            self._autostart_timer.cancel()
            self._autostart_timer = None
        self.generator.stop()
        self.running = False
        self._stop_event.set()
        if self._status_thread:
            self._status_thread.join(timeout=2.0)
            self._status_thread = None
        if self.websocket_server:
            self.websocket_server.stop()
            self.websocket_server = None
        self.listener.stop()
        print("Telemetry Relay stopped.")

    def _autostart(self):
        self.start_simulator()
        print(
            f"Started UDP Telemetry Simulator: {format_timestamp(datetime.now(timezone.utc))}"
        )
        print(f"Initial stress mode: {self.generator.profile.name}")

    def _status_loop(self):
        while not self._stop_event.wait(self.settings.STATUS_INTERVAL_S):
            try:
                self.broadcaster.publish_status()
            except Exception as e:
                print(f"Status broadcast failed: {e}")

    def handle_control(self, event: str, data=None):
        """Route a control frame received from a subscriber."""
        control = self._controls.get(event)
        if control is None:
            print(f"Unknown control event: {event}")
            return None
        try:
            return control(data)
        except InvalidStressModeError as e:
            print(e)
            return None

    def _simulator_result(self, status: str) -> dict:
        state = self.generator.status()
        self.broadcaster.emit(SIMULATOR_STATUS, state)
        return {"success": True, "status": status, **state}

    def start_simulator(self) -> dict:
        self.generator.start()
        return self._simulator_result("started")

    def stop_simulator(self) -> dict:
        self.generator.stop()
        return self._simulator_result("stopped")

    def pause_simulator(self) -> dict:
        self.generator.pause()
        return self._simulator_result("paused")

    def resume_simulator(self) -> dict:
        self.generator.resume()
        return self._simulator_result("resumed")

    def select_stress_mode(self, mode) -> dict:
        """Switch the generator's stress profile.

        Raises:
            InvalidStressModeError: for a name outside STRESS_PROFILES; the
                current profile is left unchanged.
        """
        profile = self.generator.select_profile(mode)
        payload = {"mode": profile.name, "config": profile.to_dict()}
        self.broadcaster.emit(STRESS_MODE_CHANGED, payload)
        return {"success": True, **payload}

    def available_modes(self):
        return list(STRESS_PROFILES.keys())

    def connections_info(self) -> dict:
        interfaces = get_network_interfaces()
        return {
            "connections": [p.to_dict() for p in self.peer_tracker.snapshot()],
            "networkInterfaces": interfaces,
            "serverInfo": {
                "port": self.udp_port,
                "availableAddresses": [
                    f"{intf['address']}:{self.udp_port}" for intf in interfaces
                ],
            },
        }

    def simulator_info(self) -> dict:
        profile = self.generator.profile
        return {
            **self.generator.status(),
            "currentMode": profile.name,
            "config": profile.to_dict(),
        }

    def metrics_info(self) -> dict:
        memory = self.metrics.process.memory_info()
        return {
            **self.metrics.snapshot().to_dict(),
            "uptime": self.metrics.uptime_ms(),
            "messagesPerSecond": self.metrics.messages_per_second(),
            "memoryUsage": {"rss": memory.rss, "vms": memory.vms},
            "currentStressMode": self.generator.profile.name,
            "simulatorStatus": self.generator.status(),
        }

    def health(self) -> dict:
        return {
            "status": "Server is running",
            "timestamp": format_timestamp(datetime.now(timezone.utc)),
            "performance": self.metrics.snapshot().to_dict(),
            "listening": self.listener.running,
            "simulator": self.generator.status(),
        }


def parse_settings(env_file: Optional[str]) -> Settings:
    """Load an optional .env file and build settings from the environment."""
    if env_file:
        load_dotenv(dotenv_path=env_file)
    return Settings()


def main():
    parser = argparse.ArgumentParser(description="UDP Telemetry Relay")
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to a .env file with relay settings",
    )
    args = parser.parse_args()

    settings = parse_settings(args.env_file)
    relay = TelemetryRelay(settings)
    try:
        relay.start()
    except TransportBindError as e:
        print(f"Failed to start telemetry relay: {e}")
        sys.exit(1)

    print(f"Server is running on port {settings.PORT}")
    print(f"WebSocket server is running on port {settings.WS_PORT}")
    print(f"Performance metrics available at: http://localhost:{settings.PORT}/metrics")
    print(f"UDP connections info at: http://localhost:{settings.PORT}/udp/connections")
    try:
        uvicorn.run(
            create_app(relay, settings),
            host=settings.HTTP_HOST,
            port=settings.PORT,
            log_level="warning",
        )
    finally:
        relay.stop()


if __name__ == "__main__":
    main()
