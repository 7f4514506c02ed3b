"""Websocket client feeding the relay's fan-out stream into a QueueConsumer."""

import argparse
import json
import threading
import time
from typing import Optional

from websockets.exceptions import ConnectionClosed, InvalidURI
from websockets.sync.client import connect

from telemetry_relay.data_interface.telemetry_data import EnrichedTelemetryEvent

from .queue_consumer import QueueConsumer


class TelemetryStreamClient(threading.Thread):
    """Receives relay events and keeps the latest status for display."""

    def __init__(self, url: str, consumer: QueueConsumer):
        super().__init__(daemon=True)
        self.url = url
        self.consumer = consumer
        self.websocket = None
        self.connection_status = "connecting"
        self.performance_metrics: Optional[dict] = None
        self.udp_connections: list = []
        self.simulator_status = {"isRunning": False, "isPaused": False}
        self.stress_mode = "normal"
        self.decode_errors = 0
        self._connected = threading.Event()

    def run(self):
        try:
            with connect(self.url) as websocket:
                self.websocket = websocket
                self.connection_status = "connected"
                self._connected.set()
                print(f"[Client] Connected to {self.url}")
                for message in websocket:
                    self.dispatch(message)
        except ConnectionClosed:
            pass
        except (OSError, InvalidURI) as e:
            print(f"[Client] Connection to {self.url} failed: {e}")
        finally:
            self.connection_status = "disconnected"
            self.websocket = None
            self._connected.set()

    def wait_connected(self, timeout: Optional[float] = None) -> bool:
        return self._connected.wait(timeout) and self.connection_status == "connected"

    def dispatch(self, message):
        try:
            frame = json.loads(message)
            event, data = frame["event"], frame.get("data")
        except (ValueError, TypeError, KeyError) as e:
            self.decode_errors += 1
            print(f"[Client] Ignoring malformed frame: {e}")
            return

        if event == "telemetryData":
            try:
                telemetry = EnrichedTelemetryEvent.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                self.decode_errors += 1
                print(f"[Client] Ignoring malformed telemetry: {e}")
                return
            self.consumer.on_event(telemetry)
        elif event in ("performanceMetrics", "performanceUpdate"):
            self.performance_metrics = data
        elif event == "udpConnections":
            self.udp_connections = data
        elif event == "simulatorStatus":
            self.simulator_status = data
        elif event == "stressModeChanged":
            self.stress_mode = data["mode"]

    def send_control(self, event: str, data=None):
        if self.websocket is None:
            raise ConnectionError("Not connected to the relay")
        self.websocket.send(json.dumps({"event": event, "data": data}))

    def change_stress_mode(self, mode: str):
        self.send_control("changeStressMode", mode)

    def start_simulator(self):
        self.send_control("simulatorStart")

    def stop_simulator(self):
        self.send_control("simulatorStop")

    def pause_simulator(self):
        self.send_control("simulatorPause")

    def resume_simulator(self):
        self.send_control("simulatorResume")

    def close(self):
        if self.websocket is not None:
            self.websocket.close()
        self.join(timeout=2.0)


def main():
    parser = argparse.ArgumentParser(description="Telemetry relay stream client")
    parser.add_argument("--url", type=str, default="ws://localhost:8001")
    parser.add_argument(
        "--interval", type=float, default=1.0, help="Seconds between stats lines"
    )
    parser.add_argument("--stress-mode", type=str, help="Stress mode to request")
    args = parser.parse_args()

    consumer = QueueConsumer()
    client = TelemetryStreamClient(args.url, consumer)
    consumer.start()
    client.start()
    if args.stress_mode and client.wait_connected(timeout=5.0):
        client.change_stress_mode(args.stress_mode)

    try:
        while client.is_alive():
            time.sleep(args.interval)
            stats = consumer.stats()
            points = consumer.chart.points()
            last = points[-1].record if points else None
            speeds = (
                f"speed=({last.speed_x:.1f}, {last.speed_y:.1f}, {last.speed_z:.1f})"
                if last
                else "speed=n/a"
            )
            print(
                f"[Client] mode={client.stress_mode} received={stats.received} "
                f"processed={stats.processed} dropped={stats.dropped} "
                f"skipped={stats.skipped} queue={stats.queue_size} "
                f"avg={stats.avg_processing_time:.3f}ms {speeds}"
            )
    except KeyboardInterrupt:
        print("\nShutting down client...")
    finally:
        client.close()
        consumer.stop()


if __name__ == "__main__":
    main()
