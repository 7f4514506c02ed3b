import math
import random
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from telemetry_relay.data_interface.telemetry_data import TelemetryRecord


class FlightTelemetrySimulator:
    """
    Generates plausible flight telemetry for testing purposes.

    Altitude and speeds drift sinusoidally with bounded turbulence, heading
    sweeps once around the compass every 6 minutes and the battery drains
    linearly from 100% at one percent every 100 seconds.

    Args:
        rng (random.Random): Source of the random perturbations.
        clock (callable): Wall clock returning epoch seconds.
        monotonic (callable): Monotonic clock used for battery drain.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
        monotonic: Optional[Callable[[], float]] = None,
    ):
        self.rng = rng or random.Random()
        self._clock = clock or time.time
        self._monotonic = monotonic or time.monotonic
        self.start_time = self._monotonic()

    def _noise(self, amplitude: float) -> float:
        return (self.rng.random() - 0.5) * amplitude

    def battery_percentage(self) -> float:
        elapsed_s = max(0.0, self._monotonic() - self.start_time)
        return max(0.0, 100.0 - elapsed_s / 100.0)

    def generate_telemetry_data(self) -> TelemetryRecord:
        """Generate one telemetry sample for the current instant"""
        now = self._clock()

        base_speed = 450 + math.sin(now / 10) * 100
        turbulence = self._noise(50)

        return TelemetryRecord(
            timestamp=datetime.fromtimestamp(now, tz=timezone.utc),
            altitude=35000 + math.sin(now / 20) * 5000 + self._noise(1000),
            speed_x=base_speed + turbulence + self._noise(30),
            speed_y=base_speed * 0.8 + turbulence + self._noise(25),
            speed_z=base_speed * 0.6 + turbulence + self._noise(20),
            heading=now % 360,
            latitude=40.7128 + math.sin(now / 50) * 0.1,
            longitude=-74.0060 + math.cos(now / 50) * 0.1,
            temperature=15 + math.sin(now / 30) * 10 + self._noise(5),
            battery_percentage=self.battery_percentage(),
        )
