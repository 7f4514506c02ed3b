"""Named timing profiles for the synthetic traffic generator."""

from dataclasses import dataclass

from telemetry_relay.errors import InvalidStressModeError


@dataclass(frozen=True)
class StressProfile:
    """Send timing: base interval plus up to `jitter` extra, in milliseconds."""

    name: str
    interval: float
    jitter: float

    def to_dict(self) -> dict:
        return {"interval": self.interval, "jitter": self.jitter}


STRESS_PROFILES = {
    "normal": StressProfile("normal", interval=200, jitter=0),
    "high_frequency": StressProfile("high_frequency", interval=50, jitter=10),
    "burst": StressProfile("burst", interval=20, jitter=50),
    "variable": StressProfile("variable", interval=100, jitter=100),
    "kafka_simulation": StressProfile("kafka_simulation", interval=30, jitter=20),
}

DEFAULT_PROFILE = "normal"


def get_profile(name: str) -> StressProfile:
    """Look up a profile by name.

    Raises:
        InvalidStressModeError: if the name is not one of STRESS_PROFILES.
    """
    try:
        return STRESS_PROFILES[name]
    except (KeyError, TypeError):
        raise InvalidStressModeError(name, STRESS_PROFILES.keys()) from None
