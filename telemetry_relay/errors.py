"""Exception types raised by the relay components."""


class RelayError(Exception):
    """Base class for relay errors."""


class TelemetryDecodeError(RelayError):
    """A datagram could not be decoded into a telemetry record."""


class TransportBindError(RelayError):
    """The UDP endpoint could not be bound."""

    def __init__(self, host: str, port: int, reason: Exception):
        super().__init__(f"Could not bind UDP {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class InvalidStressModeError(RelayError):
    """An unknown stress mode was requested."""

    def __init__(self, mode: str, available_modes):
        self.mode = mode
        self.available_modes = list(available_modes)
        super().__init__(
            f"Invalid stress mode '{mode}', available modes: "
            f"{', '.join(self.available_modes)}"
        )


class MetricsInvariantError(RelayError):
    """A metrics counter was driven into an impossible state."""
