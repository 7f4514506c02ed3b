"""UDP telemetry relay: ingest, peer tracking, metrics and websocket fan-out."""

__version__ = "1.0.0"
