from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from telemetry_relay import __version__
from telemetry_relay.api.routers import monitoring, simulator
from telemetry_relay.config import Settings


def create_app(relay, settings: Settings = None) -> FastAPI:
    """Build the HTTP control surface around a TelemetryRelay."""
    settings = settings or relay.settings
    app = FastAPI(title="Telemetry Relay", version=__version__)
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(monitoring.router)
    app.include_router(simulator.router)
    return app
