from fastapi import APIRouter, Depends

from telemetry_relay.api.dependencies import get_relay

router = APIRouter()


@router.get("/udp/connections")
async def udp_connections(relay=Depends(get_relay)):
    return relay.connections_info()


@router.get("/metrics")
async def metrics(relay=Depends(get_relay)):
    return relay.metrics_info()


@router.get("/health")
async def health(relay=Depends(get_relay)):
    return relay.health()
