from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from telemetry_relay.api.dependencies import get_relay
from telemetry_relay.api.models import (
    SimulatorControlResponse,
    SimulatorStatusResponse,
    StressModeResponse,
)
from telemetry_relay.errors import InvalidStressModeError

router = APIRouter()


@router.post("/simulator/start", response_model=SimulatorControlResponse)
async def start_simulator(relay=Depends(get_relay)):
    return relay.start_simulator()


@router.post("/simulator/stop", response_model=SimulatorControlResponse)
async def stop_simulator(relay=Depends(get_relay)):
    return relay.stop_simulator()


@router.post("/simulator/pause", response_model=SimulatorControlResponse)
async def pause_simulator(relay=Depends(get_relay)):
    return relay.pause_simulator()


@router.post("/simulator/resume", response_model=SimulatorControlResponse)
async def resume_simulator(relay=Depends(get_relay)):
    return relay.resume_simulator()


@router.get("/simulator/status", response_model=SimulatorStatusResponse)
async def simulator_status(relay=Depends(get_relay)):
    return relay.simulator_info()


@router.post(
    "/stress-mode/{mode}",
    response_model=StressModeResponse,
    responses={400: {"description": "Invalid stress mode"}},
)
async def change_stress_mode(mode: str, relay=Depends(get_relay)):
    try:
        return relay.select_stress_mode(mode)
    except InvalidStressModeError as e:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid stress mode",
                "availableModes": e.available_modes,
            },
        )
