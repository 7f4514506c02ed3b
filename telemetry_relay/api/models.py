from pydantic import BaseModel


class StressProfileConfig(BaseModel):
    interval: float
    jitter: float


class SimulatorControlResponse(BaseModel):
    success: bool
    status: str
    isRunning: bool
    isPaused: bool


class SimulatorStatusResponse(BaseModel):
    isRunning: bool
    isPaused: bool
    currentMode: str
    config: StressProfileConfig


class StressModeResponse(BaseModel):
    success: bool
    mode: str
    config: StressProfileConfig
