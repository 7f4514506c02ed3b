from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HTTP_HOST: str = "0.0.0.0"
    PORT: int = 8000
    UDP_HOST: str = "0.0.0.0"
    UDP_PORT: int = 8080
    WS_HOST: str = "0.0.0.0"
    WS_PORT: int = 8001
    CORS_ORIGINS: list[str] = ["*"]
    STRESS_MODE: str = "normal"
    AUTOSTART_SIMULATOR: bool = True
    AUTOSTART_DELAY_S: float = 2.0
    STATUS_INTERVAL_S: float = 5.0
    LIVENESS_WINDOW_S: float = 30.0
    MEMORY_THRESHOLD_MB: float | None = None

    model_config = {"env_prefix": ""}
