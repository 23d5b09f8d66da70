"""Runtime configuration for the engine driver (overridable through CHESSDRIVER_* environment variables)."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DriverSettings(BaseSettings):
    # seconds an engine gets to answer a heartbeat before the session is declared stalled
    heartbeat_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"
    # mirror every protocol line to the debug sink
    trace_io: bool = True
    # seconds to wait for a process to exit after `quit` before killing it
    quit_grace_period: float = Field(default=5.0, ge=0)

    model_config = SettingsConfigDict(env_prefix="CHESSDRIVER_")


settings = DriverSettings()
