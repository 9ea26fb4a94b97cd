from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Console Gate"

    # Upstream APIs (console backend and SaaS billing backend)
    CONSOLE_API_URL: str = "http://localhost:3001/api"
    SAAS_API_URL: str = "http://localhost:4000/api"
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    # Expiration alert fires when the countdown is within +/- this many days
    EXPIRATION_WINDOW_DAYS: int = 5

    PUBLIC_PATHS: List[str] = ["/health", "/docs", "/openapi.json"]
    SESSION_COOKIE_NAME: str = "console_session_id"

    # Per-session state (pass tickets, "remind me later" flags) is dropped after
    # this long without activity, and capped at this many sessions
    SESSION_IDLE_TTL_SECONDS: int = 8 * 60 * 60
    SESSION_MAX_ENTRIES: int = 10000

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True

settings = Settings()
