# porteria/config.py
"""
Station configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

import os
from pydantic_settings import BaseSettings
from typing import Optional

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    # ── Local store ───────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./parqueadero.sqlite"

    # ── Web reservations store (foreign, shared with the booking site) ────
    RESERVATIONS_DATABASE_URL: Optional[str] = None   # e.g. mysql+pymysql://root:pw@localhost/parqueadero_web
    RESERVATION_LOOKBACK_HOURS: int = 2
    RESERVATION_EXPIRED_STATE: str = "Expirada"

    # ── Central / master servers ──────────────────────────────────────────
    CENTRAL_API_URL: str = "http://127.0.0.1:3001/api/admin"
    MASTER_API_URL: str = "http://127.0.0.1:3001/api/maestra"
    STATION_ID: str = "Porteria_Local"
    CENTRAL_PULL_TIMEOUT_SECONDS: float = 3.0
    MASTER_PUSH_TIMEOUT_SECONDS: float = 5.0

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3002

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to require X-API-Key on the local API

    # ── Timers ────────────────────────────────────────────────────────────
    ENABLE_BACKGROUND_JOBS: bool = True
    CENTRAL_SYNC_ON_STARTUP: bool = True
    RESERVATION_EXPIRY_INTERVAL_SECONDS: int = 600   # 10 min
    LIVE_STATUS_INTERVAL_SECONDS: int = 10

    # ── Lot rules ─────────────────────────────────────────────────────────
    DEFAULT_OPENING_BASE: float = 50000
    CAPACITY_HARD_BLOCK: bool = True

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = os.path.join(_REPO_ROOT, "logs")

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
