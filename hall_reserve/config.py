from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "iHub Hall Reservation"
    APP_ENV:  str = "development"
    APP_DEBUG: bool = True
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 8000

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str  = "sqlite:///./hall_reserve.db"
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # ─── JWT ───────────────────────────────────────────────────────────────────
    SECRET_KEY:                  str = "change-me-in-production"
    ALGORITHM:                   str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # ─── Magic links & mail ────────────────────────────────────────────────────
    APP_BASE_URL:         str   = "http://localhost:3000/"
    MAIL_API_URL:         str   = ""
    MAIL_TIMEOUT_SECONDS: float = 10.0

    FALLBACK_ADMIN_IC_EMAIL:    str = "admin_ic@snsgroups.com"
    FALLBACK_COORDINATOR_EMAIL: str = "coordinator@snsgroups.com"
    FALLBACK_HEAD_OPS_EMAIL:    str = "head@snsgroups.com"
    DEFAULT_SUBMITTER_EMAIL:    str = "staff@snsgroups.com"

    # ─── Workflow ──────────────────────────────────────────────────────────────
    AVAILABILITY_CHECK_DELAY_MS: int  = 400
    MAX_ADVANCE_BOOKING_DAYS:    int  = 730
    NOTIFY_ALL_STAGES_ON_SUBMIT: bool = True
    SEQUENTIAL_APPROVAL:         bool = False
    ENFORCE_SLOT_ON_WRITE:       bool = False

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
