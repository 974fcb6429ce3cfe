"""
Carbon Tracker — Configuration
Energy model constants, scheduler timings, storage and tracked hosts.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Application ──────────────────────────────────────────────────────
    APP_NAME: str = "Carbon Tracker"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # ── Database ─────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./carbon_tracker.db"

    # ── Energy Model ─────────────────────────────────────────────────────
    WATTS_PER_TOKEN: float = 0.003  # Wh per token
    CARBON_INTENSITY: float = 0.475  # g CO2e per Wh
    CHARS_PER_TOKEN: int = 4

    # ── Scheduler ────────────────────────────────────────────────────────
    DEBOUNCE_SECONDS: float = 1.0
    INIT_POLL_SECONDS: float = 1.0
    INIT_MAX_ATTEMPTS: int = 30

    # ── Observed Page ────────────────────────────────────────────────────
    TRACKED_HOSTS: str = "chat.openai.com,chatgpt.com"
    TRACKED_PAGE_URL: str = ""
    PAGE_POLL_SECONDS: float = 2.0
    PAGE_FETCH_TIMEOUT: float = 20.0

    # ── Web Activity ─────────────────────────────────────────────────────
    VISIT_EMISSIONS_G: float = 0.6
    SEARCH_EMISSIONS_G: float = 0.2

    # ── Carbon Tracking ──────────────────────────────────────────────────
    CARBON_TRACKING_ENABLED: bool = True

    @property
    def tracked_hosts(self) -> list:
        return [h.strip().lower() for h in self.TRACKED_HOSTS.split(",") if h.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
