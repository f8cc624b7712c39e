# backend/agenda/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # project root


class Settings(BaseSettings):
    database_url: str
    redis_url: str

    # Legacy fixed offset used when a business has no timezone configured
    default_utc_offset_hours: int = -3

    slot_step_minutes: int = 30
    fallback_service_duration: int = 30

    reminder_check_interval: int = 300  # seconds
    reminder_loop_enabled: bool = True
    whatsapp_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
