from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ATTENDANCE_SERVICE_", env_file=".env", extra="ignore")

    app_name: str = "attendance-service"
    host: str = "0.0.0.0"
    port: int = 3004
    log_level: str = "info"
    api_prefix: str = "/api/v1"

    student_history_default_limit: int = 50
    # roles allowed to mark and correct attendance
    attendance_taker_roles: List[str] = ["ADMIN", "TEACHER"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
