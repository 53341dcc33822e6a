from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_GATEWAY_", env_file=".env", extra="ignore")

    app_name: str = "api-gateway"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    environment: str = "development"

    # {subdomain}.{base_domain} is a school; anything else is platform traffic
    base_domain: str = "example.com"
    platform_aliases: List[str] = ["www"]
    # read x-context / x-subdomain from the client instead of the host (local development only)
    dev_context_headers: bool = False

    jwt_access_secret: str = ""
    jwt_algorithm: str = "HS256"

    rate_limit_per_minute: int = 100

    auth_service_url: Optional[AnyHttpUrl] = None
    auth_service_timeout: float = 30.0
    school_service_url: Optional[AnyHttpUrl] = None
    school_service_timeout: float = 30.0
    profile_service_url: Optional[AnyHttpUrl] = None
    profile_service_timeout: float = 30.0
    attendance_service_url: Optional[AnyHttpUrl] = None
    attendance_service_timeout: float = 30.0

    tenant_lookup_retries: int = 2
    tenant_lookup_base_delay: float = 0.2
    health_check_timeout: float = 5.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
