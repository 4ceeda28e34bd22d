from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr, field_validator
from typing import Any
from dotenv import load_dotenv
import json

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    @field_validator("CORS_ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            if not v.strip():
                return ["*"]

            # JSON list or comma separated string
            if v.strip().startswith("[") and v.strip().endswith("]"):
                try:
                    loaded = json.loads(v)
                    if isinstance(loaded, list):
                        return loaded
                except json.JSONDecodeError:
                    pass

            return [item.strip() for item in v.split(",") if item.strip()]

        if not isinstance(v, list):
            return ["*"]

        return v

    @field_validator("BACKFILL_PAGE_SIZE")
    @classmethod
    def positive_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("BACKFILL_PAGE_SIZE must be >= 1")
        return v

    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Customer Record Service"
    SERVICE_NAME: str = "customer_service"

    # Infrastructure
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_SOCKET_TIMEOUT: float | None = 5.0  # Per-operation deadline (seconds)
    CORS_ALLOWED_ORIGINS: Any = ["*"]

    # Index maintenance
    BACKFILL_PAGE_SIZE: int = 200

    # Security
    ADMIN_TOKEN: SecretStr = SecretStr("admin-secret-99")

settings = Settings()
