from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any, List, Optional
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from a JSON list or a comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    APP_NAME: str = "Innovation Hub API"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: Any = ["*"]

    # Document store
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: Optional[str] = None
    DATABASE_TIMEOUT_MS: int = 5000

    # Admin session
    ADMIN_PASSWORD: Optional[str] = None
    SECRET_KEY: str = "dev-secret-key-change-me"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "admin-auth"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24

    # Media host (Cloudinary)
    CLOUD_NAME: Optional[str] = None
    API_KEY: Optional[str] = None
    API_SECRET: Optional[str] = None
    UPLOAD_FOLDER: str = "iisf"

    # Incubation review pipeline
    ENFORCE_INCUBATION_TRANSITIONS: bool = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: Any) -> List[str]:
        return parse_cors_origins(v)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


settings = Settings()
