"""
Application settings

Values are read from the environment (or a local .env file).
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    API_TITLE: str = "Catalog & Orders API"
    API_VERSION: str = "1.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "catalog"

    # CORS - comma-separated string or JSON array
    ALLOWED_ORIGINS: Optional[str] = "*"

    LOG_LEVEL: str = "INFO"

    # Name written into createdBy / lastModifiedBy
    AUDIT_USER: str = "system"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 2000

    def get_log_level(self) -> str:
        """LOG_LEVEL as the upper-case name logging expects"""
        return (self.LOG_LEVEL or "INFO").strip().upper()

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["*"]

        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
