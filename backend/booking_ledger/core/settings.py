from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DB_URL: str = "postgresql://postgres:password@db:5432/traveldb"
    DB_ECHO: bool = False  # Set to True for SQL query logging in development

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Number of connections to maintain in pool
    DB_MAX_OVERFLOW: int = 20  # Maximum overflow connections beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Timeout in seconds to get connection from pool
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Environment
    ENVIRONMENT: str = "development"

    # Sessions
    SESSION_TTL_HOURS: int = 24  # Fixed lifetime from issuance, no renewal
    SESSION_COOKIE_NAME: str = "session_id"
    SESSION_COOKIE_SECURE: bool = False

    # Password Security
    PASSWORD_HASH_SCHEMES: List[str] = ["pbkdf2_sha256"]

    # Destination images
    IMAGE_BASE_URL: str = "/images"
    IMAGE_FALLBACK_EXTENSION: str = "jpg"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "app.log"  # Empty string disables the file handler

    # Metrics
    ENABLE_METRICS: bool = True

    # CORS
    ALLOWED_ORIGINS: Union[list, str] = ["http://localhost:3000", "http://localhost:3001"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @property
    def session_cookie_secure(self) -> bool:
        """Cookies are always marked secure in production"""
        return self.SESSION_COOKIE_SECURE or self.ENVIRONMENT == "production"

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_HOURS * 60 * 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
