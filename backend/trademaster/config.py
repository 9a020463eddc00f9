"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from trademaster.core.exceptions import ConfigurationError

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "TradeMaster API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database (PostgreSQL)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "trademaster_db"
    POSTGRES_USER: str = "trademaster"
    POSTGRES_PASSWORD: str = "trademaster"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Tokens. Secrets have no default: an unset secret refuses to sign or verify.
    JWT_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "trademaster"
    JWT_AUDIENCE: str = "trademaster-users"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Password hashing
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6

    # Password reset
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    RESET_TOKEN_BACKEND: str = "database"  # database | memory
    FRONTEND_URL: str = "http://localhost:3000"

    # Rate Limiting
    SIGNIN_RATE_LIMIT_PER_MINUTE: int = 10
    SIGNIN_RATE_LIMIT_PER_HOUR: int = 50
    FORGOT_PASSWORD_RATE_LIMIT_PER_HOUR: int = 10
    REFRESH_RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:3000","http://example.com"]
            CORS_ORIGINS=http://localhost:3000,http://example.com
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed]
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed if str(origin).strip()]

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def _check_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return value

    @field_validator("RESET_TOKEN_BACKEND")
    @classmethod
    def _check_reset_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in {"database", "memory"}:
            raise ValueError("RESET_TOKEN_BACKEND must be 'database' or 'memory'")
        return value

    def get_log_file(self) -> str:
        p = self.LOG_FILE
        if not p or p.startswith(".."):
            return str(_BASE_DIR / "logs" / "app.log")
        return p

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Refuse to start with missing or weak signing secrets.

        Missing secrets are rejected in every environment. Outside development
        the secrets must also be long enough and distinct from each other.

        Raises:
            ConfigurationError: If a secret is unset or insecure.
        """
        if not self.JWT_SECRET:
            raise ConfigurationError("JWT_SECRET is not set")
        if not self.JWT_REFRESH_SECRET:
            raise ConfigurationError("JWT_REFRESH_SECRET is not set")

        if self.ENVIRONMENT.lower() in {"development", "test"}:
            return

        if len(self.JWT_SECRET) < 32 or len(self.JWT_REFRESH_SECRET) < 32:
            raise ConfigurationError(
                "JWT secrets must be at least 32 characters (e.g. `openssl rand -hex 32`)."
            )
        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ConfigurationError("JWT_SECRET and JWT_REFRESH_SECRET must differ")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
