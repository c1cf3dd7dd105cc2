"""
Centralized configuration management for the Job Tracker API.
All environment variables, credentials, and configuration settings are managed here.
"""
import json
import secrets
from typing import Annotated, Optional, List
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with validation and type hints."""

    # =============================================================================
    # APPLICATION SETTINGS
    # =============================================================================
    app_name: str = "Job Tracker API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False

    # =============================================================================
    # SERVER SETTINGS
    # =============================================================================
    host: str = "0.0.0.0"
    port: int = 5000
    reload_on_change: bool = False
    api_docs_enabled: bool = True

    # =============================================================================
    # SECURITY SETTINGS
    # =============================================================================
    # Signing secret for access tokens. Never sent to the client.
    secret_key: str = secrets.token_urlsafe(32)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60  # 7 days

    # =============================================================================
    # DATABASE SETTINGS
    # =============================================================================
    database_url: str = "sqlite:///./job_tracker.db"
    database_echo: bool = False

    # =============================================================================
    # LOGGING SETTINGS
    # =============================================================================
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    # =============================================================================
    # GENERATIVE EMAIL SETTINGS (optional)
    # =============================================================================
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    ai_temperature: float = 0.7
    ai_max_output_tokens: int = 400
    ai_request_timeout: int = 30  # seconds

    # =============================================================================
    # CORS SETTINGS
    # =============================================================================
    cors_enabled: bool = True
    # CORS_ORIGINS may be a JSON array or a comma-separated list
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:5173", "http://localhost:3000"]
    frontend_url: Optional[str] = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =============================================================================
    # CONFIGURATION LOADING
    # =============================================================================
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.testing or self.environment.lower() == "testing"

    def get_database_url(self) -> str:
        """Get database URL with appropriate settings for environment."""
        if self.is_testing():
            return "sqlite:///:memory:"
        return self.database_url

    def get_allowed_origins(self) -> List[str]:
        """Origins allowed to make browser cross-origin calls."""
        if self.is_development():
            return ["*"]
        origins = list(self.cors_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    def validate_required_settings(self) -> List[str]:
        """Validate that all required settings are properly configured."""
        missing = []

        if self.is_production():
            if not self.secret_key or len(self.secret_key) < 32:
                missing.append("SECRET_KEY must be at least 32 characters in production")

            if self.debug:
                missing.append("DEBUG must be False in production")

            if self.database_url.startswith("sqlite"):
                missing.append("DATABASE_URL must point to a PostgreSQL database in production")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            missing.append(f"Invalid LOG_LEVEL: {self.log_level}")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    The settings object is built once per process and treated as read-only.
    """
    return Settings()
