"""
Configuration management using Pydantic settings.
Handles database URL, JWT secrets, payment gateway keys, SMTP and OTP settings.
"""

from pydantic import validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from the environment or a .env file."""

    # Application configuration
    app_name: str = "BuildEx Marketplace API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    auto_create_tables: bool = True

    # Individual database components (must precede database_url)
    postgres_db: str = "buildex"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "db"
    postgres_port: int = 5432

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/buildex"

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    jwt_refresh_token_expire_days: int = 7

    # Payment gateway configuration
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: Optional[str] = None
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    razorpay_timeout_seconds: float = 15.0
    payment_currency: str = "INR"
    company_name: str = "BuildEx"
    pending_payment_ttl_minutes: int = 60

    # Email (SMTP) configuration
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_from: str = "BuildEx <noreply@buildex.com>"
    email_use_tls: bool = True

    # OTP configuration
    otp_ttl_seconds: int = 600
    redis_url: Optional[str] = None

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8080

    @validator("database_url", pre=True)
    def validate_database_url(cls, v, values):
        """Build database URL from components if not provided directly."""
        if not v or v == "postgresql+asyncpg://postgres:postgres@db:5432/buildex":
            user = values.get("postgres_user", "postgres")
            password = values.get("postgres_password", "postgres")
            host = values.get("postgres_host", "db")
            port = values.get("postgres_port", 5432)
            db = values.get("postgres_db", "buildex")
            return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        # Ensure async driver is used
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @validator("jwt_secret_key", pre=True)
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @property
    def smtp_configured(self) -> bool:
        """SMTP credentials are present; otherwise mail is only logged."""
        return bool(self.email_user and self.email_password)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
