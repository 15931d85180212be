"""
Configuration settings for the Axent Finance API
"""

import os
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings"""

    # App Info
    APP_NAME: str = "Axent Finance API"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Server functions for the Axent AI finance dashboard"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./axent.db")

    # Supabase (auth collaborator)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Hosted AI gateway (OpenAI-compatible chat completions)
    AI_GATEWAY_URL: str = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1")
    AI_GATEWAY_API_KEY: str = os.getenv("AI_GATEWAY_API_KEY", "")
    AI_MODEL: str = os.getenv("AI_MODEL", "google/gemini-2.5-flash")

    # Market data
    COINMARKETCAP_API_KEY: str = os.getenv("COINMARKETCAP_API_KEY", "")
    COINMARKETCAP_URL: str = "https://pro-api.coinmarketcap.com/v1"
    FINNHUB_API_KEY: str = os.getenv("FINNHUB_API_KEY", "")
    FINNHUB_URL: str = "https://finnhub.io/api/v1"
    FX_API_URL: str = os.getenv("FX_API_URL", "https://api.frankfurter.app/latest")
    FALLBACK_EXCHANGE_RATE: float = 15700.0
    CONTEXT_FALLBACK_EXCHANGE_RATE: float = 16000.0
    HTTP_TIMEOUT: float = 15.0

    # File Upload
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_TYPES: list = ["image/jpeg", "image/png", "image/jpg", "image/webp"]

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()


# Validate critical settings
def validate_settings(current: Optional[Settings] = None):
    """Validate that critical settings are configured"""
    current = current or settings
    errors = []

    if current.ENVIRONMENT == "production":
        if not current.AI_GATEWAY_API_KEY:
            errors.append("AI_GATEWAY_API_KEY must be set for the AI functions")

        if not current.SUPABASE_URL or not current.SUPABASE_ANON_KEY:
            errors.append("SUPABASE_URL and SUPABASE_ANON_KEY must be set for authentication")

        if current.DATABASE_URL.startswith("sqlite"):
            errors.append("PostgreSQL database required in production")

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Run validation
if settings.ENVIRONMENT == "production":
    validate_settings()
