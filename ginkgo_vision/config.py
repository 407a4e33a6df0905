# ginkgo_vision/config.py
import os
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


class Settings(BaseSettings):
    """Application configuration based on environment variables"""

    # API configuration
    API_PREFIX: str = "/api"

    # CORS configuration (Frontend URLs)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite dev server
        "http://localhost:8080",
    ]

    # Gemini credentials and model
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Low-to-moderate temperature keeps the classification stable
    ANALYSIS_TEMPERATURE: float = 0.4

    # Upper bound for a single model round-trip (in seconds)
    ANALYSIS_TIMEOUT_SECONDS: float = 60.0

    # Debug mode
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Return settings with caching"""
    return Settings()
