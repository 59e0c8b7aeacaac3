"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./ticketing.db")

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # Payment window
    PAYMENT_WINDOW_MINUTES: int = int(os.getenv("PAYMENT_WINDOW_MINUTES", "120"))
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = int(os.getenv("EXPIRY_SWEEP_INTERVAL_SECONDS", "60"))

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Payment proof uploads
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    MAX_PROOF_SIZE: int = 5 * 1024 * 1024  # 5MB
    ALLOWED_PROOF_FORMATS: List[str] = ["JPEG", "PNG", "WEBP"]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
