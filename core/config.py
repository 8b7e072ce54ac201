# ==================================================================================
# core/config.py: ChronoDesk Configuration (Pydantic v2 settings)
# ==================================================================================
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError
from typing import List, Optional
import base64
import hashlib
import logging
import sys

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: str = "sqlite:///./chronodesk.db"

    # ------------------------
    # SECURITY CONFIG
    # ------------------------
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REMEMBER_ME_EXPIRE_DAYS: int = 7

    REFRESH_TOKEN_SECRET: Optional[str] = None
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Fernet key for first/last name and phone columns
    FIELD_ENCRYPTION_KEY: Optional[str] = None

    # ------------------------
    # PLAN CONFIG
    # ------------------------
    AUTO_PLAN_DURATION_MONTHS: int = 1
    PLAN_SELF_HEAL_ON_REQUEST: bool = True

    # ------------------------
    # FRONTEND CONFIG
    # ------------------------
    FRONTEND_URL: str = "http://localhost:5173"
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def IS_PRODUCTION(self) -> bool:
        """Convenience helper to check if running in production"""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def refresh_secret(self) -> str:
        """Refresh tokens never share the access-token signing key."""
        if self.REFRESH_TOKEN_SECRET:
            return self.REFRESH_TOKEN_SECRET
        return hashlib.sha256(f"refresh:{self.SECRET_KEY}".encode()).hexdigest()

    @property
    def field_encryption_key(self) -> bytes:
        """
        Fernet key used by the credential store.
        Falls back to a key derived from SECRET_KEY for local development.
        """
        if self.FIELD_ENCRYPTION_KEY:
            return self.FIELD_ENCRYPTION_KEY.encode()
        digest = hashlib.sha256(self.SECRET_KEY.encode()).digest()
        return base64.urlsafe_b64encode(digest)

    # ------------------------
    # Pydantic v2 Settings
    # ------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# ------------------------
# Global Settings Loader
# ------------------------
try:
    settings = Settings()
    logger.info(f"✅ Environment loaded: {settings.ENVIRONMENT}, Debug: {settings.DEBUG}")
except ValidationError as e:
    logger.error("❌ Environment configuration error: missing or invalid settings!")
    logger.error(e)
    sys.exit(1)
