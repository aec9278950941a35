"""Configuration settings for the account service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./account_service.db")

    # Sessions
    TOKEN_EXPIRY_DAYS: int = int(os.getenv("TOKEN_EXPIRY_DAYS", "7"))
    TOKEN_CLEANUP_INTERVAL_SECONDS: int = int(os.getenv("TOKEN_CLEANUP_INTERVAL_SECONDS", "3600"))
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Upload
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    PROFILE_DIR: str = os.getenv("PROFILE_DIR", "profile")
    MAX_IMAGE_SIZE_BYTES: int = int(os.getenv("MAX_IMAGE_SIZE_BYTES", str(2 * 1024 * 1024)))

    # Mail
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "25"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "false").lower() == "true"
    MAIL_FROM: str = os.getenv("MAIL_FROM", "no-reply@account-service.local")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @property
    def profile_folder(self) -> str:
        return os.path.join(self.UPLOAD_DIR, self.PROFILE_DIR)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.APP_ENV == "production" and not self.SMTP_USERNAME:
            errors.append("SMTP_USERNAME is not set - activation and reset e-mails may be rejected")
        if self.BCRYPT_ROUNDS < 10 and self.APP_ENV == "production":
            errors.append("BCRYPT_ROUNDS is below 10 - password hashes are cheap to brute-force")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
