"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string
        secret_key: Secret key for JWT token encoding
        algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Access token expiration time in minutes

        # Medical record storage settings
        encryption_key: Secret the file encryption key is derived from
        upload_dir: Directory holding encrypted files and their metadata
        retain_superseded_files: Keep replaced files on disk so old versions stay readable

        # Runtime settings
        log_level: Root logging level
        cors_origins: Origins allowed by the CORS middleware
    """
    # Database settings
    database_url: str = "sqlite:///./telehealth.db"

    # JWT settings
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Medical record storage settings
    encryption_key: str = "your-encryption-key"
    upload_dir: str = "uploads"
    retain_superseded_files: bool = False

    # Runtime settings
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

    @property
    def upload_path(self) -> Path:
        """Upload directory resolved against the process working directory"""
        return Path.cwd() / self.upload_dir


# Create settings instance
settings = Settings()
