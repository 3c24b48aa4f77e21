"""Configuration management for the dialectic storage service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


DEFAULT_STAGE_DIR_NAMES: dict[str, str] = {
    "thesis": "1_thesis",
    "antithesis": "2_antithesis",
    "synthesis": "3_synthesis",
    "parenthesis": "4_parenthesis",
    "paralysis": "5_paralysis",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Environment
    STORAGE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Content storage
    SB_CONTENT_STORAGE_BUCKET: str = Field(
        default="dialectic-contributions",
        description="Bucket holding every generated artifact",
    )
    MAX_UPLOAD_ATTEMPTS: int = Field(
        default=5, ge=1, description="Max attempts for filename collision resolution"
    )
    SIGNED_URL_EXPIRY_SECONDS: int = Field(
        default=3600, ge=1, description="Lifetime of signed download URLs"
    )

    # Stage slug -> ordinal directory name (JSON object in the environment)
    STAGE_DIR_NAMES: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_STAGE_DIR_NAMES),
        description="Ordered directory names for known stages",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
