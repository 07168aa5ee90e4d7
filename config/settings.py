"""
Configuration settings for the self-service KYC client.
Uses pydantic-settings for environment variable management.
"""

import os
import logging
from pathlib import Path
from typing import Optional, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend API
    API_URL: str = Field("http://localhost:8000", description="Base URL of the KYC backend API")
    REQUEST_TIMEOUT: Optional[float] = Field(
        None,
        description="Request timeout in seconds (unset = no explicit timeout)"
    )

    # Upload service selection
    UPLOAD_SERVICE: Literal["existing", "new"] = Field(
        "existing",
        description="Which upload backend to use: 'existing' (multipart) or 'new' (base64 Lambda)"
    )
    UPLOAD_API_URL: str = Field(
        "https://tbbnyplmp6.execute-api.us-east-2.amazonaws.com/dev/upload",
        description="Upload endpoint of the new (Lambda) service"
    )
    UPLOAD_HEALTH_URL: str = Field(
        "https://tbbnyplmp6.execute-api.us-east-2.amazonaws.com/dev/health",
        description="Health endpoint of the new (Lambda) service"
    )
    DEFAULT_USER_ID: str = Field("1", description="User id sent when the caller provides none")

    # Upload progress simulation
    PROGRESS_TICK_SECONDS: float = Field(0.2, description="Interval between simulated progress ticks")
    PROGRESS_RESET_SECONDS: float = Field(1.0, description="Delay before progress resets to 0")

    # File and media limits
    MAX_FILE_SIZE_MB: int = Field(10, description="Maximum file upload size in MB")
    VIDEO_MIN_DURATION: int = Field(5, description="Minimum video recording length in seconds")
    VIDEO_MAX_DURATION: int = Field(10, description="Maximum video recording length in seconds")
    CAMERA_INDEX: int = Field(0, description="OpenCV camera device index")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def validate_settings() -> tuple[bool, list[str]]:
    """
    Validate that the configured values are usable.
    Returns (is_valid, list of invalid settings).
    """
    issues = []
    s = settings

    if not s.API_URL.startswith(("http://", "https://")):
        issues.append(f"API_URL must be an http(s) URL, got: {s.API_URL}")

    if s.UPLOAD_SERVICE == "new" and not s.UPLOAD_API_URL.startswith("https://"):
        issues.append("UPLOAD_API_URL should be an https URL when UPLOAD_SERVICE=new")

    if s.VIDEO_MIN_DURATION > s.VIDEO_MAX_DURATION:
        issues.append("VIDEO_MIN_DURATION is greater than VIDEO_MAX_DURATION")

    if s.MAX_FILE_SIZE_MB <= 0:
        issues.append("MAX_FILE_SIZE_MB must be positive")

    return len(issues) == 0, issues


def configure_logging(level: Optional[str] = None):
    """Apply LOG_LEVEL to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Load .env from project root
env_path = get_project_root() / ".env"
if env_path.exists():
    from dotenv import load_dotenv
    load_dotenv(env_path)

# On Streamlit Cloud, secrets are in .streamlit/secrets.toml
# Load them into os.environ so pydantic-settings can find them
try:
    import streamlit as st
    for key, value in st.secrets.items():
        if isinstance(value, str) and key not in os.environ:
            os.environ[key] = value
except Exception:
    # No secrets.toml outside Streamlit Cloud
    pass

# Global settings instance
settings = Settings()
