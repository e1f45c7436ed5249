# src/login_consent_bridge/config.py

import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("login_consent_bridge.config")

# Determine the base directory of this config file
# .env is at the project root, two levels up from src/login_consent_bridge/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=True)
    logger.info("Loaded .env file from: %s", ENV_FILE_PATH)
else:
    logger.debug(".env file not found at %s. Relying on environment variables.", ENV_FILE_PATH)


class Settings(BaseSettings):
    # === Upstream services ===
    # Identity Service (Kratos public API) and Authorization Service (Hydra admin API).
    # The Ory variable names (KRATOS_PUBLIC_URL, HYDRA_ADMIN_URL) are accepted too.
    IDENTITY_SERVICE_URL: str = Field(
        validation_alias=AliasChoices("IDENTITY_SERVICE_URL", "KRATOS_PUBLIC_URL")
    )
    AUTHZ_SERVICE_URL: str = Field(
        validation_alias=AliasChoices("AUTHZ_SERVICE_URL", "HYDRA_ADMIN_URL")
    )
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0
    UPSTREAM_DEBUG: bool = False

    # === Browser-facing details ===
    SESSION_COOKIE_NAME: str = "ory_kratos_session"
    UI_DIST_DIR: Optional[Path] = None

    # === Process ===
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("IDENTITY_SERVICE_URL", "AUTHZ_SERVICE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            if not v:
                raise ValueError("upstream base URL must not be empty")
        return v

    @field_validator("UPSTREAM_TIMEOUT_SECONDS")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("UPSTREAM_TIMEOUT_SECONDS must be positive")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


try:
    settings = Settings()
except Exception as e:
    logger.error("Error instantiating Settings: %s", e)
    logger.error(
        "Please ensure IDENTITY_SERVICE_URL and AUTHZ_SERVICE_URL are set in your .env file or environment variables."
    )
    raise
