# src/familycare_web/config.py

import logging
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# .env is at the service root, two levels up from src/familycare_web/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

AUTH_API_PREFIX = "/auth/v1"


class ConfigurationError(RuntimeError):
    """Raised when the deployment is missing settings a code path cannot run without."""


def load_env_file(path: Path = ENV_FILE_PATH) -> bool:
    if path.exists():
        load_dotenv(dotenv_path=path, override=True)
        logger.info("Loaded .env file from: %s", path)
        return True
    logger.info(".env file not found at %s. Relying on environment variables.", path)
    return False


class Settings(BaseSettings):
    # === Hosted identity provider (Supabase GoTrue) ===
    SUPABASE_URL: Optional[AnyHttpUrl] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    # === Session cookie encryption ===
    SESSION_ENCRYPTION_KEY: Optional[str] = None
    APP_ENV: Literal["development", "production"] = "development"

    # === Application URLs and OAuth ===
    APP_BASE_URL: AnyHttpUrl = "http://localhost:8000"
    # Pydantic first sees the raw comma-separated string from the env,
    # the validator below turns it into List[str]
    OAUTH_PROVIDERS: Union[str, List[str]] = "google,kakao"

    # === Guest mode for public demos ===
    PUBLIC_TEST_MODE: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_identity_provider_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)

    @property
    def auth_base_url(self) -> str:
        if not self.is_identity_provider_configured:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must both be set.")
        return str(self.SUPABASE_URL).rstrip("/") + AUTH_API_PREFIX

    @property
    def oauth_callback_url(self) -> str:
        return str(self.APP_BASE_URL).rstrip("/") + "/auth/callback"

    @field_validator("SUPABASE_ANON_KEY", "SESSION_ENCRYPTION_KEY", mode="before")
    @classmethod
    def blank_as_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("APP_ENV", mode="before")
    @classmethod
    def normalise_app_env(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("PUBLIC_TEST_MODE", mode="before")
    @classmethod
    def parse_public_test_mode(cls, v: Any) -> Any:
        # Only an explicit "off" disables guest mode
        if isinstance(v, str):
            return v.strip().lower() != "off"
        return v

    @field_validator("OAUTH_PROVIDERS", mode="before")
    @classmethod
    def parse_comma_separated_providers(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            return [p.strip().lower() for p in v.split(",") if p.strip()]
        if isinstance(v, (list, tuple)):
            return [str(p).strip().lower() for p in v if str(p).strip()]
        raise TypeError("OAUTH_PROVIDERS: Expected a comma-separated string or a list.")

    @model_validator(mode="after")
    def check_providers(self) -> "Settings":
        if not self.OAUTH_PROVIDERS:
            raise ValueError("OAUTH_PROVIDERS must name at least one provider.")
        return self
