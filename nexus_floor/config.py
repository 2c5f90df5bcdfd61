"""
Service configuration.

Credentials and infrastructure settings come from the environment (prefix
``NEXUS_``) or a local ``.env`` file. Engine tuning lives in
``SimulationConfig`` and can be changed at runtime through the API.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    """Environment-driven settings for notification channels and storage."""

    model_config = SettingsConfigDict(
        env_prefix="NEXUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Log instead of delivering
    notification_mock_mode: bool = False

    # Meta WhatsApp Business API
    whatsapp_api_version: str = "v18.0"
    whatsapp_phone_id: Optional[str] = None
    whatsapp_access_token: Optional[SecretStr] = None

    # Outbound email
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_app_password: Optional[SecretStr] = None
    email_from_name: str = "Nexus Floor Control"

    request_timeout_seconds: float = 10.0

    database_path: str = ":memory:"
    alert_log_retention: int = 1000

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
