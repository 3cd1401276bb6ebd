"""Bridge configuration — env-driven, loaded once at process start.

Centralized config using pydantic-settings.  Reads from a .env file and
RECORDBUS_* environment variables.  There is no runtime reconfiguration:
the bridge reads these values when it starts and keeps them.
"""

from __future__ import annotations

import json
from typing import Annotated, Any
from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class BridgeConfig(BaseSettings):
    """Bridge configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RECORDBUS_BROKER_URL=mqtt://localhost:1883
        export RECORDBUS_COLLECTIONS=boutiques,categories,customers
        export RECORDBUS_DIRECTUS_URL=http://directus:8055

    Or via .env file::

        RECORDBUS_TOPIC_PREFIX=directus
        RECORDBUS_LOOKUP_DELAY_SECONDS=0.5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RECORDBUS_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Broker
    broker_url: str = "mqtt://emqx:1883"
    client_id_prefix: str = "directus_client_"
    mqtt_qos: int = 0
    mqtt_keepalive: int = 60

    # Routing
    topic_prefix: str = "directus"
    collections: Annotated[list[str], NoDecode] = [
        "boutiques",
        "categories",
        "customers",
    ]

    # Actor resolution
    creator_field: str = "user_created"
    lookup_delay_seconds: float = 0.2

    # Record store (Directus REST); no URL means no lookup collaborator
    directus_url: str | None = None
    directus_token: str = ""
    lookup_timeout_seconds: float = 5.0

    # Concurrency
    max_concurrency: int = 1  # keys processed in parallel within one event
    max_workers: int = 4  # events processed in parallel by the service

    @field_validator("collections", mode="before")
    @classmethod
    def _split_collections(cls, value: Any) -> Any:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                value = json.loads(text)
            else:
                value = text.split(",")
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if str(v).strip()]
        return value

    @field_validator("mqtt_qos")
    @classmethod
    def _check_qos(cls, value: int) -> int:
        if value not in (0, 1, 2):
            raise ValueError("mqtt_qos must be 0, 1 or 2")
        return value

    @property
    def broker_host(self) -> str:
        return urlsplit(self.broker_url).hostname or "localhost"

    @property
    def broker_port(self) -> int:
        parts = urlsplit(self.broker_url)
        if parts.port:
            return parts.port
        return 8883 if self.broker_tls else 1883

    @property
    def broker_tls(self) -> bool:
        return urlsplit(self.broker_url).scheme in ("mqtts", "ssl")
