"""Application configuration via environment variables."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

from banklink.errors import ConfigurationError


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./payments.db"
    log_level: str = "INFO"

    # TrueLayer client credentials
    client_id: str = ""
    client_secret: str = ""
    credentials_file: Optional[str] = None  # JSON: {"client_id": ..., "client_secret": ...}

    auth_base_url: str = "https://auth.truelayer-sandbox.com"
    pay_base_url: str = "https://pay-api.truelayer-sandbox.com"
    http_timeout_seconds: float = 20.0
    token_safety_margin_seconds: float = 10.0

    callback_redirect_uri: str = "http://localhost:3000/api/callback"
    frontend_result_url: str = "http://localhost:80/index.html"
    cors_origin: str = "http://localhost"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str


def load_credentials(config: Settings) -> Credentials:
    """
    Resolve the client credentials.

    Values from ``credentials_file`` win over the environment when the
    file is configured.

    Raises:
        ConfigurationError: If the credentials file cannot be read or parsed.
    """
    if not config.credentials_file:
        return Credentials(client_id=config.client_id, client_secret=config.client_secret)

    path = Path(config.credentials_file)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Unable to load credentials file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Credentials file {path} must contain a JSON object")

    return Credentials(
        client_id=str(data.get("client_id", config.client_id)),
        client_secret=str(data.get("client_secret", config.client_secret)),
    )
