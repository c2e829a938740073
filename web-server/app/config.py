"""web-server configuration.

The web-server is the "traffic source" of the capture demo:
- It answers a health check.
- It proxies user lookups and post creation to a public JSON test API.

Everything is controlled by environment variables so the service can run
anywhere (laptop, container, CI) without code changes. Field names map to
variables case-insensitively: `upstream_base_url` <- `UPSTREAM_BASE_URL`.

The upstream URL and the proxy / TLS-trust overrides are read here and handed
to the app explicitly (see `create_app(settings)`), instead of letting the HTTP
client silently pick up process-wide proxy settings. That makes the
interception point something you configure on purpose.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Everything the app needs at startup, in one explicit object."""

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # --- Upstream ------------------------------------------------------------
    upstream_base_url: str = Field(
        default="https://jsonplaceholder.typicode.com",
        min_length=1,
        description="Base URL of the upstream JSON API (swap for a local test double).",
    )
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)

    # Point this at the intercepting proxy, e.g. "http://127.0.0.1:8888".
    upstream_proxy_url: str | None = None

    # PEM bundle with the proxy's root certificate, so HTTPS through it still verifies.
    upstream_ca_bundle: str | None = None

    upstream_verify_tls: bool = True
    upstream_trust_env: bool = Field(
        default=False,
        description="Honor HTTP(S)_PROXY / SSL_CERT_FILE from the environment.",
    )

    # --- Errors / logging ----------------------------------------------------
    # Upstream failure messages can contain hostnames; fine for a demo, not for prod.
    expose_error_details: bool = True
    log_level: str = "INFO"

    # --- Server --------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("upstream_proxy_url", "upstream_ca_bundle", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


def load_settings() -> Settings:
    """Build `Settings` from the environment (and `.env`, if present)."""
    return Settings()
