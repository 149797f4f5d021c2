"""Service configuration loaded from KIOSK_* environment variables."""

from __future__ import annotations

from datetime import tzinfo
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class KioskSettings(BaseSettings):
    """Kioskdesk helpdesk settings.

    All fields are read from environment variables with the ``KIOSK_`` prefix.
    For example, ``KIOSK_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per line instead of colored text."""

    # -- Document store --------------------------------------------------------
    document_store: Literal["postgres", "memory"] = "postgres"
    """``memory`` keeps records in-process; useful for local demos only."""

    database_url: str | None = None
    """PostgreSQL connection string (asyncpg or psycopg).  Required for ``postgres``."""

    # -- Dates -----------------------------------------------------------------
    timezone: str | None = None
    """IANA zone used for calendar-day boundaries.  Server local time when unset."""

    # -- Object storage (attachments) ------------------------------------------
    s3_endpoint: str | None = None
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    s3_path_style: bool = False
    """Use path-style addressing (required by MinIO and some S3-compatible services)."""

    presigned_url_expires: int = 900
    """Lifetime of upload/download URLs in seconds."""

    # -- Auth ------------------------------------------------------------------
    jwt_secret: SecretStr | None = None
    """Key used to verify bearer tokens (HMAC secret or PEM public key)."""

    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000

    # -- Helpers ---------------------------------------------------------------

    def resolve_timezone(self) -> tzinfo | None:
        """Return the configured zone, or None for server local time."""
        if self.timezone:
            return ZoneInfo(self.timezone)
        return None

    @property
    def s3_configured(self) -> bool:
        return all([self.s3_endpoint, self.s3_bucket, self.s3_access_key, self.s3_secret_key])


def get_settings() -> KioskSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> KioskSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return KioskSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
