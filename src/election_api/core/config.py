"""Election service settings, read from the environment (or a local ``.env``).

Only ``DATABASE_URL`` and ``JWT_SECRET_KEY`` are required; everything else
has a default suited to a single polling-day deployment.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SCHEMA_NAME = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    """Runtime configuration for the API, the CLI and migrations."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Ballot ledger storage
    database_url: str = Field(description="SQLAlchemy async URL, postgresql+asyncpg:// or sqlite+aiosqlite://")
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema holding the election tables, for side-by-side test elections",
    )

    # Tokens for returning officers and voters
    jwt_secret_key: str = Field(min_length=32, description="HMAC key for official and voter tokens (32+ chars)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(default=30, gt=0, description="Official token lifetime")
    voter_token_expire_minutes: int = Field(default=15, gt=0, description="Voting session token lifetime")

    # Casting and result materialization
    cast_vote_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Deadline for the admission checks and ballot insert; the commit runs after it"
    )
    recompute_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Deadline for the scope-key recompute that follows a cast"
    )
    reconcile_on_startup: bool = Field(
        default=False, description="Rebuild tallies and winners from the ledger before serving requests"
    )
    result_cache_ttl_seconds: int = Field(default=30, gt=0, description="Lifetime of cached tallies and winners")

    # Logging
    log_level: str = Field(default="INFO", description="Minimum Loguru level")
    log_dir: str | None = Field(default=None, description="When set, also write a daily-rotated log file here")

    # HTTP surface
    environment: str = Field(default="production", description="Deployment name reported by /health")
    api_v1_prefix: str = Field(default="/api/v1", description="Mount point of the v1 routers")
    cors_origins: str = Field(default="", description="Comma-separated origins of results dashboards")
    cors_origin_regex: str = Field(default="", description="Regex alternative to cors_origins")
    rate_limit_per_minute: int = Field(default=200, gt=0, description="Requests per client IP per minute")
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Headers carrying the client IP behind a proxy, highest priority first",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is not None and not _SCHEMA_NAME.match(v):
            msg = f"Invalid database_schema {v!r}: must match {_SCHEMA_NAME.pattern}"
            raise ValueError(msg)
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        return _split_csv(self.trusted_proxy_headers)


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()  # type: ignore[call-arg]
