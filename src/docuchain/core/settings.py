"""Application settings and configuration.

This module defines all configuration options for the DocuChain registry.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="DocuChain Registry", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    workers: int = Field(default=1, alias="WORKERS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./docuchain.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Session tokens: one secret per token kind
    access_token_secret: str = Field(alias="ACCESS_TOKEN_SECRET")
    refresh_token_secret: str = Field(alias="REFRESH_TOKEN_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(default=30, alias="REFRESH_TOKEN_EXPIRE_DAYS")

    # Wallet challenge and lockout policy
    nonce_max_age_minutes: int = Field(default=1500, alias="NONCE_MAX_AGE_MINUTES")
    lockout_threshold: int = Field(default=5, alias="LOCKOUT_THRESHOLD")
    lockout_minutes: int = Field(default=15, alias="LOCKOUT_MINUTES")
    login_history_limit: int = Field(default=10, ge=1, alias="LOGIN_HISTORY_LIMIT")

    # One-time codes
    otc_backend: Literal["memory", "redis"] = Field(default="memory", alias="OTC_BACKEND")
    otc_ttl_seconds: int = Field(default=300, alias="OTC_TTL_SECONDS")
    otc_max_attempts: int = Field(default=3, alias="OTC_MAX_ATTEMPTS")
    otc_sweep_interval_seconds: float = Field(default=60.0, alias="OTC_SWEEP_INTERVAL_SECONDS")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Ledger gateway
    ledger_base_url: str = Field(default="http://localhost:8545", alias="LEDGER_BASE_URL")
    ledger_timeout_seconds: float = Field(default=10.0, alias="LEDGER_TIMEOUT_SECONDS")

    # Content-addressed store (IPFS Kubo RPC)
    content_store_url: str = Field(default="http://localhost:5001", alias="CONTENT_STORE_URL")
    content_store_timeout_seconds: float = Field(
        default=15.0,
        alias="CONTENT_STORE_TIMEOUT_SECONDS",
    )
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1, alias="MAX_UPLOAD_BYTES")

    # Outbound email
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_from_email: str | None = Field(default=None, alias="SMTP_FROM_EMAIL")
    smtp_timeout_seconds: float = Field(default=30.0, alias="SMTP_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()  # type: ignore[call-arg]
