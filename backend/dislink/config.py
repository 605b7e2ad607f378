"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - A secret left unset disables what it guards (no usable default)
    - get_settings() is cached (lru_cache), single instance per process
    - Policy knobs of the QR core (code validity, message bound, email
      pattern) are named settings, not literals in services

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box
      with docker-compose and the test suite
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

# RFC-simplified: local@domain.tld, no whitespace, one @.
DEFAULT_EMAIL_PATTERN = r"[^@\s]+@[^@\s]+\.[A-Za-z]{2,}"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://dislink:dislink@db:5432/dislink"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql://, asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Connection codes
    code_validity_hours: float = 24
    code_token_bytes: int = 24
    supersede_previous_codes: bool = True

    # Invitations
    max_invitation_message_length: int = 500
    email_validation_pattern: str = DEFAULT_EMAIL_PATTERN
    invitation_validity_hours: float = 7 * 24

    # Public links
    public_base_url: str = "http://localhost:3001"

    # Email dispatch
    email_provider: str = "log"  # "log" | "sendgrid"
    sendgrid_api_key: str = "SG.placeholder"
    sendgrid_base_url: str = "https://api.sendgrid.com"
    email_from_address: str = "hello@dislink.com"
    email_from_name: str = "Dislink"
    email_max_retries: int = 3
    email_base_delay_ms: int = 500
    email_max_delay_ms: int = 10_000
    email_timeout_seconds: int = 10

    # Auth collaborator hook; empty disables the hook
    internal_hook_token: str = ""

    # API
    cors_origins: list[str] = ["http://localhost:3001"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
