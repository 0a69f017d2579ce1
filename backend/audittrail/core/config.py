"""Application configuration, read from the environment or a ``.env`` file."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class AuditFailurePolicy(str, Enum):
    """What happens to a business operation when its audit entries cannot be written."""
    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class ConfigurationError(Exception):
    """Configuration that must not be used in the current environment."""


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """AuditTrail settings. Field names map to upper-case environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    environment: Environment = Field(default=Environment.DEVELOPMENT)
    application_version: str = Field(default="1.0.0")
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of browser origins allowed to call the API",
    )

    # Database. Pool settings apply to PostgreSQL only.
    database_url: str = Field(default="sqlite:///./audittrail.db")
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Session tokens and passwords
    jwt_secret_key: str = Field(default=_DEFAULT_JWT_SECRET, description="HMAC key for tokens and signed URLs")
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "audittrail"
    jwt_expire_minutes: int = Field(default=60, gt=0)
    bcrypt_rounds: int = Field(default=12, description="bcrypt cost factor for new password hashes")
    min_password_length: int = Field(default=8, ge=1)

    # Lockout: the account locks after this many consecutive failures and
    # stays locked for lockout_years, i.e. until an administrator unlocks it.
    max_failed_login_attempts: int = Field(default=5, ge=1)
    lockout_years: int = Field(default=100, ge=1)

    administrator_role_name: str = Field(
        default="Administrator",
        description="Role that may delete root folders and administer users",
    )

    audit_failure_policy: AuditFailurePolicy = Field(
        default=AuditFailurePolicy.FAIL_OPEN,
        description="fail_open: log the audit write error and continue; fail_closed: abort the operation",
    )
    audit_default_page_size: int = 50
    audit_max_page_size: int = 500

    storage_path: str = Field(default="./storage", description="Root directory of the local blob store")
    signed_url_ttl_seconds: int = Field(default=900, gt=0)

    # Created on first start when the users table is empty.
    bootstrap_admin_username: str = ""
    bootstrap_admin_email: str = ""
    bootstrap_admin_password: str = ""

    log_level: str = "INFO"
    log_format: str = Field(default="json", description="'json' or 'text'")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(_LOG_LEVELS)}")
        return v.upper()

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    def get_cors_origins(self) -> List[str]:
        """Configured origins as a list. A wildcard is refused."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError("Wildcard CORS (*) not allowed. List explicit origins in CORS_ALLOWED_ORIGINS")
        return origins

    def uses_default_jwt_secret(self) -> bool:
        return self.jwt_secret_key == _DEFAULT_JWT_SECRET

    def validate_production_config(self) -> None:
        """Refuse to run production on insecure defaults.

        Raises:
            ConfigurationError: in production, listing every problem found.
        """
        if self.environment != Environment.PRODUCTION:
            return

        problems: List[str] = []
        if self.uses_default_jwt_secret():
            problems.append("JWT_SECRET_KEY is the built-in development key. Generate one: openssl rand -hex 32")
        local = [o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o]
        if local:
            problems.append(f"CORS_ALLOWED_ORIGINS contains local origins: {local}")
        if problems:
            raise ConfigurationError("Production configuration is insecure:\n  - " + "\n  - ".join(problems))

    def startup_warnings(self) -> List[str]:
        """Settings that are allowed but worth flagging at startup."""
        warnings: List[str] = []
        if self.environment == Environment.DEVELOPMENT and self.uses_default_jwt_secret():
            warnings.append("JWT_SECRET_KEY is the default. Anyone can forge tokens.")
        if self.audit_failure_policy == AuditFailurePolicy.FAIL_OPEN:
            warnings.append(
                "AUDIT_FAILURE_POLICY is fail_open: operations proceed when their audit entries "
                "cannot be written. Use fail_closed where an unaudited change is unacceptable."
            )
        return warnings


settings = Settings()
