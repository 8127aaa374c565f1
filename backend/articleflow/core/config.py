"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field can be overridden by the upper-cased environment variable
    of the same name, or from a ``.env`` file in the working directory.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./articleflow.db",
        description="Database connection URL (Supabase Postgres in production)"
    )
    db_pool_size: int = Field(default=5, description="Number of persistent database connections")
    db_max_overflow: int = Field(default=10, description="Extra connections allowed during traffic bursts")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is recycled")

    # Authentication
    # JWT_SECRET_KEY is the HS256 secret of the identity provider that issues
    # access tokens (the Supabase project's JWT secret).
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="HS256 secret used to verify access tokens"
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: str = Field(
        default="authenticated",
        description="Expected 'aud' claim (empty string disables the check)"
    )
    auth_enabled: bool = Field(
        default=False,
        description="Require bearer tokens (False for local development)"
    )

    # Rate Limiting
    rate_limit_per_minute: int = Field(
        default=60,
        description="Maximum requests per client per minute"
    )
    rate_limit_costly_per_minute: int = Field(
        default=10,
        description="Maximum generate, render and publish calls per caller per minute"
    )

    # Generation log retention
    log_retention_days: int = Field(
        default=365,
        description="Days to keep generation log entries (0 = keep forever)"
    )

    # Object storage (Cloudflare R2, S3-compatible)
    r2_account_id: str = Field(default="", description="Cloudflare account ID")
    r2_access_key_id: str = Field(default="", description="R2 access key ID")
    r2_secret_access_key: str = Field(default="", description="R2 secret access key")
    r2_bucket_name: str = Field(default="articlegpt", description="R2 bucket name")
    r2_public_url: str = Field(
        default="",
        description="Public base URL for stored objects (defaults to the r2.dev URL)"
    )
    diagram_folder: str = Field(
        default="diagrams",
        description="Folder that rendered diagram images are uploaded into"
    )

    # Diagram rendering
    mermaid_renderer_url: str = Field(
        default="https://mermaid.ink",
        description="Base URL of the mermaid.ink compatible rendering service"
    )
    mermaid_render_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for a single diagram render"
    )
    diagram_render_concurrency: int = Field(
        default=1,
        ge=1,
        description="Diagrams rendered at once per request (1 = sequential)"
    )

    # Article generation (LiteLLM model string, e.g. "anthropic/claude-3-5-sonnet-20241022")
    # Empty string = generation disabled.
    llm_model: str = Field(default="", description="LiteLLM model for article generation")
    llm_api_key: str = Field(default="", description="API key for the generation provider")
    llm_api_base: str = Field(default="", description="Base URL for the provider (optional)")
    llm_max_tokens: int = Field(default=8192, description="Completion token limit")
    llm_timeout: int = Field(default=120, description="Seconds before a generation call is abandoned")

    # Anonymous trial generation. Empty = falls back to the llm_* settings above.
    trial_llm_model: str = Field(default="", description="LiteLLM model for trial generation")
    trial_llm_api_key: str = Field(default="", description="API key billed for trial generation")
    trial_word_count: int = Field(default=1000, ge=300, le=3000, description="Target length of trial articles")

    # Uploads
    avatar_max_bytes: int = Field(default=5 * 1024 * 1024, description="Largest accepted avatar image")

    # Publishing
    devto_api_url: str = Field(default="https://dev.to/api", description="Dev.to API base URL")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def get_r2_public_url(self) -> str:
        """Public base URL for uploaded objects, without a trailing slash."""
        if self.r2_public_url:
            return self.r2_public_url.rstrip("/")
        return f"https://pub-{self.r2_account_id}.r2.dev"

    @property
    def r2_configured(self) -> bool:
        return bool(self.r2_account_id and self.r2_access_key_id and self.r2_secret_access_key)

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, returns quietly and main.py logs warnings instead.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Set it to the identity provider's JWT secret."
            )

        if not self.auth_enabled:
            errors.append(
                "AUTH_ENABLED is false. "
                "Authentication must be enabled in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
