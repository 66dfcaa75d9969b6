"""
Signature Relay - Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a default `settings` object.
Who:   Passed into create_app(); the app factory hands it to the services.
When:  Loaded once at startup. The API key is never re-read per request.

Design Decision:
    The relay receives its Settings explicitly (create_app(settings=...))
    instead of reading os.environ inside the request path. Tests build a
    Settings object with substitute credentials and pass it in.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development except the
    ServiceM8 API key, which must be provided in any real deployment.
    """

    # ── ServiceM8 ─────────────────────────────────────────────────────────
    # What: Static API key sent as X-Api-Key on every outbound call
    # Required: YES - every attachment call is rejected by ServiceM8 without it
    servicem8_api_key: str = Field(
        default="",
        description="ServiceM8 API key used for attachment creation and upload",
    )

    # What: Root of the ServiceM8 REST API; endpoint paths are appended to it
    servicem8_base_url: str = Field(default="https://api.servicem8.com/api_1.0")

    # What: Per-call timeout for outbound requests (seconds)
    # Default matches httpx's own default so behaviour is unchanged unless overridden
    servicem8_timeout: float = Field(default=5.0, gt=0, le=120)

    # ── Signature Limits ──────────────────────────────────────────────────
    # What: Maximum decoded signature size in bytes
    # Default: 1MB = 1024 * 1024 = 1048576 (ServiceM8 attachment limit for this flow)
    max_signature_bytes: int = Field(default=1_048_576, ge=1)

    # ── CORS ──────────────────────────────────────────────────────────────
    # What: Value of Access-Control-Allow-Origin on every response
    cors_allow_origin: str = Field(default="*")

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("servicem8_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoint paths are joined with a leading slash."""
        return v.rstrip("/")

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def has_api_key(self) -> bool:
        return bool(self.servicem8_api_key) and self.servicem8_api_key != "your_servicem8_api_key_here"

    @property
    def max_signature_megabytes(self) -> float:
        return self.max_signature_bytes / (1024 * 1024)

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        Why:   Fail fast with a clear message instead of a 401 from ServiceM8
               on the first real signature.
        """
        errors = []
        if not self.has_api_key:
            errors.append(
                "SERVICEM8_API_KEY is not set. "
                "Create an API key under Settings → API Keys in ServiceM8."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Default instance - used when create_app() is called without explicit settings
settings = Settings()
