"""Application configuration using Pydantic Settings."""

import json
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_ALLOWED_IMAGE_TYPES = [
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "application/pdf",
]

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str
    """Database connection URL (asyncpg driver in production)."""

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    # Authentication
    jwt_secret: str = "dev-only-secret-change-me-in-production"
    """Shared secret used to verify bearer tokens."""

    jwt_algorithm: str = "HS256"
    """Signing algorithm for bearer tokens."""

    public_owner_email: str = "admin@celiacapp.com"
    """E-mail of the pseudo-user owning the public/imported product catalogue."""

    # Estimates
    estimated_tax_rate: Decimal = Decimal("0.25")
    """Rate applied to the claimable amount to estimate tax savings."""

    # Receipt images
    max_image_bytes: int = 10 * 1024 * 1024
    """Maximum receipt image size in bytes."""

    # NoDecode prevents pydantic-settings from forcing JSON parsing at the
    # env-source layer, so we can accept either JSON arrays or CSV strings.
    allowed_image_types: Annotated[list[str], NoDecode] = DEFAULT_ALLOWED_IMAGE_TYPES
    """Allowed content types for receipt images."""

    cors_origins: Annotated[list[str], NoDecode] = DEFAULT_CORS_ORIGINS
    """Origins allowed to call the API from a browser."""

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 1000

    @field_validator("allowed_image_types", mode="before")
    @classmethod
    def parse_allowed_image_types(cls, value: object) -> list[str]:
        """Parse allowed image types from JSON array, CSV, or list."""
        return [
            item.lower()
            for item in _parse_list_setting(
                value, "ALLOWED_IMAGE_TYPES", DEFAULT_ALLOWED_IMAGE_TYPES
            )
        ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> list[str]:
        """Parse CORS origins from JSON array, CSV, or list."""
        return _parse_list_setting(value, "CORS_ORIGINS", DEFAULT_CORS_ORIGINS)


def _parse_list_setting(
    value: object, env_name: str, default: list[str]
) -> list[str]:
    """Accept a JSON array, a comma-separated string, or a sequence."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default.copy()

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None

        if isinstance(decoded, list):
            return _normalize_items(decoded, default)
        if isinstance(decoded, str):
            text = decoded
        elif decoded is not None:
            raise ValueError(
                f"{env_name} must be a JSON array or comma-separated string."
            )

        # Fallback: comma-separated values
        parsed = [item.strip() for item in text.split(",")]
        return _normalize_items(parsed, default)

    if isinstance(value, (list, tuple, set)):
        return _normalize_items(value, default)

    raise ValueError(f"{env_name} must be a string, list, tuple, or set.")


def _normalize_items(values: Iterable[object], default: list[str]) -> list[str]:
    """Strip and dedupe items while preserving declaration order."""
    normalized: list[str] = []
    seen: set[str] = set()
    for raw_item in values:
        item = str(raw_item).strip().strip("'").strip('"')
        if not item or item in seen:
            continue
        normalized.append(item)
        seen.add(item)

    if not normalized:
        return default.copy()
    return normalized


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "Ensure DATABASE_URL is set.",
        "Allowed formats for ALLOWED_IMAGE_TYPES and CORS_ORIGINS are:",
        '  1) ["image/jpeg","image/png"]',
        "  2) image/jpeg,image/png",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
