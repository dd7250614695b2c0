import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # Prefer JSON, but tolerate comma or whitespace separated hosts.
    if raw.startswith(("[", '"')):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw:
                return []
            if raw == "*":
                return ["*"]

    origins: list[str] = []
    for part in (p for p in re.split(r"[,\s]+", raw) if p):
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
        else:
            origins.extend([f"http://{part}", f"https://{part}"])
    return list(dict.fromkeys(origins))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables (``CONDUIT_``
    prefix) or a .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Retry defaults applied when a RetrySettings omits onStatusCodes
    default_retry_status_codes: list[int] = [429, 500, 502, 503, 504]
    max_retry_attempts: int = 5
    max_retry_after_seconds: float = 60.0

    # Cache defaults applied when a CacheSettings omits maxAge
    cache_default_ttl: int = 300  # 5 minutes
    cache_key_prefix: str = "conduit:v1"

    # Request headers carrying routing input
    config_header: str = "x-conduit-config"
    metadata_header: str = "x-conduit-metadata"

    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("default_retry_status_codes")
    @classmethod
    def validate_status_codes(cls, v: list[int]) -> list[int]:
        """Validate status codes are real HTTP codes."""
        for code in v:
            if not 100 <= code <= 599:
                raise ValueError(f"Invalid HTTP status code: {code}")
        return v

    @field_validator("max_retry_attempts", "cache_default_ttl")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator("max_retry_after_seconds")
    @classmethod
    def validate_retry_after_cap(cls, v: float) -> float:
        """Validate the retry-after cap is positive."""
        if v <= 0:
            raise ValueError("max_retry_after_seconds must be positive")
        return v

    model_config = SettingsConfigDict(
        env_prefix="CONDUIT_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()
