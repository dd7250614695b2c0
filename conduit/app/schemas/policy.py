"""Retry, cache and strategy policy shapes."""

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator, Field

from conduit.app.schemas.base import ConfigModel


class RetrySettings(ConfigModel):
    """Settings for retrying requests.

    Attributes:
        attempts: Maximum number of retry attempts
        on_status_codes: HTTP status codes that trigger a retry. None means
            the gateway default set.
        use_retry_after_header: Whether to honour the provider's wait hint
    """

    attempts: int
    on_status_codes: Optional[list[int]] = None
    use_retry_after_header: Optional[bool] = None


class CacheSettings(ConfigModel):
    """Cache settings. ``mode`` is an open tag such as "simple" or "semantic"."""

    mode: str
    max_age: Optional[int] = None


def _coerce_cache(value: Any) -> Any:
    # "simple" is shorthand for {"mode": "simple"}
    if isinstance(value, str):
        return {"mode": value}
    return value


CacheField = Annotated[CacheSettings, BeforeValidator(_coerce_cache)]


class StrategyMode(str, Enum):
    """Supported multi-target strategies."""

    LOADBALANCE = "loadbalance"
    FALLBACK = "fallback"
    SINGLE = "single"
    CONDITIONAL = "conditional"


class Condition(ConfigModel):
    """One conditional routing rule: route to ``then`` when ``query`` matches."""

    query: dict[str, Any] = Field(default_factory=dict)
    then: str


class Strategy(ConfigModel):
    mode: StrategyMode
    on_status_codes: Optional[list[int]] = None
    conditions: Optional[list[Condition]] = None
    default: Optional[str] = None
