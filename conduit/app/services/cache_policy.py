"""Cache policy decisions for resolved targets.

Storage is handled by the caller; this module only normalises cache settings
into a policy and derives the cache key for a request.
"""

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from conduit.app.core.config import settings
from conduit.app.core.logging import get_logger
from conduit.app.schemas.params import Params
from conduit.app.schemas.policy import CacheSettings

logger = get_logger(__name__)


class CacheMode(str, Enum):
    """Cache modes the gateway knows how to serve."""

    SIMPLE = "simple"
    SEMANTIC = "semantic"


def normalize_cache(
    value: Union[CacheSettings, dict[str, Any], str, None],
) -> Optional[CacheSettings]:
    """Normalise every accepted cache form to ``CacheSettings``.

    Args:
        value: A mode shorthand string, a settings dict, settings, or None

    Returns:
        CacheSettings, or None when caching is not configured
    """
    if value is None or isinstance(value, CacheSettings):
        return value
    if isinstance(value, str):
        return CacheSettings(mode=value)
    return CacheSettings.model_validate(value)


@dataclass(frozen=True)
class CachePolicy:
    """Effective cache behaviour for one target.

    Attributes:
        mode: Cache mode tag, or None when caching is disabled
        ttl: Time to live in seconds
    """

    mode: Optional[str] = None
    ttl: int = 0

    @classmethod
    def from_settings(
        cls, cache: Union[CacheSettings, dict[str, Any], str, None]
    ) -> "CachePolicy":
        normalized = normalize_cache(cache)
        if normalized is None:
            return cls()
        ttl = normalized.max_age if normalized.max_age is not None else settings.cache_default_ttl
        return cls(mode=normalized.mode, ttl=ttl)

    @property
    def enabled(self) -> bool:
        return self.mode is not None and self.ttl > 0

    @property
    def known_mode(self) -> Optional[CacheMode]:
        """The mode as a CacheMode, or None for modes this gateway does not serve."""
        try:
            return CacheMode(self.mode)
        except ValueError:
            return None


def build_cache_key(
    params: Params,
    mode: Union[CacheMode, str] = CacheMode.SIMPLE,
    prefix: Optional[str] = None,
) -> str:
    """Derive a deterministic cache key for a request payload.

    The key covers every declared and extra parameter; key order in the
    original payload does not matter.
    """
    mode_value = mode.value if isinstance(mode, CacheMode) else mode
    normalized = json.dumps(params.to_wire(), sort_keys=True, ensure_ascii=False)
    key_hash = hashlib.sha256(f"{mode_value}:{normalized}".encode()).hexdigest()
    key = f"{prefix or settings.cache_key_prefix}:cache:{key_hash}"
    logger.debug(f"Derived cache key {key[-16:]} for mode {mode_value}")
    return key
