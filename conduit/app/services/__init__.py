"""Services package for the gateway.

This package provides:
- Config validation against the routing invariants
- Config resolution into provider trees with inherited defaults
- Target selection (single, fallback, loadbalance, conditional)
- Retry and cache policy decisions
"""

from conduit.app.services.cache_policy import (
    CacheMode,
    CachePolicy,
    build_cache_key,
    normalize_cache,
)
from conduit.app.services.conditional_router import (
    ConditionalRouter,
    build_context,
    evaluate_query,
)
from conduit.app.services.config_resolver import ConfigResolver, resolve_request
from conduit.app.services.config_validator import ConfigValidator, validate_request
from conduit.app.services.retry_policy import RetryPolicy
from conduit.app.services.target_selector import (
    RouteAttempt,
    RoutePlan,
    TargetSelector,
    plan_route,
    should_fallback,
)

__all__ = [
    # Cache
    "CacheMode",
    "CachePolicy",
    "build_cache_key",
    "normalize_cache",
    # Conditional routing
    "ConditionalRouter",
    "build_context",
    "evaluate_query",
    # Resolution
    "ConfigResolver",
    "resolve_request",
    # Validation
    "ConfigValidator",
    "validate_request",
    # Retry
    "RetryPolicy",
    # Selection
    "RouteAttempt",
    "RoutePlan",
    "TargetSelector",
    "plan_route",
    "should_fallback",
]
