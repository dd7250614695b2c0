"""Target selection over a resolved provider tree.

This module turns a provider tree into an ordered route plan: the leaf
targets a caller should try, in order, for one request.

- single: the first child
- fallback: every child in order, moving on when the upstream status is a
  fallback trigger
- loadbalance: one child picked at random in proportion to its weight
- conditional: the child named by the first matching condition
"""

import random
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Sequence

from conduit.app.core.logging import get_log_context, get_logger
from conduit.app.exceptions import MissingTargetReferenceError, NoSelectableTargetError
from conduit.app.schemas.policy import Strategy, StrategyMode
from conduit.app.schemas.provider_tree import LeafNode, ProviderNode
from conduit.app.services.cache_policy import CachePolicy
from conduit.app.services.conditional_router import ConditionalRouter
from conduit.app.services.retry_policy import RetryPolicy

logger = get_logger(__name__)


def should_fallback(strategy: Strategy, status_code: int) -> bool:
    """Check whether an upstream status moves a fallback strategy to its next target.

    With ``onStatusCodes`` set only those codes trigger a fallback; otherwise
    any non-2xx status does.
    """
    if strategy.on_status_codes:
        return status_code in strategy.on_status_codes
    return not 200 <= status_code < 300


@dataclass
class RouteAttempt:
    """One leaf target in a route plan with its effective policies."""

    leaf: LeafNode
    retry: RetryPolicy
    cache: CachePolicy
    # Status codes that move on to the next attempt; None means any non-2xx
    fallback_on: Optional[tuple[int, ...]] = None

    @property
    def provider(self) -> Optional[str]:
        return self.leaf.provider

    @property
    def path(self) -> str:
        return self.leaf.path

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.leaf.path,
            "name": self.leaf.name,
            "provider": self.leaf.provider,
            "index": self.leaf.options.index,
            "original_index": self.leaf.original_index,
            "retry": {
                "attempts": self.retry.attempts,
                "on_status_codes": list(self.retry.on_status_codes),
                "use_retry_after_header": self.retry.use_retry_after_header,
            },
            "cache": {"mode": self.cache.mode, "ttl": self.cache.ttl} if self.cache.enabled else None,
            "fallback_on": list(self.fallback_on) if self.fallback_on is not None else None,
        }


@dataclass
class RoutePlan:
    """Ordered attempts for one request."""

    attempts: list[RouteAttempt] = field(default_factory=list)

    @property
    def primary(self) -> RouteAttempt:
        return self.attempts[0]

    def __len__(self) -> int:
        return len(self.attempts)

    def to_dict(self) -> dict[str, Any]:
        return {"attempts": [attempt.to_dict() for attempt in self.attempts]}


class TargetSelector:
    """Selector for building route plans from provider trees.

    Usage:
        selector = TargetSelector(context=build_context(params, metadata))
        plan = selector.plan(root)
        for attempt in plan.attempts:
            ...

    Args:
        context: Conditional routing context (see ``build_context``)
        rng: Random source for load balancing, injectable for tests
    """

    def __init__(
        self,
        context: Optional[Mapping[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.context: Mapping[str, Any] = context or {}
        self._rng = rng or random.Random()

    def select_weighted(self, children: Sequence[ProviderNode]) -> tuple[int, ProviderNode]:
        """Pick a child with probability proportional to its weight.

        A missing weight counts as 1; children with weight 0 are never picked.

        Returns:
            (position, child) of the selected child

        Raises:
            NoSelectableTargetError: If no child has a positive weight
        """
        candidates = [
            (i, child) for i, child in enumerate(children) if child.effective_weight > 0
        ]
        if not candidates:
            raise NoSelectableTargetError("No load-balanced target has a positive weight")

        total_weight = sum(child.effective_weight for _, child in candidates)
        r = self._rng.uniform(0, total_weight)
        cumulative = 0.0
        for i, child in candidates:
            cumulative += child.effective_weight
            if r <= cumulative:
                return i, child

        # Floating point rounding can leave r just above the last boundary
        return candidates[-1]

    def plan(self, root: ProviderNode) -> RoutePlan:
        """Build the ordered route plan for a provider tree."""
        attempts = self._expand(root, fallback_on=None)
        if not attempts:
            raise NoSelectableTargetError("Config resolves to no target", location=root.path)
        return RoutePlan(attempts=attempts)

    def _expand(
        self, node: ProviderNode, fallback_on: Optional[tuple[int, ...]]
    ) -> list[RouteAttempt]:
        if isinstance(node, LeafNode):
            return [
                RouteAttempt(
                    leaf=node,
                    retry=RetryPolicy.from_settings(node.retry),
                    cache=CachePolicy.from_settings(node.cache),
                    fallback_on=fallback_on,
                )
            ]

        if not node.children:
            raise NoSelectableTargetError("Strategy has no targets", location=node.path)

        mode = node.strategy.mode
        if mode == StrategyMode.FALLBACK:
            codes = node.strategy.on_status_codes
            inner = tuple(codes) if codes else None
            attempts: list[RouteAttempt] = []
            for child in node.children:
                attempts.extend(self._expand(child, inner))
            return attempts

        if mode == StrategyMode.LOADBALANCE:
            position, child = self.select_weighted(node.children)
            if isinstance(child, LeafNode):
                child = replace(
                    child, options=child.options.model_copy(update={"index": position})
                )
            logger.debug(
                f"Load balancer picked target {position} of {len(node.children)}",
                extra=get_log_context(
                    strategy_mode=mode.value,
                    target_path=child.path,
                    provider=getattr(child, "provider", None),
                ),
            )
            return self._expand(child, fallback_on)

        if mode == StrategyMode.CONDITIONAL:
            name = ConditionalRouter(self.context).resolve(
                node.strategy, location=f"{node.path}.strategy"
            )
            child = node.find_child(name)
            if child is None:
                raise MissingTargetReferenceError(name, location=f"{node.path}.strategy")
            return self._expand(child, fallback_on)

        return self._expand(node.children[0], fallback_on)


def plan_route(
    root: ProviderNode,
    context: Optional[Mapping[str, Any]] = None,
    rng: Optional[random.Random] = None,
) -> RoutePlan:
    """Build a route plan with a one-off selector."""
    return TargetSelector(context=context, rng=rng).plan(root)
