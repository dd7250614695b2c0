"""Normalised provider tree.

A request config lists providers either flat (``options``) or as a
recursive ``targets`` tree. Both are resolved into one tree of
``ProviderNode`` values: a ``LeafNode`` wraps one provider binding and a
``StrategyNode`` applies a strategy over ordered children.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from conduit.app.schemas.config import Options
from conduit.app.schemas.policy import CacheSettings, RetrySettings, Strategy


@dataclass(frozen=True)
class LeafNode:
    """One upstream provider binding with inherited defaults applied."""

    options: Options
    path: str
    original_index: int = 0
    name: Optional[str] = None
    weight: Optional[float] = None

    @property
    def provider(self) -> Optional[str]:
        return self.options.provider

    @property
    def retry(self) -> Optional[RetrySettings]:
        return self.options.retry

    @property
    def cache(self) -> Optional[CacheSettings]:
        return self.options.cache

    @property
    def effective_weight(self) -> float:
        return 1.0 if self.weight is None else self.weight

    def iter_leaves(self) -> Iterator["LeafNode"]:
        yield self

    def depth(self) -> int:
        return 0


@dataclass(frozen=True)
class StrategyNode:
    """A strategy over an ordered sequence of child nodes."""

    strategy: Strategy
    children: tuple["ProviderNode", ...] = field(default_factory=tuple)
    path: str = "config"
    original_index: int = 0
    name: Optional[str] = None
    weight: Optional[float] = None

    @property
    def mode(self) -> str:
        return self.strategy.mode.value

    @property
    def effective_weight(self) -> float:
        return 1.0 if self.weight is None else self.weight

    def iter_leaves(self) -> Iterator[LeafNode]:
        """Yield every leaf below this node in source order."""
        for child in self.children:
            yield from child.iter_leaves()

    def find_child(self, name: str) -> Optional["ProviderNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def depth(self) -> int:
        """Number of strategy levels from this node down to the deepest leaf."""
        return 1 + max((child.depth() for child in self.children), default=0)


ProviderNode = Union[LeafNode, StrategyNode]
