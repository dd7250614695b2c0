"""Conditional routing over request context.

A conditional strategy lists ``{query, then}`` pairs. Queries are matched
against a context with ``metadata``, ``params`` and ``url`` keys using a
small MongoDB-style language::

    {"metadata.user_plan": {"$eq": "paid"}}
    {"$or": [{"params.model": "gpt-4o"}, {"params.max_tokens": {"$gt": 4000}}]}

A bare value is shorthand for ``$eq``. Keys are dotted paths into the
context.
"""

import re
from typing import Any, Callable, Mapping, Optional

from conduit.app.core.logging import get_log_context, get_logger
from conduit.app.exceptions import (
    EmptyConditionsError,
    InvalidConditionQueryError,
    NoMatchingConditionError,
)
from conduit.app.schemas.params import Params
from conduit.app.schemas.policy import Strategy

logger = get_logger(__name__)

_MISSING = object()


def _bool_mismatch(actual: Any, expected: Any) -> bool:
    # JSON true/false never equal or order against 1/0
    return isinstance(actual, bool) != isinstance(expected, bool)


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING or _bool_mismatch(actual, expected):
        return False
    return actual == expected


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(actual: Any, expected: Any) -> bool:
        if actual is _MISSING or actual is None or _bool_mismatch(actual, expected):
            return False
        try:
            return op(actual, expected)
        except TypeError:
            return False
    return check


def _in(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, list):
        raise InvalidConditionQueryError("$in expects a list operand")
    return any(_equals(actual, item) for item in expected)


def _nin(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, list):
        raise InvalidConditionQueryError("$nin expects a list operand")
    return not any(_equals(actual, item) for item in expected)


def _regex(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, str):
        raise InvalidConditionQueryError("$regex expects a string pattern")
    if not isinstance(actual, str):
        return False
    try:
        return re.search(expected, actual) is not None
    except re.error as e:
        raise InvalidConditionQueryError(f"Invalid $regex pattern: {e}") from e


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": lambda actual, expected: not _equals(actual, expected),
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$in": _in,
    "$nin": _nin,
    "$regex": _regex,
}


def lookup(context: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path inside nested mappings and lists."""
    current: Any = context
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _matches_field(actual: Any, condition: Any) -> bool:
    is_operator_map = isinstance(condition, Mapping) and condition and all(
        isinstance(key, str) and key.startswith("$") for key in condition
    )
    if not is_operator_map:
        return OPERATORS["$eq"](actual, condition)

    for op, expected in condition.items():
        check = OPERATORS.get(op)
        if check is None:
            raise InvalidConditionQueryError(f"Unknown query operator: {op}")
        if not check(actual, expected):
            return False
    return True


def evaluate_query(query: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
    """Evaluate a query against the context. All top-level keys must match.

    Raises:
        InvalidConditionQueryError: For unknown operators or malformed operands
    """
    for key, condition in query.items():
        if key in ("$and", "$or"):
            if not isinstance(condition, list) or not all(
                isinstance(sub, Mapping) for sub in condition
            ):
                raise InvalidConditionQueryError(f"{key} expects a list of queries")
            results = (evaluate_query(sub, context) for sub in condition)
            matched = all(results) if key == "$and" else any(results)
        elif key.startswith("$"):
            raise InvalidConditionQueryError(f"Unknown query operator: {key}")
        else:
            matched = _matches_field(lookup(context, key), condition)
        if not matched:
            return False
    return True


def build_context(
    params: Optional[Params] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    url: Optional[str] = None,
) -> dict[str, Any]:
    """Build the mapping conditional queries are evaluated against."""
    return {
        "metadata": dict(metadata or {}),
        "params": params.to_wire() if params is not None else {},
        "url": {"pathname": url} if url else {},
    }


class ConditionalRouter:
    """Pick a target name for a conditional strategy.

    Usage:
        router = ConditionalRouter(build_context(params, metadata={"plan": "paid"}))
        target_name = router.resolve(strategy)
    """

    def __init__(self, context: Mapping[str, Any]):
        self.context = context

    def resolve(self, strategy: Strategy, location: str = "config.strategy") -> str:
        """Return ``then`` of the first matching condition, else ``default``.

        Raises:
            EmptyConditionsError: If the strategy has no conditions
            NoMatchingConditionError: If nothing matches and there is no default
        """
        if not strategy.conditions:
            raise EmptyConditionsError(
                "Conditional strategy requires at least one condition",
                location=location,
            )

        for i, condition in enumerate(strategy.conditions):
            try:
                matched = evaluate_query(condition.query, self.context)
            except InvalidConditionQueryError as e:
                e.location = f"{location}.conditions[{i}].query"
                raise
            if matched:
                logger.debug(
                    f"Condition {i} matched, routing to '{condition.then}'",
                    extra=get_log_context(strategy_mode="conditional", target_path=location),
                )
                return condition.then

        if strategy.default is not None:
            logger.debug(
                f"No condition matched, routing to default '{strategy.default}'",
                extra=get_log_context(strategy_mode="conditional", target_path=location),
            )
            return strategy.default

        raise NoMatchingConditionError(
            "No condition matched and no default target is set",
            location=location,
        )
