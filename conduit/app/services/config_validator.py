"""Semantic validation of request configs.

The schema only checks shapes. This validator enforces the routing
invariants on top of a parsed request:

- exactly one of ``options`` / ``targets`` carries the providers
- conditional strategies have conditions whose ``then`` and ``default``
  name sibling targets
- load-balance weights are finite, non-negative and not all zero
- a name referenced by a condition belongs to exactly one sibling
- retry settings are within range
- a message's ``content`` and ``content_blocks`` do not contradict
"""

import math
from collections import Counter
from typing import Optional, Sequence, Union

from conduit.app.core.config import settings
from conduit.app.exceptions import (
    ConfigValidationError,
    ConflictingConfigShapeError,
    ContradictoryMessageContentError,
    DuplicateTargetNameError,
    EmptyConditionsError,
    InvalidRetrySettingsError,
    InvalidStrategyModeError,
    InvalidWeightError,
    MissingProvidersError,
    MissingTargetReferenceError,
)
from conduit.app.schemas.config import Config, ConfigMode, Options, ShortConfig, Targets
from conduit.app.schemas.params import Message, Params, blocks_text
from conduit.app.schemas.policy import RetrySettings, Strategy, StrategyMode
from conduit.app.schemas.request_body import FullRequestBody, ShortRequestBody


def _valid_status_code(code: int) -> bool:
    return 100 <= code <= 599


class ConfigValidator:
    """Validator for parsed request bodies.

    Every ``validate_*`` method returns None on success and raises the first
    violation found as a ``ConfigValidationError`` subclass whose
    ``location`` is the JSON path of the offending node.
    """

    def __init__(self, max_retry_attempts: Optional[int] = None):
        self.max_retry_attempts = (
            settings.max_retry_attempts if max_retry_attempts is None else max_retry_attempts
        )

    def validate_request(self, body: Union[FullRequestBody, ShortRequestBody]) -> None:
        if isinstance(body.config, ShortConfig):
            self.validate_retry(body.config.retry, "config.retry")
        else:
            self.validate_config(body.config)
        self.validate_params(body.params, "params")

    def validate_config(self, config: Config, location: str = "config") -> None:
        """Validate a full config.

        Raises:
            ConfigValidationError: On the first violated invariant
        """
        has_options = bool(config.options)
        has_targets = bool(config.targets)

        if has_options and has_targets:
            raise ConflictingConfigShapeError(
                "Config must use either 'options' or 'targets', not both",
                location=location,
            )
        if not has_options and not has_targets:
            raise MissingProvidersError(
                "Config must define at least one provider in 'options' or 'targets'",
                location=location,
            )
        if config.mode == ConfigMode.SCIENTIST:
            raise InvalidStrategyModeError(
                "Config mode 'scientist' is not supported for routing",
                location=f"{location}.mode",
            )

        self.validate_retry(config.retry, f"{location}.retry")

        if has_targets:
            key = "targets"
            children: Sequence[Options] = config.targets or []
        else:
            key = "options"
            children = config.options

        strategy = config.strategy or Strategy(
            mode=StrategyMode((config.mode or ConfigMode.SINGLE).value)
        )
        self._validate_level(strategy, children, location, key)

    def _validate_level(
        self,
        strategy: Strategy,
        children: Sequence[Options],
        location: str,
        key: str,
    ) -> None:
        strategy_location = f"{location}.strategy"
        self.validate_strategy(strategy, children, strategy_location)

        for i, child in enumerate(children):
            child_location = f"{location}.{key}[{i}]"
            self.validate_retry(child.retry, f"{child_location}.retry")
            if isinstance(child, Targets) and (child.targets or child.strategy):
                if not child.targets:
                    raise MissingProvidersError(
                        "Target with a strategy must define nested 'targets'",
                        location=child_location,
                    )
                nested = child.strategy or Strategy(mode=StrategyMode.SINGLE)
                self._validate_level(nested, child.targets, child_location, "targets")

    def validate_strategy(
        self,
        strategy: Strategy,
        children: Sequence[Options],
        location: str = "config.strategy",
    ) -> None:
        """Validate a strategy against the sibling nodes it routes between."""
        for code in strategy.on_status_codes or []:
            if not _valid_status_code(code):
                raise ConfigValidationError(
                    f"Invalid fallback status code: {code}",
                    location=f"{location}.onStatusCodes",
                )

        weights = [child.weight for child in children if child.weight is not None]
        if not all(math.isfinite(w) for w in weights):
            raise InvalidWeightError("Target weights must be finite numbers", location=location)
        if any(w < 0 for w in weights):
            raise InvalidWeightError("Target weights must not be negative", location=location)
        if (
            strategy.mode == StrategyMode.LOADBALANCE
            and children
            and len(weights) == len(children)
            and all(w == 0 for w in weights)
        ):
            raise InvalidWeightError(
                "At least one load-balanced target needs a positive weight",
                location=location,
            )

        if strategy.mode == StrategyMode.CONDITIONAL:
            if not strategy.conditions:
                raise EmptyConditionsError(
                    "Conditional strategy requires at least one condition",
                    location=location,
                )
            names = Counter(
                child.name for child in children if getattr(child, "name", None) is not None
            )
            references = [
                (condition.then, f"{location}.conditions[{i}].then")
                for i, condition in enumerate(strategy.conditions)
            ]
            if strategy.default is not None:
                references.append((strategy.default, f"{location}.default"))

            for name, reference_location in references:
                if name not in names:
                    raise MissingTargetReferenceError(name, location=reference_location)
                if names[name] > 1:
                    raise DuplicateTargetNameError(
                        f"Target name '{name}' is used by more than one sibling",
                        location=reference_location,
                    )

    def validate_retry(self, retry: Optional[RetrySettings], location: str) -> None:
        if retry is None:
            return
        if retry.attempts < 0:
            raise InvalidRetrySettingsError(
                "Retry attempts must not be negative", location=f"{location}.attempts"
            )
        if retry.attempts > self.max_retry_attempts:
            raise InvalidRetrySettingsError(
                f"Retry attempts must not exceed {self.max_retry_attempts}",
                location=f"{location}.attempts",
            )
        for code in retry.on_status_codes or []:
            if not _valid_status_code(code):
                raise InvalidRetrySettingsError(
                    f"Invalid retry status code: {code}",
                    location=f"{location}.onStatusCodes",
                )

    def validate_params(self, params: Params, location: str = "params") -> None:
        for i, message in enumerate(params.messages or []):
            self.validate_message(message, f"{location}.messages[{i}]")

    def validate_message(self, message: Message, location: str) -> None:
        """Flag messages whose flattened and structured content disagree.

        Either field may be set alone. When both are set, string ``content``
        must equal the text of the ``text`` blocks, and list ``content``
        must equal ``content_blocks``.
        """
        if message.content is None or message.content_blocks is None:
            return

        if isinstance(message.content, str):
            consistent = message.content == blocks_text(message.content_blocks)
        else:
            consistent = message.content == message.content_blocks

        if not consistent:
            raise ContradictoryMessageContentError(
                "Message 'content' and 'content_blocks' disagree",
                location=location,
            )


def validate_request(body: Union[FullRequestBody, ShortRequestBody]) -> None:
    """Validate a request body with the default validator."""
    ConfigValidator().validate_request(body)
