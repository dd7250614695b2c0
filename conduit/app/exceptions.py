"""Custom exceptions for the gateway application."""

from typing import Any


class GatewayException(Exception):
    """Base class for gateway exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500
    error_code: str = "gateway_error"

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        """Convert to API response format."""
        return {"error": self.error_code, "message": self.message}


class ConfigValidationError(GatewayException):
    """Raised when a request config violates a routing invariant.

    Maps to HTTP 400 Bad Request. ``location`` is a JSON path pointing
    at the offending node, e.g. ``config.targets[1].strategy``.
    """
    status_code = 400
    error_code = "invalid_config"

    def __init__(self, message: str, location: str = "config"):
        self.location = location
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        response = super().to_response()
        response["location"] = self.location
        return response


class ConflictingConfigShapeError(ConfigValidationError):
    """Both ``options`` and ``targets`` carry providers."""
    error_code = "conflicting_config_shape"


class MissingProvidersError(ConfigValidationError):
    """Neither ``options`` nor ``targets`` carries a provider."""
    error_code = "missing_providers"


class InvalidStrategyModeError(ConfigValidationError):
    """The strategy mode has no routing semantics."""
    error_code = "invalid_strategy_mode"


class EmptyConditionsError(ConfigValidationError):
    """A conditional strategy was given no conditions."""
    error_code = "empty_conditions"


class MissingTargetReferenceError(ConfigValidationError):
    """A condition ``then`` or strategy ``default`` names no sibling target."""
    error_code = "missing_target_reference"

    def __init__(self, reference: str, location: str = "config"):
        self.reference = reference
        super().__init__(
            f"Target '{reference}' is not defined among sibling targets",
            location=location,
        )


class DuplicateTargetNameError(ConfigValidationError):
    """Sibling targets share a name."""
    error_code = "duplicate_target_name"


class InvalidWeightError(ConfigValidationError):
    """Load-balance weights are negative or all zero."""
    error_code = "invalid_weight"


class InvalidRetrySettingsError(ConfigValidationError):
    """Retry attempts or status codes are out of range."""
    error_code = "invalid_retry_settings"


class ContradictoryMessageContentError(ConfigValidationError):
    """A message's ``content`` and ``content_blocks`` disagree."""
    error_code = "contradictory_message_content"


class InvalidConditionQueryError(ConfigValidationError):
    """A conditional routing query uses an unknown operator or bad operand."""
    error_code = "invalid_condition_query"


class NoMatchingConditionError(ConfigValidationError):
    """No condition matched and the strategy has no default target."""
    error_code = "no_matching_condition"


class NoSelectableTargetError(ConfigValidationError):
    """A strategy has no child that can be selected."""
    error_code = "no_selectable_target"


class ConfigHeaderError(ConfigValidationError):
    """The config or metadata header is not a JSON object."""
    error_code = "invalid_config_header"
