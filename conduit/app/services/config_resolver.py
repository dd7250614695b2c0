"""Resolve request configs into a provider tree.

Flat ``options`` lists, recursive ``targets`` trees and short configs all
become one ``StrategyNode`` root. While walking the tree, settings flow from
the config down to every target; a value set on a node always wins over the
one it would inherit:

- ``retry``, ``cache``, ``customHost``, ``requestTimeout``,
  ``forwardHeaders`` and ``strictOpenAiCompliance`` are inherited as-is
- ``overrideParams`` is merged key by key
- hook and guardrail lists are concatenated, parent hooks first
- a nested strategy without ``onStatusCodes`` uses its parent's
"""

from typing import Any, Optional, Sequence, Union

from conduit.app.core.logging import get_log_context, get_logger
from conduit.app.exceptions import InvalidStrategyModeError, MissingProvidersError
from conduit.app.schemas.config import Config, ConfigMode, Options, ShortConfig, Targets
from conduit.app.schemas.params import Params
from conduit.app.schemas.policy import Strategy, StrategyMode
from conduit.app.schemas.provider_tree import LeafNode, ProviderNode, StrategyNode
from conduit.app.schemas.request_body import FullRequestBody, ShortRequestBody
from conduit.app.services.config_validator import ConfigValidator

logger = get_logger(__name__)

INHERITED_FIELDS = (
    "retry",
    "cache",
    "custom_host",
    "request_timeout",
    "forward_headers",
    "strict_open_ai_compliance",
)

HOOK_FIELDS = (
    "before_request_hooks",
    "after_request_hooks",
    "default_input_guardrails",
    "default_output_guardrails",
)


def _merge_override_params(parent: Optional[Params], child: Optional[Params]) -> Optional[Params]:
    if parent is None or child is None:
        return child if child is not None else parent
    merged = {
        **parent.model_dump(exclude_unset=True),
        **child.model_dump(exclude_unset=True),
    }
    return Params.model_validate(merged)


def _inherit(node: Options, scope: dict[str, Any]) -> Options:
    """Return a copy of ``node`` with unset fields filled from ``scope``."""
    update: dict[str, Any] = {}
    for name in INHERITED_FIELDS:
        if getattr(node, name) is None and scope.get(name) is not None:
            update[name] = scope[name]

    merged_params = _merge_override_params(scope.get("override_params"), node.override_params)
    if merged_params is not node.override_params:
        update["override_params"] = merged_params

    for name in HOOK_FIELDS:
        inherited = scope.get(name)
        if inherited:
            update[name] = [*inherited, *(getattr(node, name) or [])]

    return node.model_copy(update=update) if update else node


def _scope_of(node: Options) -> dict[str, Any]:
    scope = {name: getattr(node, name) for name in INHERITED_FIELDS}
    scope["override_params"] = node.override_params
    for name in HOOK_FIELDS:
        scope[name] = getattr(node, name)
    return scope


def _with_status_codes(strategy: Strategy, inherited: Optional[list[int]]) -> Strategy:
    if strategy.on_status_codes is None and inherited is not None:
        return strategy.model_copy(update={"on_status_codes": list(inherited)})
    return strategy


def _strategy_for_config(config: Config) -> Strategy:
    if config.strategy is not None:
        return config.strategy
    mode = config.mode or ConfigMode.SINGLE
    if mode == ConfigMode.SCIENTIST:
        raise InvalidStrategyModeError(
            "Config mode 'scientist' is not supported for routing",
            location="config.mode",
        )
    return Strategy(mode=StrategyMode(mode.value))


class ConfigResolver:
    """Build provider trees from parsed configs.

    Usage:
        body = parse_request_body(raw)
        root = ConfigResolver().resolve_request(body)
        for leaf in root.iter_leaves():
            ...
    """

    def __init__(self, validator: Optional[ConfigValidator] = None):
        self.validator = validator or ConfigValidator()

    def resolve_request(
        self,
        body: Union[FullRequestBody, ShortRequestBody],
        validate: bool = True,
    ) -> StrategyNode:
        """Validate (optionally) and resolve a request body's config."""
        if validate:
            self.validator.validate_request(body)
        if isinstance(body.config, ShortConfig):
            return self.resolve_short_config(body.config)
        return self.resolve_config(body.config)

    def resolve_short_config(self, config: ShortConfig) -> StrategyNode:
        leaf = LeafNode(options=config.to_options(), path="config")
        return StrategyNode(strategy=Strategy(mode=StrategyMode.SINGLE), children=(leaf,))

    def resolve_config(self, config: Config) -> StrategyNode:
        """Resolve a full config into its root strategy node.

        Raises:
            MissingProvidersError: If the config lists no providers
            InvalidStrategyModeError: If the mode has no routing semantics
        """
        strategy = _strategy_for_config(config)
        if config.targets:
            key, children = "targets", list(config.targets)
        elif config.options:
            key, children = "options", list(config.options)
        else:
            raise MissingProvidersError(
                "Config must define at least one provider in 'options' or 'targets'",
                location="config",
            )

        scope: dict[str, Any] = {
            "retry": config.retry,
            "cache": config.cache,
            "custom_host": config.custom_host,
        }
        root = StrategyNode(
            strategy=strategy,
            children=self._resolve_children(children, scope, strategy, "config", key),
            path="config",
        )
        logger.debug(
            f"Resolved config into {sum(1 for _ in root.iter_leaves())} targets "
            f"across {root.depth()} strategy levels",
            extra=get_log_context(strategy_mode=root.mode),
        )
        return root

    def _resolve_children(
        self,
        children: Sequence[Options],
        scope: dict[str, Any],
        strategy: Strategy,
        location: str,
        key: str,
    ) -> tuple[ProviderNode, ...]:
        return tuple(
            self._resolve_node(child, i, scope, strategy, f"{location}.{key}[{i}]")
            for i, child in enumerate(children)
        )

    def _resolve_node(
        self,
        node: Options,
        position: int,
        scope: dict[str, Any],
        parent_strategy: Strategy,
        path: str,
    ) -> ProviderNode:
        effective = _inherit(node, scope)
        name = getattr(node, "name", None)
        original_index = getattr(node, "original_index", None)
        if original_index is None:
            original_index = position

        if isinstance(effective, Targets) and effective.targets:
            strategy = _with_status_codes(
                effective.strategy or Strategy(mode=StrategyMode.SINGLE),
                parent_strategy.on_status_codes,
            )
            return StrategyNode(
                strategy=strategy,
                children=self._resolve_children(
                    effective.targets, _scope_of(effective), strategy, path, "targets"
                ),
                path=path,
                original_index=original_index,
                name=name,
                weight=node.weight,
            )

        if isinstance(effective, Targets):
            effective = effective.model_copy(update={"original_index": original_index})
        return LeafNode(
            options=effective,
            path=path,
            original_index=original_index,
            name=name,
            weight=node.weight,
        )


def resolve_request(
    body: Union[FullRequestBody, ShortRequestBody],
    validate: bool = True,
) -> StrategyNode:
    """Resolve a request body with the default resolver."""
    return ConfigResolver().resolve_request(body, validate=validate)
