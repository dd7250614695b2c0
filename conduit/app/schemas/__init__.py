"""Request contract schema for the gateway.

This package provides:
- Retry, cache and strategy policy shapes (RetrySettings, CacheSettings, Strategy)
- Provider bindings and target trees (Options, Targets, Config, ShortConfig)
- LLM payload shapes (Params, Message, ContentType, Tool, Function)
- The request envelope (RequestBody, parse_request_body)
- The normalised provider tree (ProviderNode, LeafNode, StrategyNode)
"""

from conduit.app.schemas.config import (
    Config,
    ConfigMode,
    HookObject,
    Options,
    ShortConfig,
    Targets,
)
from conduit.app.schemas.params import (
    SYSTEM_MESSAGE_ROLES,
    ContentBlockChunk,
    ContentType,
    Function,
    Message,
    MessageRole,
    Params,
    Tool,
    ToolCall,
    ToolChoice,
    is_system_role,
)
from conduit.app.schemas.policy import (
    CacheSettings,
    Condition,
    RetrySettings,
    Strategy,
    StrategyMode,
)
from conduit.app.schemas.provider_tree import LeafNode, ProviderNode, StrategyNode
from conduit.app.schemas.request_body import (
    FullRequestBody,
    RequestBody,
    ShortRequestBody,
    dump_request_body,
    parse_request_body,
)

__all__ = [
    # Policy
    "CacheSettings",
    "Condition",
    "RetrySettings",
    "Strategy",
    "StrategyMode",
    # Config
    "Config",
    "ConfigMode",
    "HookObject",
    "Options",
    "ShortConfig",
    "Targets",
    # Payload
    "SYSTEM_MESSAGE_ROLES",
    "ContentBlockChunk",
    "ContentType",
    "Function",
    "Message",
    "MessageRole",
    "Params",
    "Tool",
    "ToolCall",
    "ToolChoice",
    "is_system_role",
    # Envelope
    "FullRequestBody",
    "RequestBody",
    "ShortRequestBody",
    "dump_request_body",
    "parse_request_body",
    # Provider tree
    "LeafNode",
    "ProviderNode",
    "StrategyNode",
]
