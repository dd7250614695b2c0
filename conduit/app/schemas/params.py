"""Provider-agnostic LLM request payload shapes."""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from conduit.app.schemas.base import ConfigModel, PayloadModel


class MessageRole(str, Enum):
    """Roles a conversation message can carry."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"
    TOOL = "tool"
    DEVELOPER = "developer"


# Roles treated as system-level instructions by downstream consumers
SYSTEM_MESSAGE_ROLES = (MessageRole.SYSTEM.value, MessageRole.DEVELOPER.value)


def is_system_role(role: Union[str, MessageRole]) -> bool:
    """Check whether a role carries system-level instructions."""
    value = role.value if isinstance(role, MessageRole) else role
    return value in SYSTEM_MESSAGE_ROLES


class CacheControl(BaseModel):
    type: Literal["ephemeral"] = "ephemeral"


class PromptCache(PayloadModel):
    """Mixin for blocks that can be marked for provider-side prompt caching."""

    cache_control: Optional[CacheControl] = None


class ImageUrl(BaseModel):
    url: str
    detail: Optional[str] = None
    mime_type: Optional[str] = None


class FileData(BaseModel):
    file_data: Optional[str] = None
    file_id: Optional[str] = None
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    mime_type: Optional[str] = None


class InputAudio(BaseModel):
    data: str
    format: str = "auto"


class ContentType(PromptCache):
    """One block of multi-modal message content.

    ``type`` selects which of the optional fields is meaningful: ``text``,
    ``image_url``, ``file``, ``input_audio`` or ``thinking`` (with its
    ``signature``).
    """

    type: str
    text: Optional[str] = None
    thinking: Optional[str] = None
    signature: Optional[str] = None
    image_url: Optional[ImageUrl] = None
    data: Optional[str] = None
    file: Optional[FileData] = None
    input_audio: Optional[InputAudio] = None


class ContentBlockChunk(ContentType):
    """A streamed fragment of a content block, positioned by ``index``."""

    index: int
    type: Optional[str] = None  # type: ignore[assignment]


class ToolCallFunction(BaseModel):
    name: str
    arguments: str
    description: Optional[str] = None


class ToolCall(BaseModel):
    """A tool call emitted by the model.

    ``Message.tool_calls`` is kept as raw JSON so provider variants pass
    through untouched; consumers parse entries with this model when they need
    typed access.
    """

    id: str
    type: str
    function: ToolCallFunction


class CitationSource(ConfigModel):
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    uri: Optional[str] = None
    license: Optional[str] = None


class CitationMetadata(ConfigModel):
    citation_sources: Optional[list[CitationSource]] = None


class Message(PayloadModel):
    """A message in the conversation.

    ``content`` is the flattened form and ``content_blocks`` the structured
    form. Either may be set on its own.
    """

    role: MessageRole
    content: Optional[Union[str, list[ContentType]]] = None
    content_blocks: Optional[list[ContentType]] = None
    name: Optional[str] = None
    function_call: Optional[Any] = None
    tool_calls: Optional[Any] = None
    tool_call_id: Optional[str] = None
    citation_metadata: Optional[CitationMetadata] = Field(
        default=None, alias="citationMetadata"
    )

    def has_content(self) -> bool:
        return self.content is not None or self.content_blocks is not None

    def text_content(self) -> str:
        """Plain text of the message, from ``content`` when set, else ``content_blocks``."""
        if isinstance(self.content, str):
            return self.content
        blocks = self.content if self.content is not None else self.content_blocks
        return blocks_text(blocks or [])

    @property
    def is_system(self) -> bool:
        return is_system_role(self.role)


def blocks_text(blocks: list[ContentType]) -> str:
    """Join the text of the ``text`` blocks in order."""
    return "".join(block.text or "" for block in blocks if block.type == "text")


# Free-form JSON Schema document
JsonSchema = dict[str, Any]


class Function(BaseModel):
    """A callable function definition.

    ``strict`` asks the model to follow ``parameters`` exactly; only a
    subset of JSON Schema is supported in that case.
    """

    name: str
    description: Optional[str] = None
    parameters: Optional[JsonSchema] = None
    strict: Optional[bool] = None


class FunctionName(BaseModel):
    name: str


class ToolChoiceObject(BaseModel):
    type: str
    function: FunctionName


ToolChoice = Union[Literal["none", "auto", "required"], ToolChoiceObject]


class Tool(PromptCache):
    """A tool definition.

    Tools other than plain function calling (computer use, web search...)
    carry their own keys, which end up in ``extra_fields``.
    """

    type: str
    function: Optional[Function] = None


class ResponseFormat(PayloadModel):
    type: Literal["json_object", "text", "json_schema"]
    json_schema: Optional[Any] = None


class AudioOutput(BaseModel):
    voice: str
    format: str


class PredictionText(BaseModel):
    type: str
    text: str


class Prediction(BaseModel):
    type: str
    content: Union[str, list[PredictionText]]


class ThinkingConfig(PayloadModel):
    type: Optional[str] = None
    budget_tokens: int


class Example(BaseModel):
    input: Optional[Message] = None
    output: Optional[Message] = None


class Params(PayloadModel):
    """The parameters for the request.

    Provider-specific keys not declared here are kept in ``extra_fields``.
    """

    model: Optional[str] = None
    prompt: Optional[Union[str, list[str]]] = None
    messages: Optional[list[Message]] = None
    functions: Optional[list[Function]] = None
    function_call: Optional[Union[Literal["none", "auto"], FunctionName]] = None
    max_tokens: Optional[int] = None
    max_completion_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stream: Optional[bool] = None
    logprobs: Optional[Union[bool, int]] = None
    top_logprobs: Optional[Union[bool, int]] = None
    echo: Optional[bool] = None
    stop: Optional[Union[str, list[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    best_of: Optional[int] = None
    logit_bias: Optional[dict[str, float]] = None
    user: Optional[str] = None
    context: Optional[str] = None
    examples: Optional[list[Example]] = None
    top_k: Optional[int] = None
    tools: Optional[list[Tool]] = None
    tool_choice: Optional[ToolChoice] = None
    response_format: Optional[ResponseFormat] = None
    seed: Optional[int] = None
    store: Optional[bool] = None
    metadata: Optional[dict[str, Any]] = None
    modalities: Optional[list[str]] = None
    audio: Optional[AudioOutput] = None
    service_tier: Optional[str] = None
    prediction: Optional[Prediction] = None
    # Google Vertex AI specific
    safety_settings: Optional[Any] = None
    # Anthropic specific
    anthropic_beta: Optional[str] = None
    anthropic_version: Optional[str] = None
    thinking: Optional[ThinkingConfig] = None
    # Embeddings specific
    dimensions: Optional[int] = None
    parameters: Optional[Any] = None

    def system_messages(self) -> list[Message]:
        return [m for m in self.messages or [] if m.is_system]
