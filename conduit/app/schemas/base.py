"""Base classes for the request contract models."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConfigModel(BaseModel):
    """Routing configuration data such as targets, strategies and policies.

    The wire format is camelCase (``onStatusCodes``, ``virtualKey``) but
    snake_case keys are accepted too. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape, omitting unset fields but keeping explicit nulls."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class PayloadModel(BaseModel):
    """LLM request payload data using OpenAI-style snake_case keys.

    Unknown keys are preserved in ``model_extra`` so provider-specific
    fields survive parsing.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Keys not covered by a declared field."""
        return dict(self.model_extra or {})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
