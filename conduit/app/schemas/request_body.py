"""The request envelope: a config plus the LLM call parameters."""

import json
from typing import Annotated, Any, Union

from pydantic import BaseModel, Discriminator, Tag, TypeAdapter

from conduit.app.schemas.config import Config, ShortConfig
from conduit.app.schemas.params import Params

# Keys that only the full config form carries
FULL_CONFIG_KEYS = frozenset({"mode", "options", "targets", "strategy"})


class FullRequestBody(BaseModel):
    config: Config
    params: Params

    @property
    def shape(self) -> str:
        return "full"


class ShortRequestBody(BaseModel):
    config: ShortConfig
    params: Params

    @property
    def shape(self) -> str:
        return "short"


def config_shape(value: Any) -> str:
    """Pick the envelope variant for a raw or already-parsed request body.

    The short form is used when the config names a ``provider`` and none of
    the multi-target keys.
    """
    config = value.get("config") if isinstance(value, dict) else getattr(value, "config", None)
    if isinstance(config, ShortConfig):
        return "short"
    if isinstance(config, dict) and "provider" in config and not FULL_CONFIG_KEYS & config.keys():
        return "short"
    return "full"


RequestBody = Annotated[
    Union[
        Annotated[FullRequestBody, Tag("full")],
        Annotated[ShortRequestBody, Tag("short")],
    ],
    Discriminator(config_shape),
]

_request_body_adapter: TypeAdapter[Any] = TypeAdapter(RequestBody)


def parse_request_body(data: Union[dict[str, Any], str, bytes]) -> Union[FullRequestBody, ShortRequestBody]:
    """Parse a request body from a dict or raw JSON.

    Raises:
        pydantic.ValidationError: If the body does not match either form
    """
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    return _request_body_adapter.validate_python(data)


def dump_request_body(body: Union[FullRequestBody, ShortRequestBody]) -> dict[str, Any]:
    """Dump a request body back to its JSON wire shape."""
    return {"config": body.config.to_wire(), "params": body.params.to_wire()}
