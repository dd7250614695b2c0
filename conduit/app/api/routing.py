"""Routing API endpoints: config validation and route resolution."""

import json
from typing import Any, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from conduit.app.core.config import settings
from conduit.app.core.logging import get_log_context, get_logger
from conduit.app.exceptions import ConfigHeaderError
from conduit.app.middleware.request_id import get_request_id
from conduit.app.schemas.request_body import (
    FullRequestBody,
    ShortRequestBody,
    parse_request_body,
)
from conduit.app.services.conditional_router import build_context
from conduit.app.services.config_resolver import ConfigResolver
from conduit.app.services.target_selector import TargetSelector

router = APIRouter(prefix="/v1")
logger = get_logger(__name__)


def _header_json(request: Request, header: str) -> Optional[dict[str, Any]]:
    raw = request.headers.get(header)
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ConfigHeaderError(f"Header '{header}' is not valid JSON", location=header)
    if not isinstance(value, dict):
        raise ConfigHeaderError(f"Header '{header}' must be a JSON object", location=header)
    return value


async def read_request_body(request: Request) -> Union[FullRequestBody, ShortRequestBody]:
    """Parse the routing request from the body and optional config header.

    When the config header is present the body holds only the params.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON in request body")

    header_config = _header_json(request, settings.config_header)
    if header_config is not None:
        body = {"config": header_config, "params": body}

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    try:
        return parse_request_body(body)
    except ValidationError as validation_error:
        raise HTTPException(
            status_code=422,
            detail=validation_error.errors(include_url=False, include_context=False),
        )


@router.post("/config/validate")
async def validate_config(request: Request) -> dict[str, Any]:
    """Validate a request config and summarise its provider tree."""
    body = await read_request_body(request)
    root = ConfigResolver().resolve_request(body)
    return {
        "valid": True,
        "shape": body.shape,
        "leaves": sum(1 for _ in root.iter_leaves()),
        "depth": root.depth(),
    }


@router.post("/routes/resolve")
async def resolve_route(request: Request) -> dict[str, Any]:
    """Resolve the ordered route plan for a request.

    Conditional strategies are evaluated against the request params and the
    JSON object in the metadata header.
    """
    body = await read_request_body(request)
    metadata = _header_json(request, settings.metadata_header)

    root = ConfigResolver().resolve_request(body)
    plan = TargetSelector(context=build_context(body.params, metadata)).plan(root)

    logger.info(
        f"Resolved route plan with {len(plan)} attempts",
        extra=get_log_context(
            request_id=get_request_id(request),
            strategy_mode=root.mode,
            target_path=plan.primary.path,
            provider=plan.primary.provider,
        ),
    )
    return {"shape": body.shape, **plan.to_dict()}
