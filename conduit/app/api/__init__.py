"""API endpoints package for the gateway."""

from conduit.app.api.routing import router as routing_router

__all__ = [
    "routing_router",
]
