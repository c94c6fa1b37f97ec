"""HTTP surface: FastAPI app factory, routes, and schemas."""

from market_gateway.api.app import create_app

__all__ = ["create_app"]
