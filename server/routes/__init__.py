"""API routes package."""

from server.routes.asset_routes import router as asset_router
from server.routes.upload_routes import router as upload_router

__all__ = ["asset_router", "upload_router"]
