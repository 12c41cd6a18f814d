"""Read-only routes over merged artifacts."""

import asyncio
from dataclasses import asdict

from fastapi import APIRouter
from fastapi.responses import FileResponse

from server.dependencies import AssetCatalogDep
from server.asset_catalog import media_type_for
from server.schemas.assets import AssetListResponse, AssetResponse

router = APIRouter(prefix="/assets", tags=["Assets"])


@router.get("", response_model=AssetListResponse)
async def list_assets(catalog: AssetCatalogDep):
    """
    List merged artifacts with size, modification time and type classification.
    """
    assets = await asyncio.to_thread(catalog.list_assets)
    return AssetListResponse(
        title="Assets",
        message="Files assembled from uploaded chunks",
        files=[AssetResponse(**asdict(asset)) for asset in assets],
    )


@router.api_route("/{name}", methods=["GET", "HEAD"])
async def get_asset(name: str, catalog: AssetCatalogDep):
    """
    Serve a merged artifact by its ``<fingerprint>-<fileName>`` name.
    HEAD answers with the headers only, for existence checks.

    Raises:
        - 404: No such artifact
    """
    path = catalog.resolve(name)
    return FileResponse(path, media_type=media_type_for(name))
