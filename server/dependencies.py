from typing import Annotated

from fastapi import Depends, Request

from server.asset_catalog import AssetCatalog
from server.chunk_store import ChunkStore
from server.merge_engine import MergeEngine


def get_chunk_store(request: Request) -> ChunkStore:
    return request.app.state.chunk_store


def get_merge_engine(request: Request) -> MergeEngine:
    return request.app.state.merge_engine


def get_asset_catalog(request: Request) -> AssetCatalog:
    return request.app.state.asset_catalog


ChunkStoreDep = Annotated[ChunkStore, Depends(get_chunk_store)]
MergeEngineDep = Annotated[MergeEngine, Depends(get_merge_engine)]
AssetCatalogDep = Annotated[AssetCatalog, Depends(get_asset_catalog)]
