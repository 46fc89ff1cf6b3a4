"""Library asset endpoints (list, create, get, update metadata, delete)."""

import logging
from uuid import UUID

from fastapi import APIRouter, status

from mockups.api.deps import AssetStoreDep, StorageDep
from mockups.schemas.asset import AssetCreate, AssetListResponse, AssetResponse, AssetUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/assets", response_model=AssetListResponse)
async def list_assets(asset_store: AssetStoreDep) -> AssetListResponse:
    """List all assets, newest first."""
    assets = await asset_store.list_assets()
    return AssetListResponse(assets=[AssetResponse.model_validate(a) for a in assets])


@router.post("/assets", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(body: AssetCreate, asset_store: AssetStoreDep) -> AssetResponse:
    """Register an asset record for a file that is already hosted."""
    asset = await asset_store.create_asset(body)
    return AssetResponse.model_validate(asset)


@router.get("/assets/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: UUID, asset_store: AssetStoreDep) -> AssetResponse:
    asset = await asset_store.get_asset(asset_id)
    return AssetResponse.model_validate(asset)


@router.put("/assets/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: UUID,
    body: AssetUpdate,
    asset_store: AssetStoreDep,
) -> AssetResponse:
    """Update asset metadata."""
    asset = await asset_store.update_asset(asset_id, body)
    return AssetResponse.model_validate(asset)


@router.delete("/assets/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    asset_id: UUID,
    asset_store: AssetStoreDep,
    storage: StorageDep,
) -> None:
    """Delete an asset, then its stored file once the row is gone."""
    asset = await asset_store.delete_asset(asset_id)
    await asset_store.commit()
    if asset.storage_key is None:
        return
    if not storage.delete_file(asset.storage_key):
        logger.warning(f"[assets] Stored file already missing for asset {asset_id}")
