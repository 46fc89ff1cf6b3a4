"""Persistence for library assets and their Figma import provenance."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mockups.exceptions import AssetNotFoundError
from mockups.models.asset import Asset
from mockups.models.figma_import import FigmaImport
from mockups.schemas.asset import AssetCreate, AssetUpdate, FigmaImportCreate

logger = logging.getLogger(__name__)


class AssetStore:
    """Thin data access over the request's DB session.

    The session is committed by the ``get_db`` dependency; this class only
    flushes so generated ids and timestamps are available immediately.
    ``commit`` is for callers whose next step must follow a durable change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_asset(self, data: AssetCreate) -> Asset:
        asset = Asset(**data.model_dump())
        self.db.add(asset)
        await self.db.flush()
        await self.db.refresh(asset)
        logger.info(f"[assets] Created asset {asset.id} ({asset.name})")
        return asset

    async def create_import_record(self, data: FigmaImportCreate) -> FigmaImport:
        record = FigmaImport(**data.model_dump())
        self.db.add(record)
        await self.db.flush()
        return record

    async def get_asset(self, asset_id: UUID) -> Asset:
        result = await self.db.execute(select(Asset).where(Asset.id == asset_id))
        asset = result.scalar_one_or_none()
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    async def list_assets(self) -> list[Asset]:
        """All assets, newest first."""
        result = await self.db.execute(select(Asset).order_by(Asset.created_at.desc()))
        return list(result.scalars().all())

    async def update_asset(self, asset_id: UUID, data: AssetUpdate) -> Asset:
        asset = await self.get_asset(asset_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(asset, field, value)
        await self.db.flush()
        await self.db.refresh(asset)
        return asset

    async def delete_asset(self, asset_id: UUID) -> Asset:
        asset = await self.get_asset(asset_id)
        await self.db.delete(asset)
        await self.db.flush()
        return asset

    async def commit(self) -> None:
        await self.db.commit()
