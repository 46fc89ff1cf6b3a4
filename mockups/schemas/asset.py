from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AssetMetadataFields(BaseModel):
    """Library metadata the user attaches to every asset."""

    oem: str = Field(..., min_length=1, max_length=100)
    screen_type: str = Field(..., min_length=1, max_length=100)
    asset_type: str = Field("Mockup", max_length=50)
    description: str | None = None


class AssetCreate(AssetMetadataFields):
    name: str = Field(..., min_length=1, max_length=255)
    filename: str
    storage_key: str | None = None
    url: str
    format: str
    size: int


class AssetUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    oem: str | None = None
    screen_type: str | None = None
    asset_type: str | None = None
    description: str | None = None


class AssetResponse(BaseModel):
    id: UUID
    name: str
    filename: str
    url: str
    oem: str
    screen_type: str
    asset_type: str
    description: str | None
    format: str
    size: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AssetListResponse(BaseModel):
    assets: list[AssetResponse]


class FigmaImportCreate(BaseModel):
    file_id: str
    file_name: str
    frame_id: str
    frame_name: str
    asset_id: UUID
