from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mockups.schemas.asset import AssetResponse


class FlowFrameIn(BaseModel):
    asset_id: UUID
    delay: int = Field(1000, gt=0)  # milliseconds


class FlowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    figma_file_id: str | None = None
    frames: list[FlowFrameIn] = Field(..., min_length=1)


class FlowUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    # None keeps the current frames; a list replaces them
    frames: list[FlowFrameIn] | None = None


class FlowFrameResponse(BaseModel):
    id: UUID
    asset_id: UUID
    order: int
    delay: int
    asset: AssetResponse | None = None

    class Config:
        from_attributes = True


class FlowResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    figma_file_id: str | None
    frames: list[FlowFrameResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class FlowListResponse(BaseModel):
    flows: list[FlowResponse]
