from mockups.schemas.asset import AssetCreate, AssetResponse, AssetUpdate, FigmaImportCreate
from mockups.schemas.error import ErrorResponse
from mockups.schemas.flow import FlowCreate, FlowResponse, FlowUpdate

__all__ = [
    "AssetCreate",
    "AssetUpdate",
    "AssetResponse",
    "FigmaImportCreate",
    "ErrorResponse",
    "FlowCreate",
    "FlowUpdate",
    "FlowResponse",
]
