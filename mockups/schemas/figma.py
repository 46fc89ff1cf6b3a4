from pydantic import BaseModel, Field

from mockups.schemas.asset import AssetMetadataFields, AssetResponse
from mockups.schemas.flow_plan import (
    MAX_FRAME_DURATION_S,
    MIN_FRAME_DURATION_S,
    PrototypeConnection,
    PrototypeFlow,
    Transition,
)


class FigmaPage(BaseModel):
    id: str
    name: str


class FigmaFrame(BaseModel):
    id: str
    name: str
    type: str = "FRAME"
    width: float | None = None
    height: float | None = None
    thumbnail_url: str | None = None


class FigmaFileDetails(BaseModel):
    name: str
    last_modified: str | None = None
    thumbnail_url: str | None = None
    pages: list[FigmaPage] = Field(default_factory=list)


class FigmaFileData(BaseModel):
    """Everything the pipeline needs from one GET /files call."""

    details: FigmaFileDetails
    frames: list[FigmaFrame] = Field(default_factory=list)
    connections: list[PrototypeConnection] = Field(default_factory=list)


class FrameExport(BaseModel):
    frame_id: str
    image_url: str


# =============================================================================
# API request/response schemas
# =============================================================================


class FigmaFileResponse(BaseModel):
    file: FigmaFileDetails
    file_key: str
    frames_count: int


class FigmaFramesResponse(BaseModel):
    frames: list[FigmaFrame]


class FigmaPrototypeResponse(BaseModel):
    connections: list[PrototypeConnection]
    flows: list[PrototypeFlow]
    frames: list[FigmaFrame]


class ImportFrameRef(BaseModel):
    id: str
    name: str


class ImportFramesRequest(BaseModel):
    file_key: str = ""
    file_name: str = ""
    frames: list[ImportFrameRef] = Field(default_factory=list)
    metadata: AssetMetadataFields


class ImportFramesResponse(BaseModel):
    success: bool = True
    imported: int
    assets: list[AssetResponse]


class VideoMetadata(AssetMetadataFields):
    name: str | None = None


class SmartSettings(BaseModel):
    duration: float | None = Field(None, ge=MIN_FRAME_DURATION_S, le=MAX_FRAME_DURATION_S)
    transition: Transition | None = None


class SmartGenerateVideoRequest(BaseModel):
    figma_url: str = ""
    settings: SmartSettings = Field(default_factory=SmartSettings)
    metadata: VideoMetadata


class AIGenerateVideoRequest(BaseModel):
    figma_url: str = ""
    description: str = ""
    metadata: VideoMetadata


class SequenceItem(BaseModel):
    frame_id: str
    frame_name: str = ""
    duration: float = Field(2.0, ge=MIN_FRAME_DURATION_S, le=MAX_FRAME_DURATION_S)
    transition: Transition = Transition.FADE  # transition to the NEXT frame


class SequenceVideoRequest(BaseModel):
    figma_url: str = ""
    file_key: str | None = None
    video_name: str | None = None
    metadata: VideoMetadata
    sequence: list[SequenceItem] = Field(default_factory=list)


class FlowFrameSummary(BaseModel):
    name: str
    duration: float
    transition: Transition


class FlowPlanSummary(BaseModel):
    frames_count: int
    total_duration: float
    has_prototype_connections: bool = False
    frames: list[FlowFrameSummary]


class GenerateVideoResponse(BaseModel):
    success: bool = True
    asset: AssetResponse
    flow_plan: FlowPlanSummary


class TokenStatusResponse(BaseModel):
    status: str  # ok, rate_limited, error
    message: str
    user: str | None = None
    retry_after: str | None = None


class UpdateTokenRequest(BaseModel):
    token: str = ""


class UpdateTokenResponse(BaseModel):
    success: bool = True
    message: str
    user: str | None = None
