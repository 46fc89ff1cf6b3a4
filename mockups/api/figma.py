"""Figma endpoints: browse a file, import frames, generate flow videos."""

import logging
import os
import uuid
from pathlib import Path

from dotenv import set_key
from fastapi import APIRouter

from mockups.api.deps import (
    AppSettings,
    AssetStoreDep,
    ExportPolicy,
    FigmaClientDep,
    FileCacheDep,
    MetadataPolicy,
    PipelineDep,
    PlannerClient,
    StorageDep,
)
from mockups.config import get_settings
from mockups.exceptions import (
    CredentialMissingError,
    InvalidFieldValueError,
    InvalidSourceUrlError,
    MissingRequiredFieldError,
    NoFramesResolvedError,
    RateLimitedError,
)
from mockups.schemas.asset import AssetCreate, AssetResponse, FigmaImportCreate
from mockups.schemas.figma import (
    AIGenerateVideoRequest,
    FigmaFileResponse,
    FigmaFramesResponse,
    FigmaPrototypeResponse,
    GenerateVideoResponse,
    ImportFramesRequest,
    ImportFramesResponse,
    SequenceVideoRequest,
    SmartGenerateVideoRequest,
    TokenStatusResponse,
    UpdateTokenRequest,
    UpdateTokenResponse,
)
from mockups.schemas.flow_plan import FlowSettings, FrameInfo
from mockups.services.figma_client import (
    FigmaApiError,
    FigmaRateLimitError,
    parse_file_key_from_url,
)
from mockups.services.figma_files import load_file_data, translate_figma_error
from mockups.services.flow_generator import build_prototype_flows
from mockups.services.frame_materializer import FrameMaterializer
from mockups.services.video_pipeline import (
    AIFlowPlanner,
    PipelineRequest,
    PrototypeFlowPlanner,
    SequenceFlowPlanner,
)

logger = logging.getLogger(__name__)
router = APIRouter()

THUMBNAIL_SCALE = 0.25
MAX_THUMBNAILS = 50
IMPORT_SCALE = 2
TOKEN_PREFIX = "figd_"


def _require_token(settings) -> str:
    if not settings.figma_access_token:
        raise CredentialMissingError()
    return settings.figma_access_token


def _resolve_file_key(url: str | None, key: str | None) -> str:
    if key:
        return key
    if not url:
        raise MissingRequiredFieldError(message="Either url or key is required")
    file_key = parse_file_key_from_url(url)
    if not file_key:
        raise InvalidSourceUrlError()
    return file_key


def _user_label(data: dict) -> str | None:
    return data.get("email") or data.get("handle")


@router.get("/files", response_model=FigmaFileResponse)
async def get_file(
    settings: AppSettings,
    client: FigmaClientDep,
    cache: FileCacheDep,
    policy: MetadataPolicy,
    url: str | None = None,
    key: str | None = None,
) -> FigmaFileResponse:
    """Get file details by URL or file key."""
    token = _require_token(settings)
    file_key = _resolve_file_key(url, key)
    file_data = await load_file_data(client, cache, token, file_key, policy)
    return FigmaFileResponse(
        file=file_data.details,
        file_key=file_key,
        frames_count=len(file_data.frames),
    )


@router.get("/frames", response_model=FigmaFramesResponse)
async def get_frames(
    settings: AppSettings,
    client: FigmaClientDep,
    cache: FileCacheDep,
    policy: MetadataPolicy,
    file_key: str,
    thumbnails: bool = True,
) -> FigmaFramesResponse:
    """List top-level frames, with best-effort thumbnails."""
    token = _require_token(settings)
    file_data = await load_file_data(client, cache, token, file_key, policy)
    frames = [frame.model_copy() for frame in file_data.frames]

    if thumbnails and frames:
        # Single attempt; thumbnails are optional
        try:
            exports = await client.export_frames(
                token,
                file_key,
                [frame.id for frame in frames[:MAX_THUMBNAILS]],
                format="png",
                scale=THUMBNAIL_SCALE,
            )
        except FigmaApiError as e:
            logger.warning(f"[figma] Thumbnail export failed, continuing without: {e}")
        else:
            urls = {export.frame_id: export.image_url for export in exports}
            for frame in frames:
                frame.thumbnail_url = urls.get(frame.id)

    return FigmaFramesResponse(frames=frames)


@router.get("/prototype", response_model=FigmaPrototypeResponse)
async def get_prototype(
    settings: AppSettings,
    client: FigmaClientDep,
    cache: FileCacheDep,
    policy: MetadataPolicy,
    file_key: str,
) -> FigmaPrototypeResponse:
    """Prototype connections plus one flow per entry point."""
    token = _require_token(settings)
    file_data = await load_file_data(client, cache, token, file_key, policy)
    frames = [FrameInfo(id=f.id, name=f.name) for f in file_data.frames]
    return FigmaPrototypeResponse(
        connections=file_data.connections,
        flows=build_prototype_flows(frames, file_data.connections),
        frames=file_data.frames,
    )


@router.post("/import", response_model=ImportFramesResponse)
async def import_frames(
    body: ImportFramesRequest,
    settings: AppSettings,
    client: FigmaClientDep,
    policy: ExportPolicy,
    storage: StorageDep,
    asset_store: AssetStoreDep,
) -> ImportFramesResponse:
    """Export selected frames as PNG and add each to the library."""
    if not body.file_key or not body.frames:
        raise MissingRequiredFieldError(message="File key and frames are required")
    token = _require_token(settings)

    exporter = FrameMaterializer(client, policy=policy, scale=IMPORT_SCALE)
    urls = await exporter.export_urls(token, body.file_key, [frame.id for frame in body.frames])

    assets = []
    for frame in body.frames:
        image_url = urls.get(frame.id)
        if not image_url:
            continue

        try:
            image = await client.download_image(image_url)
        except FigmaApiError as e:
            logger.warning(f"[figma] Download failed for frame {frame.id}: {e}")
            continue

        storage_key = f"frames/{uuid.uuid4()}.png"
        url = storage.upload_file_from_bytes(storage_key, image)
        asset = await asset_store.create_asset(
            AssetCreate(
                name=frame.name,
                filename=f"{frame.name}.png",
                storage_key=storage_key,
                url=url,
                oem=body.metadata.oem,
                screen_type=body.metadata.screen_type,
                asset_type=body.metadata.asset_type,
                description=body.metadata.description,
                format="png",
                size=len(image),
            )
        )
        await asset_store.create_import_record(
            FigmaImportCreate(
                file_id=body.file_key,
                file_name=body.file_name,
                frame_id=frame.id,
                frame_name=frame.name,
                asset_id=asset.id,
            )
        )
        assets.append(AssetResponse.model_validate(asset))

    logger.info(f"[figma] Imported {len(assets)}/{len(body.frames)} frames from {body.file_key}")
    return ImportFramesResponse(imported=len(assets), assets=assets)


@router.post("/smart-generate-video", response_model=GenerateVideoResponse)
async def smart_generate_video(
    body: SmartGenerateVideoRequest,
    settings: AppSettings,
    pipeline: PipelineDep,
) -> GenerateVideoResponse:
    """Generate a video that follows the prototype's connections."""
    flow_settings = FlowSettings(
        duration=body.settings.duration or settings.default_frame_duration_s,
        transition=body.settings.transition or settings.default_transition,
    )
    result = await pipeline.run(
        PipelineRequest(metadata=body.metadata, source_url=body.figma_url),
        PrototypeFlowPlanner(flow_settings),
    )
    return GenerateVideoResponse(
        asset=AssetResponse.model_validate(result.asset),
        flow_plan=result.summary(),
    )


@router.post("/ai-generate-video", response_model=GenerateVideoResponse)
async def ai_generate_video(
    body: AIGenerateVideoRequest,
    pipeline: PipelineDep,
    planner_client: PlannerClient,
) -> GenerateVideoResponse:
    """Generate a video ordered by the AI planner from a description."""
    pipeline.ensure_supported()
    if not body.description.strip():
        raise MissingRequiredFieldError(
            "description", "Please describe how the video should play"
        )
    result = await pipeline.run(
        PipelineRequest(metadata=body.metadata, source_url=body.figma_url),
        AIFlowPlanner(planner_client, body.description.strip()),
    )
    return GenerateVideoResponse(
        asset=AssetResponse.model_validate(result.asset),
        flow_plan=result.summary(),
    )


@router.post("/import-video", response_model=GenerateVideoResponse)
async def import_video(
    body: SequenceVideoRequest,
    pipeline: PipelineDep,
) -> GenerateVideoResponse:
    """Generate a video from frames in the order the user picked."""
    pipeline.ensure_supported()
    if len(body.sequence) < 2:
        raise NoFramesResolvedError("Select at least 2 frames to create a video")

    metadata = body.metadata
    if body.video_name and not metadata.name:
        metadata = metadata.model_copy(update={"name": body.video_name})

    result = await pipeline.run(
        PipelineRequest(metadata=metadata, source_url=body.figma_url, file_key=body.file_key),
        SequenceFlowPlanner(body.sequence),
    )
    return GenerateVideoResponse(
        asset=AssetResponse.model_validate(result.asset),
        flow_plan=result.summary(),
    )


@router.get("/test", response_model=TokenStatusResponse)
async def test_token(settings: AppSettings, client: FigmaClientDep) -> TokenStatusResponse:
    """Check whether the configured token can reach the Figma API."""
    if not settings.figma_access_token:
        return TokenStatusResponse(status="error", message="No Figma token configured")

    try:
        data = await client.get_me(settings.figma_access_token)
    except FigmaRateLimitError as e:
        return TokenStatusResponse(
            status="rate_limited",
            message="Still rate limited. Please wait a few more minutes.",
            retry_after=e.retry_after or "unknown",
        )
    except FigmaApiError as e:
        return TokenStatusResponse(status="error", message=str(e))

    return TokenStatusResponse(
        status="ok",
        message="Figma API is available!",
        user=_user_label(data),
    )


@router.post("/update-token", response_model=UpdateTokenResponse)
async def update_token(
    body: UpdateTokenRequest,
    settings: AppSettings,
    client: FigmaClientDep,
) -> UpdateTokenResponse:
    """Validate a new personal access token and persist it to the env file."""
    token = body.token.strip()
    if not token.startswith(TOKEN_PREFIX):
        raise InvalidFieldValueError(
            f'Invalid token format. Token should start with "{TOKEN_PREFIX}"'
        )

    try:
        data = await client.get_me(token)
    except FigmaRateLimitError as e:
        raise RateLimitedError(
            "This token is also rate limited. Try a token from a different Figma account."
        ) from e
    except FigmaApiError as e:
        raise translate_figma_error(e) from e

    Path(settings.env_file_path).touch(exist_ok=True)
    set_key(settings.env_file_path, "FIGMA_ACCESS_TOKEN", token)
    os.environ["FIGMA_ACCESS_TOKEN"] = token
    get_settings.cache_clear()
    logger.info("[figma] Figma access token updated")

    user = _user_label(data)
    return UpdateTokenResponse(message=f"Token updated! Connected as {user}", user=user)
