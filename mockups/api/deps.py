from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mockups.config import Settings, get_settings
from mockups.models.database import get_db
from mockups.render.video_assembler import VideoAssembler
from mockups.schemas.figma import FigmaFileData
from mockups.services.asset_store import AssetStore
from mockups.services.figma_client import FigmaClient
from mockups.services.file_data_cache import FileDataCache
from mockups.services.flow_planner import ClaudeFlowPlanner
from mockups.services.frame_materializer import FrameMaterializer
from mockups.services.retry import RetryPolicy
from mockups.services.storage_service import LocalStorageService, get_storage_service
from mockups.services.video_pipeline import VideoPipeline


@lru_cache
def get_figma_client() -> FigmaClient:
    settings = get_settings()
    return FigmaClient(api_base=settings.figma_api_base, timeout=settings.figma_request_timeout_s)


@lru_cache
def get_file_cache() -> FileDataCache[FigmaFileData]:
    """Process-wide file data cache shared by all requests."""
    return FileDataCache(ttl_seconds=get_settings().figma_cache_ttl_s)


def get_export_policy(settings: Annotated[Settings, Depends(get_settings)]) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.export_max_attempts,
        initial_delay=settings.export_initial_delay_s,
        max_delay=settings.export_max_delay_s,
    )


def get_metadata_policy(settings: Annotated[Settings, Depends(get_settings)]) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.export_max_attempts,
        initial_delay=settings.metadata_initial_delay_s,
        max_delay=settings.export_max_delay_s,
    )


def get_flow_planner_client() -> ClaudeFlowPlanner:
    return ClaudeFlowPlanner()


def get_asset_store(db: Annotated[AsyncSession, Depends(get_db)]) -> AssetStore:
    return AssetStore(db)


def get_video_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
    figma_client: Annotated[FigmaClient, Depends(get_figma_client)],
    cache: Annotated[FileDataCache[FigmaFileData], Depends(get_file_cache)],
    policy: Annotated[RetryPolicy, Depends(get_export_policy)],
    storage: Annotated[LocalStorageService, Depends(get_storage_service)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
) -> VideoPipeline:
    materializer = FrameMaterializer(
        figma_client,
        policy=policy,
        batch_size=settings.export_batch_size,
        batch_pause=settings.export_batch_pause_s,
    )
    return VideoPipeline(
        settings=settings,
        figma_client=figma_client,
        cache=cache,
        materializer=materializer,
        assembler=VideoAssembler(),
        storage=storage,
        asset_store=asset_store,
    )


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
FigmaClientDep = Annotated[FigmaClient, Depends(get_figma_client)]
FileCacheDep = Annotated[FileDataCache[FigmaFileData], Depends(get_file_cache)]
ExportPolicy = Annotated[RetryPolicy, Depends(get_export_policy)]
MetadataPolicy = Annotated[RetryPolicy, Depends(get_metadata_policy)]
PlannerClient = Annotated[ClaudeFlowPlanner, Depends(get_flow_planner_client)]
AssetStoreDep = Annotated[AssetStore, Depends(get_asset_store)]
StorageDep = Annotated[LocalStorageService, Depends(get_storage_service)]
PipelineDep = Annotated[VideoPipeline, Depends(get_video_pipeline)]
