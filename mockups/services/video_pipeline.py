"""Build a video from a Figma file: plan, export, encode, store.

The planner that orders the frames is pluggable (prototype connections, an
explicit user sequence, or the AI planner). Every run gets its own scratch
directory, removed on every exit path.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from mockups.config import Settings
from mockups.exceptions import (
    CredentialMissingError,
    EnvironmentUnsupportedError,
    InvalidFieldValueError,
    InvalidSourceUrlError,
    MissingRequiredFieldError,
    NoFramesMaterializedError,
    NoFramesResolvedError,
)
from mockups.models.asset import Asset
from mockups.render.video_assembler import (
    AssemblyStrategy,
    FrameClip,
    VideoAssembler,
    encoder_available,
)
from mockups.schemas.asset import AssetCreate, FigmaImportCreate
from mockups.schemas.figma import (
    FigmaFileData,
    FlowFrameSummary,
    FlowPlanSummary,
    SequenceItem,
    VideoMetadata,
)
from mockups.schemas.flow_plan import (
    FlowPlan,
    FlowSettings,
    FrameInfo,
    PlanFrame,
    PrototypeConnection,
)
from mockups.services.asset_store import AssetStore
from mockups.services.figma_client import FigmaClient, parse_file_key_from_url
from mockups.services.figma_files import load_file_data
from mockups.services.file_data_cache import FileDataCache
from mockups.services.flow_generator import generate_flow_from_prototype
from mockups.services.flow_planner import ClaudeFlowPlanner
from mockups.services.frame_materializer import FrameMaterializer, MaterializedFrame
from mockups.services.retry import RetryPolicy
from mockups.services.storage_service import LocalStorageService
from mockups.utils.scratch import ScratchSpace

logger = logging.getLogger(__name__)

MIN_VIDEO_FRAMES = 2


# =============================================================================
# Planners
# =============================================================================


class FlowPlanner(Protocol):
    """Orders the frames of a file into a flow plan."""

    import_tag: str
    video_label: str
    strategy: AssemblyStrategy
    export_batch_size: int | None

    async def plan(
        self, frames: Sequence[FrameInfo], connections: Sequence[PrototypeConnection]
    ) -> FlowPlan: ...

    def describe(self, frames_count: int) -> str: ...


class PrototypeFlowPlanner:
    """Follows the prototype connections drawn in Figma."""

    import_tag = "smart-flow"
    video_label = "Flow Video"
    strategy = AssemblyStrategy.PREBUILT_CLIPS
    export_batch_size = None

    def __init__(self, settings: FlowSettings):
        self.settings = settings

    async def plan(self, frames, connections) -> FlowPlan:
        return generate_flow_from_prototype(frames, connections, self.settings)

    def describe(self, frames_count: int) -> str:
        return f"Video from {frames_count} frames, {self.settings.duration:g}s per frame"


class SequenceFlowPlanner:
    """Uses the order, durations and transitions the user picked."""

    import_tag = "sequence-flow"
    video_label = "Video"
    strategy = AssemblyStrategy.FILTER_GRAPH
    export_batch_size = None

    def __init__(self, sequence: Sequence[SequenceItem]):
        self.sequence = list(sequence)

    async def plan(self, frames, connections) -> FlowPlan:
        names = {frame.id: frame.name for frame in frames}
        unknown = [item.frame_id for item in self.sequence if item.frame_id not in names]
        if unknown:
            raise InvalidFieldValueError(
                f"Frames not found in the Figma file: {', '.join(unknown)}"
            )
        return FlowPlan(
            frames=[
                PlanFrame(
                    id=item.frame_id,
                    name=item.frame_name or names[item.frame_id],
                    duration=item.duration,
                    transition=item.transition,
                )
                for item in self.sequence
            ]
        )

    def describe(self, frames_count: int) -> str:
        return f"Video from {frames_count} frames"


class AIFlowPlanner:
    """Lets the AI planner interpret a free-text description."""

    import_tag = "ai-flow"
    video_label = "AI Video"
    strategy = AssemblyStrategy.PREBUILT_CLIPS
    export_batch_size = 5

    def __init__(self, client: ClaudeFlowPlanner, description: str):
        self.client = client
        self.description = description

    async def plan(self, frames, connections) -> FlowPlan:
        return await self.client.plan(frames, self.description)

    def describe(self, frames_count: int) -> str:
        return f"AI-generated video from {frames_count} frames. {self.description}"


# =============================================================================
# Pipeline
# =============================================================================


@dataclass
class PipelineRequest:
    metadata: VideoMetadata
    source_url: str | None = None
    file_key: str | None = None  # overrides the key parsed from source_url


@dataclass
class PipelineResult:
    asset: Asset
    plan: FlowPlan
    frames: list[MaterializedFrame] = field(default_factory=list)
    has_prototype_connections: bool = False

    @property
    def frames_count(self) -> int:
        return len(self.frames)

    @property
    def total_duration(self) -> float:
        return sum(frame.duration for frame in self.frames)

    def summary(self) -> FlowPlanSummary:
        return FlowPlanSummary(
            frames_count=self.frames_count,
            total_duration=self.total_duration,
            has_prototype_connections=self.has_prototype_connections,
            frames=[
                FlowFrameSummary(name=f.name, duration=f.duration, transition=f.transition)
                for f in self.frames
            ],
        )


class VideoPipeline:
    """End-to-end "Figma file to library video" run."""

    def __init__(
        self,
        settings: Settings,
        figma_client: FigmaClient,
        cache: FileDataCache[FigmaFileData],
        materializer: FrameMaterializer,
        assembler: VideoAssembler,
        storage: LocalStorageService,
        asset_store: AssetStore,
        encoder_check: Callable[[], bool] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings
        self.figma_client = figma_client
        self.cache = cache
        self.materializer = materializer
        self.assembler = assembler
        self.storage = storage
        self.asset_store = asset_store
        self._encoder_check = encoder_check or self._default_encoder_check
        self._sleep = sleep

    def _default_encoder_check(self) -> bool:
        return self.settings.video_generation_enabled and encoder_available(
            self.settings.ffmpeg_path
        )

    def ensure_supported(self) -> None:
        if not self._encoder_check():
            raise EnvironmentUnsupportedError()

    def _metadata_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.settings.export_max_attempts,
            initial_delay=self.settings.metadata_initial_delay_s,
            max_delay=self.settings.export_max_delay_s,
        )

    async def run(self, request: PipelineRequest, planner: FlowPlanner) -> PipelineResult:
        """Run the pipeline.

        Raises:
            EnvironmentUnsupportedError: No encoder in this deployment
            MissingRequiredFieldError: No Figma URL or file key
            CredentialMissingError: No Figma token configured
            InvalidSourceUrlError: The URL has no file key
            NoFramesResolvedError: Fewer than 2 frames in the plan
            RateLimitedError: Figma kept rate limiting after all retries
            NoFramesMaterializedError: No frame could be exported
            EncodingFailedError: FFmpeg failed
        """
        self.ensure_supported()

        if not request.source_url and not request.file_key:
            raise MissingRequiredFieldError("figma_url", "Figma URL is required")

        token = self.settings.figma_access_token
        if not token:
            raise CredentialMissingError(
                "Figma access token not configured. Go to Settings to add it."
            )

        file_key = request.file_key or parse_file_key_from_url(request.source_url or "")
        if not file_key:
            raise InvalidSourceUrlError()

        file_data = await load_file_data(
            self.figma_client,
            self.cache,
            token,
            file_key,
            self._metadata_policy(),
            sleep=self._sleep,
        )
        if not file_data.frames:
            raise NoFramesResolvedError("No frames found in the Figma file")

        frames = [FrameInfo(id=f.id, name=f.name) for f in file_data.frames]
        plan = await planner.plan(frames, file_data.connections)
        plan.require_frames(MIN_VIDEO_FRAMES)
        logger.info(
            f"[pipeline] Planned {len(plan.frames)} frames ({plan.total_duration:g}s) "
            f"for {file_key} via {planner.import_tag}"
        )

        scratch = ScratchSpace(self.settings.scratch_root)
        try:
            scratch.create()
            materialized = await self.materializer.materialize(
                token, file_key, plan, scratch, batch_size=planner.export_batch_size
            )
            if not materialized:
                raise NoFramesMaterializedError()

            clips = [
                FrameClip(path=frame.path, duration=frame.duration, transition=frame.transition)
                for frame in materialized
            ]
            output_path = scratch.track(scratch.file("output.mp4"))
            video = await asyncio.to_thread(
                self.assembler.assemble, clips, output_path, planner.strategy
            )

            storage_key = f"videos/{uuid.uuid4()}.mp4"
            url = self.storage.upload_file(video.path, storage_key)

            metadata = request.metadata
            video_name = metadata.name or f"{file_data.details.name} - {planner.video_label}"
            asset = await self.asset_store.create_asset(
                AssetCreate(
                    name=video_name,
                    filename=storage_key.rsplit("/", 1)[-1],
                    storage_key=storage_key,
                    url=url,
                    oem=metadata.oem,
                    screen_type=metadata.screen_type,
                    asset_type=metadata.asset_type,
                    description=metadata.description or planner.describe(len(materialized)),
                    format="mp4",
                    size=video.file_size,
                )
            )
            await self.asset_store.create_import_record(
                FigmaImportCreate(
                    file_id=file_key,
                    file_name=file_data.details.name,
                    frame_id=planner.import_tag,
                    frame_name=video_name,
                    asset_id=asset.id,
                )
            )
        finally:
            scratch.cleanup()

        logger.info(
            f"[pipeline] Created video asset {asset.id} from "
            f"{len(materialized)}/{len(plan.frames)} frames"
        )
        return PipelineResult(
            asset=asset,
            plan=plan,
            frames=materialized,
            has_prototype_connections=bool(file_data.connections),
        )
