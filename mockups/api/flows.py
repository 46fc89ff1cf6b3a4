"""Flow endpoints: ordered slideshows of library assets."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from mockups.api.deps import DbSession
from mockups.exceptions import AssetNotFoundError, FlowNotFoundError
from mockups.models.asset import Asset
from mockups.models.flow import Flow, FlowFrame
from mockups.schemas.flow import (
    FlowCreate,
    FlowFrameIn,
    FlowListResponse,
    FlowResponse,
    FlowUpdate,
)

router = APIRouter()


async def _get_flow(db, flow_id: UUID) -> Flow:
    result = await db.execute(select(Flow).where(Flow.id == flow_id))
    flow = result.scalar_one_or_none()
    if flow is None:
        raise FlowNotFoundError(flow_id)
    return flow


async def _build_frames(db, frames: list[FlowFrameIn]) -> list[FlowFrame]:
    """Flow frames in request order; every asset must exist."""
    asset_ids = {frame.asset_id for frame in frames}
    result = await db.execute(select(Asset.id).where(Asset.id.in_(asset_ids)))
    found = set(result.scalars().all())
    missing = asset_ids - found
    if missing:
        raise AssetNotFoundError(next(iter(missing)))

    return [
        FlowFrame(asset_id=frame.asset_id, order=index, delay=frame.delay)
        for index, frame in enumerate(frames)
    ]


async def _reload(db, flow_id: UUID) -> Flow:
    # Fresh load so server defaults, frames and their assets are populated
    result = await db.execute(
        select(Flow).where(Flow.id == flow_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("/flows", response_model=FlowListResponse)
async def list_flows(db: DbSession) -> FlowListResponse:
    """List all flows, newest first."""
    result = await db.execute(select(Flow).order_by(Flow.created_at.desc()))
    flows = result.scalars().all()
    return FlowListResponse(flows=[FlowResponse.model_validate(f) for f in flows])


@router.post("/flows", response_model=FlowResponse, status_code=status.HTTP_201_CREATED)
async def create_flow(body: FlowCreate, db: DbSession) -> FlowResponse:
    flow = Flow(
        name=body.name,
        description=body.description,
        figma_file_id=body.figma_file_id,
        frames=await _build_frames(db, body.frames),
    )
    db.add(flow)
    await db.flush()
    return FlowResponse.model_validate(await _reload(db, flow.id))


@router.get("/flows/{flow_id}", response_model=FlowResponse)
async def get_flow(flow_id: UUID, db: DbSession) -> FlowResponse:
    return FlowResponse.model_validate(await _get_flow(db, flow_id))


@router.put("/flows/{flow_id}", response_model=FlowResponse)
async def update_flow(flow_id: UUID, body: FlowUpdate, db: DbSession) -> FlowResponse:
    """Update name/description; a frames list replaces all frames."""
    flow = await _get_flow(db, flow_id)

    if body.name is not None:
        flow.name = body.name
    if "description" in body.model_fields_set:
        flow.description = body.description
    if body.frames is not None:
        new_frames = await _build_frames(db, body.frames)
        flow.frames.clear()
        await db.flush()
        flow.frames.extend(new_frames)

    await db.flush()
    return FlowResponse.model_validate(await _reload(db, flow_id))


@router.delete("/flows/{flow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flow(flow_id: UUID, db: DbSession) -> None:
    flow = await _get_flow(db, flow_id)
    await db.delete(flow)
