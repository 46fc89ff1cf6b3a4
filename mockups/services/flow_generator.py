"""Flow generation from Figma prototype connections.

Orders frames by walking the prototype's connection graph, no external AI
required. The walk always yields a playable plan: whenever it resolves no
frames, every frame is used in file order instead.
"""

import logging
from collections.abc import Sequence

from mockups.schemas.flow_plan import (
    FlowPlan,
    FlowSettings,
    FlowStep,
    FrameInfo,
    PlanFrame,
    PrototypeConnection,
    PrototypeFlow,
)

logger = logging.getLogger(__name__)


def _plan_frame(frame: FrameInfo, settings: FlowSettings) -> PlanFrame:
    return PlanFrame(
        id=frame.id,
        name=frame.name,
        duration=settings.duration,
        transition=settings.transition,
    )


def _entry_points(connections: Sequence[PrototypeConnection]) -> list[str]:
    """Source ids with no incoming edge, in first-seen order."""
    dest_ids = {c.destination_node_id for c in connections if c.destination_node_id}
    source_ids = list(dict.fromkeys(c.source_node_id for c in connections))
    return [node_id for node_id in source_ids if node_id not in dest_ids]


def _first_outgoing(
    connections: Sequence[PrototypeConnection], node_id: str
) -> PrototypeConnection | None:
    for connection in connections:
        if connection.source_node_id == node_id:
            return connection
    return None


def _walk(connections: Sequence[PrototypeConnection], start_id: str) -> list[tuple[str, str | None]]:
    """Follow first outgoing edges from start_id, visiting each node once.

    Returns (node_id, next_node_id) pairs in visit order.
    """
    visited: set[str] = set()
    path: list[tuple[str, str | None]] = []
    current_id: str | None = start_id

    while current_id and current_id not in visited:
        visited.add(current_id)
        connection = _first_outgoing(connections, current_id)
        next_id = connection.destination_node_id if connection else None
        path.append((current_id, next_id))
        current_id = next_id

    return path


def generate_simple_flow(frames: Sequence[FrameInfo], settings: FlowSettings) -> FlowPlan:
    """Use all frames in the given order with uniform settings."""
    return FlowPlan(frames=[_plan_frame(frame, settings) for frame in frames])


def generate_flow_from_prototype(
    frames: Sequence[FrameInfo],
    connections: Sequence[PrototypeConnection],
    settings: FlowSettings,
) -> FlowPlan:
    """Order frames by following the prototype flow.

    Starts at the first frame with no incoming connection (or the first
    connection's source when every node has one) and follows the first
    outgoing connection of each frame until a dead end or a frame that was
    already visited. Ids that are not known frames are walked through but not
    included in the plan.

    Args:
        frames: Frames listed from the file, in file order
        connections: Prototype connections, in file order
        settings: Duration and transition applied to every frame

    Returns:
        FlowPlan in playback order. Never raises for graph shape.
    """
    if not connections:
        return generate_simple_flow(frames, settings)

    entry_points = _entry_points(connections)
    start_id = entry_points[0] if entry_points else connections[0].source_node_id

    frame_map = {frame.id: frame for frame in frames}
    ordered = [
        _plan_frame(frame_map[node_id], settings)
        for node_id, _ in _walk(connections, start_id)
        if node_id in frame_map
    ]

    if not ordered:
        logger.info(
            "[flow] Prototype walk from %s resolved no frames, using all %d frames",
            start_id,
            len(frames),
        )
        return generate_simple_flow(frames, settings)

    return FlowPlan(frames=ordered)


def build_prototype_flows(
    frames: Sequence[FrameInfo],
    connections: Sequence[PrototypeConnection],
) -> list[PrototypeFlow]:
    """Build one flow per prototype entry point, for browsing in the UI.

    When no frame lacks an incoming connection (every flow is a loop), a flow
    is built from every source instead.
    """
    frame_names = {frame.id: frame.name for frame in frames}
    entry_points = _entry_points(connections)
    start_nodes = entry_points or list(dict.fromkeys(c.source_node_id for c in connections))

    flows: list[PrototypeFlow] = []
    for start_id in start_nodes:
        steps = []
        for node_id, next_id in _walk(connections, start_id):
            connection = _first_outgoing(connections, node_id)
            node_name = (
                frame_names.get(node_id)
                or (connection.source_node_name if connection else "")
                or node_id
            )
            steps.append(FlowStep(node_id=node_id, node_name=node_name, next_node_id=next_id))

        if steps:
            flows.append(
                PrototypeFlow(
                    name=f"Flow from {steps[0].node_name}",
                    start_node_id=start_id,
                    steps=steps,
                )
            )

    return flows
