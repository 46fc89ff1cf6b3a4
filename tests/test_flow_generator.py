"""Tests for ordering frames from prototype connections."""

from mockups.schemas.flow_plan import FlowSettings, FrameInfo, PrototypeConnection, Transition
from mockups.services.flow_generator import (
    build_prototype_flows,
    generate_flow_from_prototype,
    generate_simple_flow,
)

SETTINGS = FlowSettings(duration=2.0, transition=Transition.FADE)


def frames(*ids: str) -> list[FrameInfo]:
    return [FrameInfo(id=frame_id, name=f"Frame {frame_id}") for frame_id in ids]


def edges(*pairs: tuple[str, str | None]) -> list[PrototypeConnection]:
    return [
        PrototypeConnection(source_node_id=source, source_node_name=source, destination_node_id=dest)
        for source, dest in pairs
    ]


class TestSimpleFlow:
    def test_uses_every_frame_in_order(self):
        plan = generate_simple_flow(frames("1", "2", "3"), SETTINGS)

        assert plan.frame_ids == ["1", "2", "3"]
        assert all(f.duration == 2.0 for f in plan.frames)
        assert all(f.transition == Transition.FADE for f in plan.frames)

    def test_total_duration_is_sum_of_durations(self):
        plan = generate_simple_flow(
            [FrameInfo(id="1", name="Home"), FrameInfo(id="2", name="Detail")], SETTINGS
        )

        assert plan.total_duration == 4.0


class TestFlowFromPrototype:
    def test_no_connections_is_identity(self):
        plan = generate_flow_from_prototype(frames("a", "b", "c"), [], SETTINGS)

        assert plan.frame_ids == ["a", "b", "c"]

    def test_follows_linear_chain(self):
        plan = generate_flow_from_prototype(
            frames("c", "a", "b"),
            edges(("a", "b"), ("b", "c")),
            SETTINGS,
        )

        assert plan.frame_ids == ["a", "b", "c"]

    def test_cycle_visits_each_frame_once(self):
        """A -> B -> A has no entry point; the walk starts at the first source."""
        plan = generate_flow_from_prototype(
            frames("a", "b"),
            edges(("a", "b"), ("b", "a")),
            SETTINGS,
        )

        assert plan.frame_ids == ["a", "b"]

    def test_stops_at_dead_end(self):
        plan = generate_flow_from_prototype(
            frames("1", "2", "3"),
            edges(("1", "2"), ("2", None)),
            SETTINGS,
        )

        assert plan.frame_ids == ["1", "2"]

    def test_unknown_destination_is_not_included(self):
        plan = generate_flow_from_prototype(
            frames("1", "2"),
            edges(("1", "2"), ("2", "99")),
            SETTINGS,
        )

        assert plan.frame_ids == ["1", "2"]

    def test_walk_passes_through_unknown_nodes(self):
        """Non-frame nodes (e.g. buttons) are walked but left out of the plan."""
        plan = generate_flow_from_prototype(
            frames("1", "3"),
            edges(("1", "btn"), ("btn", "3")),
            SETTINGS,
        )

        assert plan.frame_ids == ["1", "3"]

    def test_prefers_first_outgoing_edge(self):
        plan = generate_flow_from_prototype(
            frames("1", "2", "3"),
            edges(("1", "2"), ("1", "3")),
            SETTINGS,
        )

        assert plan.frame_ids == ["1", "2"]

    def test_falls_back_to_all_frames_when_walk_is_empty(self):
        plan = generate_flow_from_prototype(
            frames("1", "2"),
            edges(("x", "y")),
            SETTINGS,
        )

        assert plan.frame_ids == ["1", "2"]

    def test_applies_settings_to_every_frame(self):
        settings = FlowSettings(duration=3.5, transition=Transition.SLIDE)
        plan = generate_flow_from_prototype(frames("1", "2"), edges(("1", "2")), settings)

        assert [f.duration for f in plan.frames] == [3.5, 3.5]
        assert [f.transition for f in plan.frames] == [Transition.SLIDE, Transition.SLIDE]


class TestPrototypeFlows:
    def test_one_flow_per_entry_point(self):
        flows = build_prototype_flows(
            frames("1", "2", "3", "4"),
            edges(("1", "2"), ("3", "4")),
        )

        assert [flow.start_node_id for flow in flows] == ["1", "3"]
        assert flows[0].name == "Flow from Frame 1"
        assert [step.node_id for step in flows[0].steps] == ["1", "2"]
        assert flows[0].steps[0].next_node_id == "2"
        assert flows[0].steps[-1].next_node_id is None

    def test_loop_builds_flow_from_every_source(self):
        flows = build_prototype_flows(frames("1", "2"), edges(("1", "2"), ("2", "1")))

        assert [flow.start_node_id for flow in flows] == ["1", "2"]

    def test_no_connections_no_flows(self):
        assert build_prototype_flows(frames("1"), []) == []
