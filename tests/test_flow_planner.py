"""Tests for the AI flow planner."""

import json

import httpx
import pytest

from mockups.exceptions import CredentialMissingError, PlannerError
from mockups.schemas.flow_plan import FrameInfo, Transition
from mockups.services.flow_planner import ClaudeFlowPlanner, build_prompt, parse_plan_response

FRAMES = [
    FrameInfo(id="1:1", name="Home"),
    FrameInfo(id="1:2", name="Cart"),
    FrameInfo(id="1:3", name="Done"),
]


def claude_reply(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


def make_planner(handler, api_key="sk-test") -> ClaudeFlowPlanner:
    return ClaudeFlowPlanner(
        api_key=api_key,
        model="claude-test",
        api_base="https://anthropic.test/v1",
        max_tokens=512,
        transport=httpx.MockTransport(handler),
    )


class TestBuildPrompt:
    def test_lists_frames_with_ids(self):
        prompt = build_prompt(FRAMES, "show checkout slowly")

        assert '1. "Home" (id: 1:1)' in prompt
        assert '3. "Done" (id: 1:3)' in prompt
        assert '"show checkout slowly"' in prompt


class TestParsePlanResponse:
    def test_valid_plan(self):
        plan = parse_plan_response(
            json.dumps(
                {
                    "frames": [
                        {"id": "1:3", "name": "Done", "duration": 3, "transition": "slow_fade"},
                        {"id": "1:1", "name": "Home", "duration": 1.5, "transition": "cut"},
                    ]
                }
            ),
            FRAMES,
        )

        assert plan.frame_ids == ["1:3", "1:1"]
        assert [f.duration for f in plan.frames] == [3.0, 1.5]
        assert [f.transition for f in plan.frames] == [Transition.SLOW_FADE, Transition.CUT]

    def test_json_inside_markdown(self):
        content = '```json\n{"frames": [{"id": "1:2", "duration": 2, "transition": "fade"}]}\n```'

        plan = parse_plan_response(content, FRAMES)

        assert plan.frame_ids == ["1:2"]
        assert plan.frames[0].name == "Cart"

    def test_unknown_ids_are_dropped(self):
        content = json.dumps(
            {"frames": [{"id": "9:9", "duration": 2}, {"id": "1:1", "duration": 2}]}
        )

        assert parse_plan_response(content, FRAMES).frame_ids == ["1:1"]

    def test_clamps_duration_and_defaults_transition(self):
        content = json.dumps(
            {
                "frames": [
                    {"id": "1:1", "duration": 60, "transition": "spin"},
                    {"id": "1:2", "duration": 0.1},
                    {"id": "1:3", "duration": "soon"},
                ]
            }
        )

        plan = parse_plan_response(content, FRAMES)

        assert [f.duration for f in plan.frames] == [10.0, 0.5, 2.0]
        assert all(f.transition == Transition.FADE for f in plan.frames)

    def test_no_known_frames_uses_all_frames(self):
        content = json.dumps({"frames": [{"id": "9:9", "duration": 4}]})

        plan = parse_plan_response(content, FRAMES)

        assert plan.frame_ids == ["1:1", "1:2", "1:3"]
        assert all(f.duration == 2.0 for f in plan.frames)
        assert all(f.transition == Transition.FADE for f in plan.frames)

    def test_invalid_json(self):
        with pytest.raises(PlannerError):
            parse_plan_response("I cannot help with that.", FRAMES)

    def test_missing_frames(self):
        with pytest.raises(PlannerError):
            parse_plan_response('{"frames": []}', FRAMES)


class TestClaudeFlowPlanner:
    @pytest.mark.asyncio
    async def test_posts_messages_request(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json=claude_reply('{"frames": [{"id": "1:2", "duration": 2, "transition": "slide"}]}')
            )

        plan = await make_planner(handler).plan(FRAMES, "just the cart")

        assert plan.frame_ids == ["1:2"]
        assert plan.frames[0].transition == Transition.SLIDE

        request = requests[0]
        assert request.url == "https://anthropic.test/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(request.content)
        assert body["model"] == "claude-test"
        assert body["max_tokens"] == 512
        assert "just the cart" in body["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        with pytest.raises(CredentialMissingError) as exc_info:
            await make_planner(handler, api_key="").plan(FRAMES, "anything")

        assert "ANTHROPIC_API_KEY" in exc_info.value.to_response().suggestion

    @pytest.mark.asyncio
    async def test_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(529, json={"error": {"type": "overloaded_error"}})

        with pytest.raises(PlannerError):
            await make_planner(handler).plan(FRAMES, "anything")

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": []})

        with pytest.raises(PlannerError):
            await make_planner(handler).plan(FRAMES, "anything")

    @pytest.mark.asyncio
    async def test_non_json_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="upstream proxy error")

        with pytest.raises(PlannerError) as exc_info:
            await make_planner(handler).plan(FRAMES, "anything")

        assert exc_info.value.code == "PLANNER_FAILED"
