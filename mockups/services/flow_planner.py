"""AI flow planner backed by the Anthropic Messages API.

Turns a free-text description of how a video should play into a flow plan
over the frames of a Figma file. Returned frames are validated against the
offered set; when none survive, every frame is used with default settings.
"""

import json
import logging
import re
from collections.abc import Sequence

import httpx

from mockups.config import get_settings
from mockups.exceptions import CredentialMissingError, PlannerError
from mockups.schemas.flow_plan import (
    FlowPlan,
    FlowSettings,
    FrameInfo,
    PlanFrame,
    Transition,
    clamp_duration,
)
from mockups.services.flow_generator import generate_simple_flow

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

FALLBACK_SETTINGS = FlowSettings(duration=2.0, transition=Transition.FADE)

PLAN_PROMPT = """You are helping create a video from Figma prototype frames. Your task is to interpret the user's description and create a flow plan.

Available frames in the Figma file:
{frame_list}

User's description of how the video should play:
"{description}"

Based on the description, create a JSON flow plan that specifies:
- Which frames to include and in what order
- How long each frame should be shown (duration in seconds)
- What transition to use after each frame

Rules:
- Only use frames from the available list above
- Use the exact frame IDs provided
- Duration should be between 0.5 and 10 seconds
- Transitions: "cut" (instant switch), "fade" (0.5s crossfade), "slow_fade" (1s crossfade), "slide" (0.5s slide)
- If the user mentions specific timing, use it. Otherwise, use reasonable defaults (2-3 seconds per frame)
- If the user mentions specific transitions, use them. Otherwise, default to "fade"
- Include all relevant frames based on the description
- If the description is vague, use the prototype's natural flow order

Return ONLY valid JSON in this exact format (no markdown, no explanation):
{{
  "frames": [
    {{ "id": "frame_id_here", "name": "Frame Name", "duration": 2, "transition": "fade" }}
  ]
}}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_prompt(frames: Sequence[FrameInfo], description: str) -> str:
    frame_list = "\n".join(
        f'{i + 1}. "{frame.name}" (id: {frame.id})' for i, frame in enumerate(frames)
    )
    return PLAN_PROMPT.format(frame_list=frame_list, description=description)


def _coerce_transition(value: object) -> Transition:
    try:
        return Transition(str(value))
    except ValueError:
        return Transition.FADE


def _coerce_duration(value: object) -> float:
    try:
        return clamp_duration(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return FALLBACK_SETTINGS.duration


def parse_plan_response(content: str, frames: Sequence[FrameInfo]) -> FlowPlan:
    """Parse the model's reply into a validated plan.

    Raises:
        PlannerError: The reply holds no usable JSON plan
    """
    match = _JSON_OBJECT.search(content)
    try:
        data = json.loads(match.group(0) if match else content)
    except json.JSONDecodeError as e:
        logger.error(f"[planner] Failed to parse AI response: {content[:500]}")
        raise PlannerError("Failed to parse AI response. Please try again.") from e

    raw_frames = data.get("frames") if isinstance(data, dict) else None
    if not isinstance(raw_frames, list) or not raw_frames:
        raise PlannerError("AI generated an invalid flow plan")

    known = {frame.id: frame for frame in frames}
    planned: list[PlanFrame] = []
    for item in raw_frames:
        if not isinstance(item, dict):
            continue
        frame = known.get(str(item.get("id")))
        if frame is None:
            continue
        planned.append(
            PlanFrame(
                id=frame.id,
                name=frame.name,
                duration=_coerce_duration(item.get("duration")),
                transition=_coerce_transition(item.get("transition")),
            )
        )

    if not planned:
        logger.warning("[planner] AI plan referenced no known frames, using all frames")
        return generate_simple_flow(frames, FALLBACK_SETTINGS)

    return FlowPlan(frames=planned)


class ClaudeFlowPlanner:
    """Plans a flow from a user description using Claude."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        api_base: str | None = None,
        max_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.api_base = (api_base or settings.anthropic_api_base).rstrip("/")
        self.max_tokens = max_tokens or settings.anthropic_max_tokens
        self._transport = transport

    async def plan(self, frames: Sequence[FrameInfo], description: str) -> FlowPlan:
        if not self.api_key:
            raise CredentialMissingError(
                "ANTHROPIC_API_KEY is not configured",
                suggestion="Set ANTHROPIC_API_KEY to use AI video generation.",
            )

        logger.info(f"[planner] Planning flow over {len(frames)} frames")
        try:
            async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_base}/messages",
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": self.max_tokens,
                        "messages": [
                            {"role": "user", "content": build_prompt(frames, description)}
                        ],
                    },
                )
        except httpx.RequestError as e:
            raise PlannerError(f"AI generation failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"[planner] Claude API error: {response.status_code} - {response.text[:500]}")
            raise PlannerError(f"Claude API error: {response.status_code}")

        try:
            reply = response.json()
        except ValueError as e:
            raise PlannerError("Claude API returned a non-JSON response") from e

        content = reply.get("content") if isinstance(reply, dict) else None
        text = content[0].get("text") if content and isinstance(content[0], dict) else None
        if not text:
            raise PlannerError("No response from Claude")

        return parse_plan_response(text, frames)
