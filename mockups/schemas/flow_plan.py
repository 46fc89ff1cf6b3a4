"""Flow plan types shared by the planners, the materializer and the assembler.

A flow plan is an ordered list of frames, each shown for ``duration`` seconds
and followed by ``transition`` into the next frame. Transition time overlaps
the frame duration, so ``total_duration`` is the plain sum of durations.
"""

from enum import Enum

from pydantic import BaseModel, Field, computed_field

from mockups.exceptions import NoFramesResolvedError

MIN_FRAME_DURATION_S = 0.5
MAX_FRAME_DURATION_S = 10.0


class Transition(str, Enum):
    CUT = "cut"
    FADE = "fade"
    SLOW_FADE = "slow_fade"
    SLIDE = "slide"


# Blend duration (seconds) for each transition; cut is a hard switch.
TRANSITION_SECONDS: dict[Transition, float] = {
    Transition.CUT: 0.0,
    Transition.FADE: 0.5,
    Transition.SLOW_FADE: 1.0,
    Transition.SLIDE: 0.5,
}

# ffmpeg xfade effect used for each blended transition.
TRANSITION_EFFECTS: dict[Transition, str] = {
    Transition.FADE: "fade",
    Transition.SLOW_FADE: "fade",
    Transition.SLIDE: "slideleft",
}


def transition_seconds(transition: Transition | str) -> float:
    return TRANSITION_SECONDS[Transition(transition)]


def clamp_duration(value: float) -> float:
    return max(MIN_FRAME_DURATION_S, min(MAX_FRAME_DURATION_S, float(value)))


class FrameInfo(BaseModel):
    id: str
    name: str


class PrototypeConnection(BaseModel):
    source_node_id: str
    source_node_name: str = ""
    destination_node_id: str | None = None
    trigger: str = "ON_CLICK"


class FlowSettings(BaseModel):
    duration: float = Field(2.0, ge=MIN_FRAME_DURATION_S, le=MAX_FRAME_DURATION_S)
    transition: Transition = Transition.FADE


class PlanFrame(BaseModel):
    id: str
    name: str
    duration: float = Field(..., ge=MIN_FRAME_DURATION_S, le=MAX_FRAME_DURATION_S)
    transition: Transition = Transition.FADE


class FlowPlan(BaseModel):
    frames: list[PlanFrame] = Field(default_factory=list)

    @computed_field
    @property
    def total_duration(self) -> float:
        return sum(frame.duration for frame in self.frames)

    @property
    def frame_ids(self) -> list[str]:
        return [frame.id for frame in self.frames]

    def require_frames(self, minimum: int = 1) -> "FlowPlan":
        """Reject plans that are too short to render."""
        if len(self.frames) < minimum:
            if not self.frames:
                raise NoFramesResolvedError()
            raise NoFramesResolvedError(
                f"The flow has {len(self.frames)} frame(s); at least {minimum} are required"
            )
        return self


class FlowStep(BaseModel):
    node_id: str
    node_name: str
    next_node_id: str | None = None


class PrototypeFlow(BaseModel):
    name: str
    start_node_id: str
    steps: list[FlowStep]
