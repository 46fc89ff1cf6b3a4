"""Assemble still frames into an MP4 with FFmpeg.

Two strategies are supported:

- ``filter_graph``: every image is an ``-loop 1`` input of one FFmpeg call and
  the whole video is built in a single filter graph.
- ``prebuilt_clips``: every image is first encoded into its own clip, then the
  clips are joined (concat demuxer, or a filter graph when blending).

Both pick the simple path (plain concatenation) when every transition is a
cut, and the transition path otherwise. The transition path pads each clip
that is followed by a blend so ``xfade`` has material to blend against;
blend offsets are computed from nominal durations::

    offset_i = max(0, duration_0 + ... + duration_i - blend_i)

If the transition path fails, the video is rebuilt with plain concatenation.
"""

import logging
import shutil
import subprocess
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from mockups.config import get_settings
from mockups.exceptions import EncodingFailedError
from mockups.schemas.flow_plan import (
    TRANSITION_EFFECTS,
    TRANSITION_SECONDS,
    Transition,
    transition_seconds,
)
from mockups.utils.media_info import get_dimensions, get_media_duration

logger = logging.getLogger(__name__)

# Every clip followed by a blend is extended by the longest blend duration.
CLIP_PADDING = max(TRANSITION_SECONDS.values())

Runner = Callable[[list[str], float], subprocess.CompletedProcess]


class AssemblyStrategy(str, Enum):
    FILTER_GRAPH = "filter_graph"
    PREBUILT_CLIPS = "prebuilt_clips"


@dataclass(frozen=True)
class FrameClip:
    """One still image shown for ``duration`` seconds.

    ``transition`` is the transition into the next clip.
    """

    path: Path
    duration: float
    transition: Transition = Transition.CUT


@dataclass(frozen=True)
class TransitionStep:
    """Join between clip ``index`` and clip ``index + 1``."""

    index: int
    transition: Transition
    blend: float
    offset: float

    @property
    def is_cut(self) -> bool:
        return self.transition == Transition.CUT

    @property
    def effect(self) -> str | None:
        return TRANSITION_EFFECTS.get(self.transition)


@dataclass
class VideoOutput:
    """Output result from video assembly."""

    path: Path
    duration: float
    width: int
    height: int
    file_size: int = 0
    used_fallback: bool = False


def all_cuts(clips: Sequence[FrameClip]) -> bool:
    return all(clip.transition == Transition.CUT for clip in clips)


def total_duration(clips: Sequence[FrameClip]) -> float:
    """Nominal duration: the sum of frame durations."""
    return sum(clip.duration for clip in clips)


def plan_transitions(clips: Sequence[FrameClip]) -> list[TransitionStep]:
    """Compute the join between each pair of consecutive clips.

    A blend never outlasts either of the clips it joins, and each join starts
    no earlier than the previous one finished, so short frames keep their
    place in the output.
    """
    steps: list[TransitionStep] = []
    elapsed = 0.0
    earliest = 0.0
    for index, clip in enumerate(clips[:-1]):
        elapsed += clip.duration
        following = clips[index + 1]
        blend = min(transition_seconds(clip.transition), clip.duration, following.duration)
        offset = round(max(earliest, elapsed - blend), 3)
        steps.append(
            TransitionStep(
                index=index,
                transition=clip.transition,
                blend=blend,
                offset=offset,
            )
        )
        earliest = offset + blend
    return steps


def padded_duration(clips: Sequence[FrameClip], index: int) -> float:
    """Length of clip ``index`` as fed to the transition filter graph."""
    clip = clips[index]
    is_last = index == len(clips) - 1
    if not is_last and clip.transition != Transition.CUT:
        return clip.duration + CLIP_PADDING
    return clip.duration


def encoder_available(ffmpeg_path: str | None = None) -> bool:
    """True if the FFmpeg binary can be found."""
    return shutil.which(ffmpeg_path or get_settings().ffmpeg_path) is not None


def _fmt(seconds: float) -> str:
    return f"{seconds:.3f}".rstrip("0").rstrip(".") or "0"


class FfmpegCommand:
    """Argument-list builder for a single FFmpeg invocation."""

    def __init__(self, binary: str = "ffmpeg"):
        self._head = [binary, "-y", "-hide_banner", "-loglevel", "error"]
        self._inputs: list[str] = []
        self._options: list[str] = []
        self.input_count = 0
        self.filter_graph: str | None = None
        self.output_path: str | None = None

    def input(
        self,
        path: str | Path,
        *,
        loop: bool = False,
        duration: float | None = None,
        framerate: int | None = None,
        fmt: str | None = None,
        safe: bool = True,
    ) -> "FfmpegCommand":
        if loop:
            self._inputs.extend(["-loop", "1"])
        if framerate:
            self._inputs.extend(["-framerate", str(framerate)])
        if duration is not None:
            self._inputs.extend(["-t", _fmt(duration)])
        if fmt:
            self._inputs.extend(["-f", fmt])
        if not safe:
            self._inputs.extend(["-safe", "0"])
        self._inputs.extend(["-i", str(path)])
        self.input_count += 1
        return self

    def filter_complex(self, graph: str) -> "FfmpegCommand":
        self.filter_graph = graph
        self._options.extend(["-filter_complex", graph])
        return self

    def video_filter(self, vf: str) -> "FfmpegCommand":
        self.filter_graph = vf
        self._options.extend(["-vf", vf])
        return self

    def map(self, label: str) -> "FfmpegCommand":
        self._options.extend(["-map", label])
        return self

    def option(self, *tokens: str) -> "FfmpegCommand":
        self._options.extend(tokens)
        return self

    def output(self, path: str | Path) -> "FfmpegCommand":
        self.output_path = str(path)
        return self

    def build(self) -> list[str]:
        if self.output_path is None:
            raise ValueError("FFmpeg command has no output")
        return [*self._head, *self._inputs, *self._options, self.output_path]


def _run_subprocess(args: list[str], timeout: float) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, text=True, timeout=timeout)


class VideoAssembler:
    """Builds and runs FFmpeg commands for a list of frame clips."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        width: int | None = None,
        fallback_height: int | None = None,
        fps: int | None = None,
        crf: int | None = None,
        preset: str | None = None,
        clip_preset: str | None = None,
        timeout: float | None = None,
        runner: Runner = _run_subprocess,
        dimensions_probe: Callable[[str], tuple[int, int]] = get_dimensions,
        duration_probe: Callable[[str], float] = get_media_duration,
    ):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.width = width or settings.video_width
        self.fallback_height = fallback_height or settings.video_fallback_height
        self.fps = fps or settings.video_fps
        self.crf = crf if crf is not None else settings.video_crf
        self.preset = preset or settings.video_preset
        self.clip_preset = clip_preset or settings.clip_preset
        self.timeout = timeout or settings.ffmpeg_timeout_s
        self._runner = runner
        self._probe_dimensions = dimensions_probe
        self._probe_duration = duration_probe

    # ------------------------------------------------------------------
    # Filter pieces
    # ------------------------------------------------------------------

    def canvas_size(self, first_frame: str | Path) -> tuple[int, int]:
        """Canvas is a fixed width; height follows the first frame's aspect."""
        try:
            w, h = self._probe_dimensions(str(first_frame))
        except RuntimeError as e:
            logger.warning(f"[assemble] Could not probe {first_frame}, using fallback height: {e}")
            return self.width, self.fallback_height
        if not w or not h:
            return self.width, self.fallback_height
        height = int(round(self.width * h / w))
        return self.width, max(2, height - height % 2)

    def normalize_filter(self, width: int, height: int) -> str:
        """Scale into the canvas keeping aspect ratio, then pad."""
        return (
            f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,"
            f"setsar=1,fps={self.fps},format=yuv420p"
        )

    def _encode_options(self, cmd: FfmpegCommand, preset: str | None = None) -> FfmpegCommand:
        return cmd.option(
            "-c:v", "libx264",
            "-preset", preset or self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", "yuv420p",
            "-r", str(self.fps),
            "-movflags", "+faststart",
        )

    def _chain(self, steps: Sequence[TransitionStep], labels: Sequence[str]) -> list[str]:
        """Pairwise join of the normalized streams; the last output is [out]."""
        parts: list[str] = []
        previous = labels[0]
        for step in steps:
            target = "out" if step.index == len(steps) - 1 else f"x{step.index + 1}"
            following = labels[step.index + 1]
            if step.is_cut:
                parts.append(
                    f"[{previous}][{following}]concat=n=2:v=1:a=0,"
                    f"fps={self.fps},settb=AVTB[{target}]"
                )
            else:
                parts.append(
                    f"[{previous}][{following}]xfade=transition={step.effect}:"
                    f"duration={_fmt(step.blend)}:offset={_fmt(step.offset)}[{target}]"
                )
            previous = target
        return parts

    # ------------------------------------------------------------------
    # Command builders
    # ------------------------------------------------------------------

    def build_single_frame_command(
        self, clip: FrameClip, output_path: str | Path, size: tuple[int, int]
    ) -> FfmpegCommand:
        cmd = FfmpegCommand(self.ffmpeg_path)
        cmd.input(clip.path, loop=True, duration=clip.duration, framerate=self.fps)
        cmd.video_filter(self.normalize_filter(*size))
        self._encode_options(cmd)
        cmd.option("-t", _fmt(clip.duration))
        return cmd.output(output_path)

    def build_concat_command(
        self, clips: Sequence[FrameClip], output_path: str | Path, size: tuple[int, int]
    ) -> FfmpegCommand:
        """All cuts: loop each image for its duration and concatenate."""
        cmd = FfmpegCommand(self.ffmpeg_path)
        for clip in clips:
            cmd.input(clip.path, loop=True, duration=clip.duration, framerate=self.fps)

        normalize = self.normalize_filter(*size)
        parts = [f"[{i}:v]{normalize}[v{i}]" for i in range(len(clips))]
        joined = "".join(f"[v{i}]" for i in range(len(clips)))
        parts.append(f"{joined}concat=n={len(clips)}:v=1:a=0[out]")

        cmd.filter_complex(";".join(parts)).map("[out]")
        self._encode_options(cmd)
        return cmd.output(output_path)

    def build_crossfade_command(
        self, clips: Sequence[FrameClip], output_path: str | Path, size: tuple[int, int]
    ) -> FfmpegCommand:
        """At least one blend: padded inputs chained with concat/xfade."""
        cmd = FfmpegCommand(self.ffmpeg_path)
        for i, clip in enumerate(clips):
            cmd.input(clip.path, loop=True, duration=padded_duration(clips, i), framerate=self.fps)

        normalize = self.normalize_filter(*size)
        labels = [f"v{i}" for i in range(len(clips))]
        parts = [f"[{i}:v]{normalize},settb=AVTB[v{i}]" for i in range(len(clips))]
        parts.extend(self._chain(plan_transitions(clips), labels))

        cmd.filter_complex(";".join(parts)).map("[out]")
        self._encode_options(cmd)
        return cmd.output(output_path)

    def build_clip_command(
        self, clip: FrameClip, duration: float, output_path: str | Path, size: tuple[int, int]
    ) -> FfmpegCommand:
        """Encode one image into a standalone clip of the given length."""
        cmd = FfmpegCommand(self.ffmpeg_path)
        cmd.input(clip.path, loop=True, duration=duration, framerate=self.fps)
        cmd.video_filter(self.normalize_filter(*size))
        self._encode_options(cmd, preset=self.clip_preset)
        cmd.option("-t", _fmt(duration))
        return cmd.output(output_path)

    def build_clip_concat_command(
        self, list_path: str | Path, output_path: str | Path
    ) -> FfmpegCommand:
        """Join pre-built clips listed in a concat demuxer file."""
        cmd = FfmpegCommand(self.ffmpeg_path)
        cmd.input(list_path, fmt="concat", safe=False)
        self._encode_options(cmd)
        return cmd.output(output_path)

    def build_clip_crossfade_command(
        self,
        clips: Sequence[FrameClip],
        clip_paths: Sequence[str | Path],
        output_path: str | Path,
    ) -> FfmpegCommand:
        cmd = FfmpegCommand(self.ffmpeg_path)
        for path in clip_paths:
            cmd.input(path)

        labels = [f"v{i}" for i in range(len(clip_paths))]
        parts = [
            f"[{i}:v]fps={self.fps},format=yuv420p,settb=AVTB[v{i}]"
            for i in range(len(clip_paths))
        ]
        parts.extend(self._chain(plan_transitions(clips), labels))

        cmd.filter_complex(";".join(parts)).map("[out]")
        self._encode_options(cmd)
        return cmd.output(output_path)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(self, cmd: FfmpegCommand, stage: str) -> None:
        args = cmd.build()
        logger.info(f"[assemble] {stage}: {cmd.input_count} inputs -> {cmd.output_path}")
        try:
            result = self._runner(args, self.timeout)
        except FileNotFoundError as e:
            raise EncodingFailedError(
                f"FFmpeg not found at '{self.ffmpeg_path}'. Make sure FFmpeg is installed."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise EncodingFailedError(
                f"FFmpeg timed out after {self.timeout}s while running {stage}"
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or "")[-500:]
            logger.warning(f"[assemble] {stage} failed (exit {result.returncode}): {stderr}")
            raise EncodingFailedError()

    def _assemble_filter_graph(
        self, clips: Sequence[FrameClip], output_path: Path, size: tuple[int, int]
    ) -> bool:
        """Returns True if the plain-concat fallback was used."""
        if all_cuts(clips):
            self._run(self.build_concat_command(clips, output_path, size), "concat")
            return False

        try:
            self._run(self.build_crossfade_command(clips, output_path, size), "crossfade")
            return False
        except EncodingFailedError as e:
            logger.warning(f"[assemble] Crossfade failed, falling back to plain concat: {e}")
            output_path.unlink(missing_ok=True)
            self._run(self.build_concat_command(clips, output_path, size), "concat fallback")
            return True

    def _assemble_prebuilt_clips(
        self,
        clips: Sequence[FrameClip],
        output_path: Path,
        size: tuple[int, int],
        intermediates: list[Path],
    ) -> bool:
        work_dir = output_path.parent
        run_id = uuid.uuid4().hex[:8]
        clip_paths: list[Path] = []

        for i, clip in enumerate(clips):
            clip_path = work_dir / f"clip_{run_id}_{i:03d}.mp4"
            intermediates.append(clip_path)
            self._run(
                self.build_clip_command(clip, padded_duration(clips, i), clip_path, size),
                f"clip {i + 1}/{len(clips)}",
            )
            clip_paths.append(clip_path)

        if all_cuts(clips):
            list_path = work_dir / f"concat_{run_id}.txt"
            intermediates.append(list_path)
            list_path.write_text("".join(f"file '{p.resolve()}'\n" for p in clip_paths))
            self._run(self.build_clip_concat_command(list_path, output_path), "clip concat")
            return False

        try:
            self._run(
                self.build_clip_crossfade_command(clips, clip_paths, output_path),
                "clip crossfade",
            )
            return False
        except EncodingFailedError as e:
            logger.warning(f"[assemble] Clip crossfade failed, falling back to plain concat: {e}")
            output_path.unlink(missing_ok=True)
            self._run(self.build_concat_command(clips, output_path, size), "concat fallback")
            return True

    def assemble(
        self,
        clips: Sequence[FrameClip],
        output_path: str | Path,
        strategy: AssemblyStrategy = AssemblyStrategy.FILTER_GRAPH,
    ) -> VideoOutput:
        """Encode clips into a single MP4 at output_path.

        Raises:
            EncodingFailedError: FFmpeg is missing, failed or timed out. Any
                partial output is removed.
        """
        if not clips:
            raise EncodingFailedError("No frames to assemble")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        size = self.canvas_size(clips[0].path)
        intermediates: list[Path] = []
        used_fallback = False

        logger.info(
            f"[assemble] {len(clips)} frames, strategy={strategy.value}, "
            f"all_cuts={all_cuts(clips)}, canvas={size[0]}x{size[1]}"
        )

        try:
            if len(clips) == 1:
                self._run(
                    self.build_single_frame_command(clips[0], output_path, size), "single frame"
                )
            elif strategy == AssemblyStrategy.PREBUILT_CLIPS:
                used_fallback = self._assemble_prebuilt_clips(
                    clips, output_path, size, intermediates
                )
            else:
                used_fallback = self._assemble_filter_graph(clips, output_path, size)

            if not output_path.exists():
                raise EncodingFailedError("FFmpeg did not produce an output file")
        except Exception:
            output_path.unlink(missing_ok=True)
            raise
        finally:
            for path in intermediates:
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"[cleanup] Failed to delete {path}: {e}")

        try:
            duration = self._probe_duration(str(output_path))
        except RuntimeError:
            duration = total_duration(clips)

        return VideoOutput(
            path=output_path,
            duration=duration,
            width=size[0],
            height=size[1],
            file_size=output_path.stat().st_size,
            used_fallback=used_fallback,
        )
