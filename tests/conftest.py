"""Pytest configuration and shared fixtures for the mockups tests."""

import os
import shutil
import tempfile
import uuid
from pathlib import Path

import pytest

# Point storage and scratch space at throwaway directories before any
# mockups module reads its settings.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="mockups_test_"))
os.environ.setdefault("LOCAL_STORAGE_PATH", str(_TEST_ROOT / "storage"))
os.environ.setdefault("SCRATCH_ROOT", str(_TEST_ROOT / "scratch"))
os.environ.setdefault("ENV_FILE_PATH", str(_TEST_ROOT / ".env"))
os.environ.setdefault("FIGMA_ACCESS_TOKEN", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")

from mockups.config import Settings  # noqa: E402
from mockups.models.asset import Asset  # noqa: E402
from mockups.render.video_assembler import VideoOutput  # noqa: E402
from mockups.schemas.figma import (  # noqa: E402
    FigmaFileData,
    FigmaFileDetails,
    FigmaFrame,
    FrameExport,
)
from mockups.schemas.flow_plan import PrototypeConnection  # noqa: E402
from mockups.services.figma_client import FigmaApiError, FigmaRateLimitError  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_ffmpeg: mark test as requiring FFmpeg")


FFMPEG_AVAILABLE = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None

requires_ffmpeg = pytest.mark.skipif(not FFMPEG_AVAILABLE, reason="FFmpeg not installed")


async def no_sleep(seconds: float) -> None:
    return None


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested waits."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeFigmaClient:
    """In-memory Figma client with scripted export behaviour.

    ``export_errors`` is consumed one entry per export call; an entry that is
    an exception is raised, ``None`` lets the call succeed.
    """

    def __init__(
        self,
        file_data: FigmaFileData,
        exported_ids: set[str] | None = None,
        export_errors: list[Exception | None] | None = None,
        file_errors: list[Exception | None] | None = None,
    ):
        self.file_data = file_data
        self.exported_ids = exported_ids
        self.export_errors = list(export_errors or [])
        self.file_errors = list(file_errors or [])
        self.file_calls = 0
        self.export_calls: list[list[str]] = []
        self.downloads: list[str] = []

    async def get_file_data(self, token: str, file_key: str) -> FigmaFileData:
        self.file_calls += 1
        if self.file_errors:
            error = self.file_errors.pop(0)
            if error is not None:
                raise error
        return self.file_data

    async def export_frames(self, token, file_key, frame_ids, format="png", scale=1):
        self.export_calls.append(list(frame_ids))
        if self.export_errors:
            error = self.export_errors.pop(0)
            if error is not None:
                raise error
        # Reverse to show callers must not rely on response order
        return [
            FrameExport(frame_id=frame_id, image_url=f"https://images.example/{frame_id}.png")
            for frame_id in reversed(frame_ids)
            if self.exported_ids is None or frame_id in self.exported_ids
        ]

    async def download_image(self, url: str) -> bytes:
        self.downloads.append(url)
        return f"PNG:{url}".encode()

    async def get_me(self, token: str) -> dict:
        return {"email": "designer@example.com"}


class FakeAssembler:
    """Records the clips it was asked to encode and writes a dummy MP4."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[list, Path, object]] = []

    def assemble(self, clips, output_path, strategy):
        output_path = Path(output_path)
        self.calls.append((list(clips), output_path, strategy))
        if self.error is not None:
            raise self.error
        output_path.write_bytes(b"fake-mp4")
        return VideoOutput(
            path=output_path,
            duration=sum(clip.duration for clip in clips),
            width=1080,
            height=1920,
            file_size=output_path.stat().st_size,
        )


class FakeAssetStore:
    """Asset store kept in memory instead of the database."""

    def __init__(self):
        self.assets: list[Asset] = []
        self.imports: list = []

    async def create_asset(self, data) -> Asset:
        asset = Asset(id=uuid.uuid4(), **data.model_dump())
        self.assets.append(asset)
        return asset

    async def create_import_record(self, data):
        self.imports.append(data)
        return data


def make_file_data(
    frame_names: list[tuple[str, str]],
    connections: list[tuple[str, str | None]] | None = None,
    name: str = "Checkout",
) -> FigmaFileData:
    return FigmaFileData(
        details=FigmaFileDetails(name=name),
        frames=[FigmaFrame(id=frame_id, name=frame_name) for frame_id, frame_name in frame_names],
        connections=[
            PrototypeConnection(source_node_id=source, destination_node_id=destination)
            for source, destination in (connections or [])
        ],
    )


def rate_limit() -> FigmaRateLimitError:
    return FigmaRateLimitError(retry_after="30")


def api_error(status_code: int) -> FigmaApiError:
    return FigmaApiError(f"Figma API error: {status_code}", status_code=status_code)


@pytest.fixture
def temp_output_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="mockups_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from any .env file, with a configured Figma token."""
    return Settings(
        _env_file=None,
        figma_access_token="figd_test_token",
        anthropic_api_key="",
        scratch_root=str(tmp_path / "scratch"),
        local_storage_path=str(tmp_path / "storage"),
        env_file_path=str(tmp_path / ".env"),
        export_batch_pause_s=0,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
