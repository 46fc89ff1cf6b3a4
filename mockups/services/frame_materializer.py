"""Export the frames of a flow plan and write them to a run's scratch space.

All frame ids of a plan go to Figma in one bulk export call per attempt (or
one per sub-batch when sub-batching is on). A rate-limited batch is retried
as a whole; frames Figma could not export are skipped.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mockups.exceptions import InvalidCredentialError, RateLimitedError
from mockups.schemas.figma import FrameExport
from mockups.schemas.flow_plan import FlowPlan, Transition
from mockups.services.figma_client import FigmaApiError, FigmaClient, FigmaRateLimitError
from mockups.services.retry import RetryPolicy, attempt
from mockups.utils.scratch import ScratchSpace

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def sanitize_frame_id(frame_id: str) -> str:
    """Figma node ids look like "12:34"; make them filename-safe."""
    return _UNSAFE_CHARS.sub("_", frame_id)


@dataclass
class MaterializedFrame:
    """A plan entry with its exported image on local disk."""

    id: str
    name: str
    duration: float
    transition: Transition
    path: Path


class FrameMaterializer:
    """Bulk-export plan frames from Figma into a scratch directory."""

    def __init__(
        self,
        client: FigmaClient,
        policy: RetryPolicy | None = None,
        batch_size: int | None = None,
        batch_pause: float = 0.5,
        image_format: str = "png",
        scale: float = 1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.policy = policy or RetryPolicy()
        self.batch_size = batch_size if batch_size and batch_size > 0 else None
        self.batch_pause = batch_pause
        self.image_format = image_format
        self.scale = scale
        self._sleep = sleep

    def _batches(self, frame_ids: list[str], batch_size: int | None) -> list[list[str]]:
        size = batch_size if batch_size and batch_size > 0 else self.batch_size
        if size is None:
            return [frame_ids]
        return [frame_ids[i : i + size] for i in range(0, len(frame_ids), size)]

    async def _export_batch(self, token: str, file_key: str, batch: list[str]) -> list[FrameExport]:
        outcome = await attempt(
            lambda: self.client.export_frames(
                token, file_key, batch, format=self.image_format, scale=self.scale
            ),
            self.policy,
            (FigmaRateLimitError,),
            sleep=self._sleep,
            label=f"export of {len(batch)} frames",
        )
        if outcome.exhausted:
            raise RateLimitedError() from outcome.error
        return outcome.value or []

    async def export_urls(
        self,
        token: str,
        file_key: str,
        frame_ids: list[str],
        batch_size: int | None = None,
    ) -> dict[str, str]:
        """Bulk-export frame_ids and return {frame_id: image_url}.

        Raises:
            RateLimitedError: A batch was still rate limited after all attempts
            InvalidCredentialError: Figma rejected the token
        """
        unique_ids = list(dict.fromkeys(frame_ids))
        batches = self._batches(unique_ids, batch_size)
        urls: dict[str, str] = {}

        for index, batch in enumerate(batches):
            logger.info(
                f"[materialize] Exporting {len(batch)} frames in a single batch call "
                f"({index + 1}/{len(batches)})"
            )
            try:
                exports = await self._export_batch(token, file_key, batch)
            except FigmaApiError as e:
                if e.status_code in (401, 403):
                    raise InvalidCredentialError() from e
                # Keep frames from earlier batches
                logger.warning(f"[materialize] Export batch {index + 1} failed, skipping: {e}")
                exports = []

            for export in exports:
                urls[export.frame_id] = export.image_url

            if index < len(batches) - 1 and self.batch_pause > 0:
                await self._sleep(self.batch_pause)

        return urls

    async def materialize(
        self,
        token: str,
        file_key: str,
        plan: FlowPlan,
        scratch: ScratchSpace,
        batch_size: int | None = None,
    ) -> list[MaterializedFrame]:
        """Export and download every plan frame, preserving plan order.

        Frames missing from the export result, or whose download fails, are
        left out. An empty result is for the caller to reject.
        """
        urls = await self.export_urls(token, file_key, plan.frame_ids, batch_size)

        downloaded: dict[str, bytes] = {}
        materialized: list[MaterializedFrame] = []

        for index, frame in enumerate(plan.frames):
            image_url = urls.get(frame.id)
            if not image_url:
                logger.info(f"[materialize] No export for frame {frame.id} ({frame.name}), skipping")
                continue

            if frame.id not in downloaded:
                try:
                    downloaded[frame.id] = await self.client.download_image(image_url)
                except FigmaApiError as e:
                    logger.warning(f"[materialize] Download failed for frame {frame.id}: {e}")
                    continue

            path = scratch.track(
                scratch.file(f"frame_{index:03d}_{sanitize_frame_id(frame.id)}.{self.image_format}")
            )
            path.write_bytes(downloaded[frame.id])

            materialized.append(
                MaterializedFrame(
                    id=frame.id,
                    name=frame.name,
                    duration=frame.duration,
                    transition=frame.transition,
                    path=path,
                )
            )

        logger.info(f"[materialize] Materialized {len(materialized)}/{len(plan.frames)} frames")
        return materialized
