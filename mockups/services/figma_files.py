"""Cached, rate-limit aware access to Figma file metadata."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mockups.exceptions import (
    FrameSourceError,
    InvalidCredentialError,
    MockupsError,
    RateLimitedError,
)
from mockups.schemas.figma import FigmaFileData
from mockups.services.figma_client import FigmaApiError, FigmaClient, FigmaRateLimitError
from mockups.services.file_data_cache import FileDataCache
from mockups.services.retry import RetryPolicy, attempt

logger = logging.getLogger(__name__)


def translate_figma_error(error: FigmaApiError) -> MockupsError:
    """Map a Figma API failure onto the application error taxonomy."""
    if isinstance(error, FigmaRateLimitError):
        return RateLimitedError()
    if error.status_code in (401, 403):
        return InvalidCredentialError()
    if error.status_code == 404:
        return FrameSourceError(
            "Figma file not found",
            suggestion="Check the URL and that the token's account can open the file.",
        )
    return FrameSourceError(str(error))


async def load_file_data(
    client: FigmaClient,
    cache: FileDataCache[FigmaFileData],
    token: str,
    file_key: str,
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> FigmaFileData:
    """Read file data through the cache, retrying the fetch when rate limited.

    Raises:
        RateLimitedError: Still rate limited after all attempts
        InvalidCredentialError: Figma rejected the token
        FrameSourceError: Any other Figma API failure
    """

    async def fetch() -> FigmaFileData:
        outcome = await attempt(
            lambda: client.get_file_data(token, file_key),
            policy,
            (FigmaRateLimitError,),
            sleep=sleep,
            label=f"file data fetch for {file_key}",
        )
        if outcome.exhausted:
            raise RateLimitedError() from outcome.error
        return outcome.value

    if file_key in cache:
        logger.info(f"[figma] Using cached file data for {file_key}")

    try:
        return await cache.get_or_load(file_key, fetch)
    except FigmaApiError as e:
        raise translate_figma_error(e) from e
