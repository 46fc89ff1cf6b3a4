"""Figma REST API client.

Metadata for a whole file (pages, top-level frames and prototype
connections) comes from a single ``GET /files/{key}?depth=2`` call; image
exports are bulk ``GET /images/{key}`` calls. A 429 response is raised as
``FigmaRateLimitError`` so callers can retry on it specifically.
"""

import logging
import re
from typing import Any

import httpx

from mockups.schemas.figma import (
    FigmaFileData,
    FigmaFileDetails,
    FigmaFrame,
    FigmaPage,
    FrameExport,
)
from mockups.schemas.flow_plan import PrototypeConnection

logger = logging.getLogger(__name__)

FIGMA_URL_PATTERN = re.compile(r"figma\.com/(file|design|proto|board)/([a-zA-Z0-9]+)")


class FigmaApiError(Exception):
    """Non-2xx response (or transport failure) from the Figma API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class FigmaRateLimitError(FigmaApiError):
    """Figma answered 429 Too Many Requests."""

    def __init__(self, message: str = "Figma API rate limit exceeded", retry_after: str | None = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


def parse_file_key_from_url(url: str) -> str | None:
    """Extract the file key from a Figma file/design/proto/board URL."""
    match = FIGMA_URL_PATTERN.search(url or "")
    return match.group(2) if match else None


def _parse_file(data: dict[str, Any]) -> FigmaFileData:
    document_children = data.get("document", {}).get("children", [])

    details = FigmaFileDetails(
        name=data.get("name", ""),
        last_modified=data.get("lastModified"),
        thumbnail_url=data.get("thumbnailUrl"),
        pages=[
            FigmaPage(id=page["id"], name=page.get("name", ""))
            for page in document_children
            if page.get("type") == "CANVAS"
        ],
    )

    frames: list[FigmaFrame] = []
    connections: list[PrototypeConnection] = []

    def visit(node: dict[str, Any], depth: int) -> None:
        node_id = node["id"]
        node_name = node.get("name", "")

        # Only top-level frames (direct children of a page) are exportable screens
        if node.get("type") == "FRAME" and depth == 1:
            box = node.get("absoluteBoundingBox") or {}
            frames.append(
                FigmaFrame(
                    id=node_id,
                    name=node_name,
                    type="FRAME",
                    width=box.get("width"),
                    height=box.get("height"),
                )
            )

        for reaction in node.get("reactions") or []:
            destination_id = (reaction.get("action") or {}).get("destinationId")
            if destination_id:
                connections.append(
                    PrototypeConnection(
                        source_node_id=node_id,
                        source_node_name=node_name,
                        destination_node_id=destination_id,
                        trigger=(reaction.get("trigger") or {}).get("type") or "ON_CLICK",
                    )
                )

        # Legacy prototype links
        if node.get("transitionNodeID"):
            connections.append(
                PrototypeConnection(
                    source_node_id=node_id,
                    source_node_name=node_name,
                    destination_node_id=node["transitionNodeID"],
                    trigger="ON_CLICK",
                )
            )

        for child in node.get("children") or []:
            visit(child, depth + 1)

    for page in document_children:
        visit(page, 0)

    return FigmaFileData(details=details, frames=frames, connections=connections)


class FigmaClient:
    """Async client for the Figma REST API.

    A transport can be injected for tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_base: str = "https://api.figma.com/v1",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get_json(
        self, path: str, token: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = f"{self.api_base}{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, params=params, headers={"X-Figma-Token": token})
        except httpx.RequestError as e:
            raise FigmaApiError(f"Figma API request failed: {e}") from e

        if response.status_code == 429:
            raise FigmaRateLimitError(retry_after=response.headers.get("retry-after"))
        if response.status_code >= 400:
            raise FigmaApiError(
                f"Figma API error: {response.text}", status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as e:
            raise FigmaApiError("Figma API returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise FigmaApiError("Figma API returned an unexpected response")
        return data

    async def get_file_data(self, token: str, file_key: str) -> FigmaFileData:
        """Fetch file details, top-level frames and prototype connections."""
        logger.info(f"[figma] Fetching file data for {file_key} (single API call)")
        data = await self._get_json(f"/files/{file_key}", token, params={"depth": 2})
        file_data = _parse_file(data)
        logger.info(
            f"[figma] Got {len(file_data.frames)} frames, "
            f"{len(file_data.connections)} connections"
        )
        return file_data

    async def export_frames(
        self,
        token: str,
        file_key: str,
        frame_ids: list[str],
        format: str = "png",
        scale: float = 1,
    ) -> list[FrameExport]:
        """Export many frames in one request.

        Frames Figma could not render come back with a null URL and are
        dropped. Result order is whatever the API returns.
        """
        if not frame_ids:
            return []

        data = await self._get_json(
            f"/images/{file_key}",
            token,
            params={"ids": ",".join(frame_ids), "format": format, "scale": scale},
        )
        if data.get("err"):
            raise FigmaApiError(f"Figma export error: {data['err']}", status_code=data.get("status"))

        images = data.get("images") or {}
        return [
            FrameExport(frame_id=frame_id, image_url=image_url)
            for frame_id, image_url in images.items()
            if image_url
        ]

    async def download_image(self, url: str) -> bytes:
        try:
            async with self._client() as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.RequestError as e:
            raise FigmaApiError(f"Failed to download image: {e}") from e

        if response.status_code >= 400:
            raise FigmaApiError(
                f"Failed to download image: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.content

    async def get_me(self, token: str) -> dict[str, Any]:
        """Return the user the token belongs to (token check)."""
        return await self._get_json("/me", token)
