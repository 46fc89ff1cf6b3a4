"""Tests for the Figma REST client, against a mocked HTTP transport."""

import httpx
import pytest

from mockups.services.figma_client import (
    FigmaApiError,
    FigmaClient,
    FigmaRateLimitError,
    parse_file_key_from_url,
)
from mockups.services.figma_files import translate_figma_error

FILE_RESPONSE = {
    "name": "Checkout",
    "lastModified": "2024-05-01T10:00:00Z",
    "thumbnailUrl": "https://thumbs.example/checkout.png",
    "document": {
        "id": "0:0",
        "type": "DOCUMENT",
        "children": [
            {
                "id": "0:1",
                "name": "Page 1",
                "type": "CANVAS",
                "children": [
                    {
                        "id": "1:1",
                        "name": "Home",
                        "type": "FRAME",
                        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 390, "height": 844},
                        "children": [
                            {
                                "id": "1:5",
                                "name": "Buy button",
                                "type": "INSTANCE",
                                "reactions": [
                                    {
                                        "action": {"type": "NODE", "destinationId": "1:2"},
                                        "trigger": {"type": "ON_CLICK"},
                                    }
                                ],
                            }
                        ],
                    },
                    {
                        "id": "1:2",
                        "name": "Cart",
                        "type": "FRAME",
                        "transitionNodeID": "1:3",
                    },
                    {"id": "1:3", "name": "Done", "type": "FRAME"},
                    {"id": "1:9", "name": "Logo", "type": "GROUP"},
                ],
            }
        ],
    },
}


def make_client(handler) -> FigmaClient:
    return FigmaClient(api_base="https://figma.test/v1", transport=httpx.MockTransport(handler))


# =============================================================================
# URL parsing
# =============================================================================


class TestParseFileKey:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.figma.com/file/AbC123/Checkout",
            "https://www.figma.com/design/AbC123/Checkout?node-id=1-2",
            "https://www.figma.com/proto/AbC123/Checkout?page-id=0%3A1",
            "https://www.figma.com/board/AbC123/Ideas",
        ],
    )
    def test_extracts_key(self, url):
        assert parse_file_key_from_url(url) == "AbC123"

    @pytest.mark.parametrize("url", ["", "https://example.com/file/AbC123", "figma.com/"])
    def test_rejects_non_figma_urls(self, url):
        assert parse_file_key_from_url(url) is None


# =============================================================================
# File data
# =============================================================================


class TestGetFileData:
    @pytest.mark.asyncio
    async def test_single_call_parses_frames_and_connections(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=FILE_RESPONSE)

        data = await make_client(handler).get_file_data("figd_token", "AbC123")

        assert len(requests) == 1
        assert requests[0].url.path == "/v1/files/AbC123"
        assert requests[0].url.params["depth"] == "2"
        assert requests[0].headers["X-Figma-Token"] == "figd_token"

        assert data.details.name == "Checkout"
        assert [page.name for page in data.details.pages] == ["Page 1"]
        assert [frame.id for frame in data.frames] == ["1:1", "1:2", "1:3"]
        assert data.frames[0].width == 390

        pairs = [(c.source_node_id, c.destination_node_id) for c in data.connections]
        assert pairs == [("1:5", "1:2"), ("1:2", "1:3")]
        assert data.connections[0].source_node_name == "Buy button"

    @pytest.mark.asyncio
    async def test_rate_limit_raises_specific_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"retry-after": "45"})

        with pytest.raises(FigmaRateLimitError) as exc_info:
            await make_client(handler).get_file_data("figd_token", "AbC123")

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == "45"

    @pytest.mark.asyncio
    async def test_error_status_keeps_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"status": 403, "err": "Invalid token"})

        with pytest.raises(FigmaApiError) as exc_info:
            await make_client(handler).get_file_data("figd_bad", "AbC123")

        assert exc_info.value.status_code == 403
        assert not isinstance(exc_info.value, FigmaRateLimitError)

    @pytest.mark.asyncio
    async def test_transport_failure_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FigmaApiError):
            await make_client(handler).get_file_data("figd_token", "AbC123")

    @pytest.mark.asyncio
    async def test_non_json_body_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(FigmaApiError) as exc_info:
            await make_client(handler).get_file_data("figd_token", "AbC123")

        assert translate_figma_error(exc_info.value).code == "FRAME_SOURCE_ERROR"


# =============================================================================
# Exports
# =============================================================================


class TestExportFrames:
    @pytest.mark.asyncio
    async def test_bulk_export_drops_null_urls(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "err": None,
                    "images": {
                        "1:1": "https://s3.example/1.png",
                        "1:2": None,
                        "1:3": "https://s3.example/3.png",
                    },
                },
            )

        exports = await make_client(handler).export_frames(
            "figd_token", "AbC123", ["1:1", "1:2", "1:3"], scale=2
        )

        assert len(requests) == 1
        assert requests[0].url.path == "/v1/images/AbC123"
        assert requests[0].url.params["ids"] == "1:1,1:2,1:3"
        assert requests[0].url.params["format"] == "png"
        assert requests[0].url.params["scale"] == "2"
        assert {e.frame_id: e.image_url for e in exports} == {
            "1:1": "https://s3.example/1.png",
            "1:3": "https://s3.example/3.png",
        }

    @pytest.mark.asyncio
    async def test_no_ids_makes_no_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        assert await make_client(handler).export_frames("figd_token", "AbC123", []) == []

    @pytest.mark.asyncio
    async def test_error_field_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"err": "Render timeout", "status": 500})

        with pytest.raises(FigmaApiError):
            await make_client(handler).export_frames("figd_token", "AbC123", ["1:1"])

    @pytest.mark.asyncio
    async def test_export_rate_limit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        with pytest.raises(FigmaRateLimitError):
            await make_client(handler).export_frames("figd_token", "AbC123", ["1:1"])


class TestDownloadAndMe:
    @pytest.mark.asyncio
    async def test_download_returns_bytes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"\x89PNG")

        assert await make_client(handler).download_image("https://s3.example/1.png") == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_download_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        with pytest.raises(FigmaApiError) as exc_info:
            await make_client(handler).download_image("https://s3.example/gone.png")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_get_me(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/me"
            return httpx.Response(200, json={"email": "designer@example.com"})

        assert (await make_client(handler).get_me("figd_token"))["email"] == "designer@example.com"
