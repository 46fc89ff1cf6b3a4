"""Tests for per-run scratch directories and local file storage."""

import pytest

from mockups.constants.error_codes import is_retryable
from mockups.exceptions import CredentialMissingError, RateLimitedError
from mockups.services.figma_client import FigmaApiError, FigmaRateLimitError
from mockups.services.figma_files import translate_figma_error
from mockups.services.storage_service import LocalStorageService
from mockups.utils.scratch import ScratchSpace


class TestScratchSpace:
    def test_unique_directories(self, tmp_path):
        first = ScratchSpace(tmp_path).create()
        second = ScratchSpace(tmp_path).create()

        assert first.path != second.path
        assert first.path.is_dir() and second.path.is_dir()

    def test_cleanup_removes_tracked_and_untracked_files(self, tmp_path):
        scratch = ScratchSpace(tmp_path).create()
        tracked = scratch.track(scratch.file("frame_000.png"))
        tracked.write_bytes(b"png")
        scratch.file("stray.txt").write_text("x")

        scratch.cleanup()

        assert not scratch.path.exists()
        assert scratch.files == []

    def test_cleanup_is_idempotent(self, tmp_path):
        scratch = ScratchSpace(tmp_path).create()
        scratch.cleanup()
        scratch.cleanup()

        assert list(tmp_path.iterdir()) == []

    def test_context_manager_cleans_up_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with ScratchSpace(tmp_path) as scratch:
                scratch.track(scratch.file("frame.png")).write_bytes(b"png")
                raise RuntimeError("encoder crashed")

        assert list(tmp_path.iterdir()) == []


class TestLocalStorage:
    def test_upload_and_url(self, tmp_path):
        storage = LocalStorageService(tmp_path, "http://testserver/")

        url = storage.upload_file_from_bytes("frames/a.png", b"png")

        assert url == "http://testserver/api/storage/files/frames/a.png"
        assert storage.file_exists("frames/a.png")
        assert storage.get_file_path("frames/a.png").read_bytes() == b"png"

    def test_upload_local_file(self, tmp_path):
        source = tmp_path / "output.mp4"
        source.write_bytes(b"mp4")
        storage = LocalStorageService(tmp_path / "storage", "http://testserver")

        storage.upload_file(source, "videos/out.mp4")

        assert storage.get_file_path("videos/out.mp4").read_bytes() == b"mp4"

    def test_rejects_path_traversal(self, tmp_path):
        storage = LocalStorageService(tmp_path / "storage", "http://testserver")

        with pytest.raises(ValueError):
            storage.upload_file_from_bytes("../escape.txt", b"x")

    def test_lookups_do_not_create_directories(self, tmp_path):
        storage = LocalStorageService(tmp_path, "http://testserver")

        assert storage.file_exists("a/b/c.png") is False
        assert storage.delete_file("a/b/c.png") is False
        storage.get_file_path("a/b/c.png")

        assert list(tmp_path.iterdir()) == []

    def test_delete(self, tmp_path):
        storage = LocalStorageService(tmp_path, "http://testserver")
        storage.upload_file_from_bytes("frames/a.png", b"png")

        assert storage.delete_file("frames/a.png") is True
        assert not storage.file_exists("frames/a.png")


class TestErrorTranslation:
    def test_rate_limit(self):
        assert isinstance(translate_figma_error(FigmaRateLimitError()), RateLimitedError)

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected_token(self, status_code):
        error = translate_figma_error(FigmaApiError("nope", status_code=status_code))

        assert error.code == "INVALID_CREDENTIAL"
        assert error.status_code == 401

    def test_not_found(self):
        error = translate_figma_error(FigmaApiError("missing", status_code=404))

        assert error.code == "FRAME_SOURCE_ERROR"
        assert error.message == "Figma file not found"

    def test_error_body(self):
        body = CredentialMissingError().to_response()

        assert body.code == "CREDENTIAL_MISSING"
        assert body.retryable is False
        assert body.suggestion

    def test_retryable_flags(self):
        assert is_retryable("RATE_LIMITED") is True
        assert is_retryable("ENVIRONMENT_UNSUPPORTED") is False
        assert is_retryable("UNKNOWN_CODE") is False
        assert RateLimitedError().retryable is True
