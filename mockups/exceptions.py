"""Custom exceptions for the mockups backend.

Every exception carries a machine-checkable error code and, where the user
can act on it, a human-readable suggestion (e.g. "wait a few minutes").
"""

from typing import Any

from mockups.constants.error_codes import get_error_spec
from mockups.schemas.error import ErrorResponse


class MockupsError(Exception):
    """Base exception for all mockups application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        suggestion: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.suggestion = suggestion
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    def to_response(self) -> ErrorResponse:
        """Convert exception to the API error body."""
        spec = get_error_spec(self.code)
        return ErrorResponse(
            error=self.message,
            code=self.code,
            retryable=spec.get("retryable", False),
            suggestion=self.suggestion or spec.get("suggestion"),
        )


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(MockupsError):
    """Base class for validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Invalid request"


class MissingRequiredFieldError(ValidationError):
    """Required field is missing."""

    code = "MISSING_REQUIRED_FIELD"
    message = "Required field is missing"

    def __init__(self, field: str | None = None, message: str | None = None):
        if message is None and field:
            message = f"{field} is required"
        super().__init__(message)


class InvalidFieldValueError(ValidationError):
    """Field value is invalid."""

    code = "INVALID_FIELD_VALUE"
    message = "Invalid field value"

    def __init__(self, message: str | None = None, *, field: str | None = None, value: Any = None):
        msg = message or self.message
        if message is None and field and value is not None:
            msg = f"Invalid value for field '{field}': {value}"
        super().__init__(msg)


class InvalidSourceUrlError(ValidationError):
    """The design file URL cannot be parsed into a file key."""

    code = "INVALID_SOURCE_URL"
    message = "Invalid Figma URL. Please use a valid Figma file or prototype URL."


class NoFramesResolvedError(ValidationError):
    """The flow plan has too few frames to build a video."""

    code = "NO_FRAMES_RESOLVED"
    message = "Could not generate a flow from the Figma file"


# =============================================================================
# Credential Errors (401)
# =============================================================================


class CredentialMissingError(MockupsError):
    """A required API credential is not configured."""

    code = "CREDENTIAL_MISSING"
    status_code = 401
    message = "Figma access token not configured"


class InvalidCredentialError(MockupsError):
    """The configured credential was rejected by the external service."""

    code = "INVALID_CREDENTIAL"
    status_code = 401
    message = "Invalid token. Please check your Figma access token."


# =============================================================================
# Not Found Errors (404)
# =============================================================================


class ResourceNotFoundError(MockupsError):
    """Base class for resource not found errors."""

    code = "NOT_FOUND"
    status_code = 404


class AssetNotFoundError(ResourceNotFoundError):
    """Asset not found."""

    code = "ASSET_NOT_FOUND"
    message = "Asset not found"

    def __init__(self, asset_id: Any = None):
        message = f"Asset not found: {asset_id}" if asset_id else self.message
        super().__init__(message)


class FlowNotFoundError(ResourceNotFoundError):
    """Flow not found."""

    code = "FLOW_NOT_FOUND"
    message = "Flow not found"

    def __init__(self, flow_id: Any = None):
        message = f"Flow not found: {flow_id}" if flow_id else self.message
        super().__init__(message)


# =============================================================================
# External Collaborator Errors (429/502)
# =============================================================================


class RateLimitedError(MockupsError):
    """The frame source kept rate limiting after all retries."""

    code = "RATE_LIMITED"
    status_code = 429
    message = "Figma API rate limit exceeded. Please wait a few minutes and try again."


class FrameSourceError(MockupsError):
    """The frame source failed with a non rate-limit error."""

    code = "FRAME_SOURCE_ERROR"
    status_code = 502
    message = "Figma API error"


class PlannerError(MockupsError):
    """The AI flow planner failed."""

    code = "PLANNER_FAILED"
    status_code = 500
    message = "AI generation failed"


# =============================================================================
# Pipeline Errors (500/503)
# =============================================================================


class NoFramesMaterializedError(MockupsError):
    """None of the planned frames could be exported."""

    code = "NO_FRAMES_MATERIALIZED"
    status_code = 500
    message = "Failed to export any frames from Figma"


class EncodingFailedError(MockupsError):
    """The external encoder failed, timed out or is missing."""

    code = "ENCODING_FAILED"
    status_code = 500
    message = "Failed to create video. Make sure FFmpeg is installed."


class EnvironmentUnsupportedError(MockupsError):
    """Video encoding is not available in this deployment."""

    code = "ENVIRONMENT_UNSUPPORTED"
    status_code = 503
    message = (
        "Video generation is not available in this deployment. "
        "This feature requires FFmpeg."
    )
