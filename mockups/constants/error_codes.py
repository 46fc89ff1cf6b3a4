"""Error codes dictionary for the Mockups Library API.

This is the single source of truth for all error codes, their retryability,
and the human-readable suggestion shown next to the error message. Used by
the exception handlers to generate machine-checkable error responses.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggestion: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Validation errors (not retryable, fix input)
    # ==========================================================================
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    "MISSING_REQUIRED_FIELD": {
        "retryable": False,
    },
    "INVALID_FIELD_VALUE": {
        "retryable": False,
    },
    "INVALID_SOURCE_URL": {
        "retryable": False,
        "suggestion": "Use a Figma file, design, prototype or board URL "
        "(https://www.figma.com/design/<key>/...).",
    },
    "NO_FRAMES_RESOLVED": {
        "retryable": False,
        "suggestion": "Select at least 2 frames, or add prototype connections "
        "between the frames in Figma.",
    },
    # ==========================================================================
    # Credential errors (user must configure)
    # ==========================================================================
    "CREDENTIAL_MISSING": {
        "retryable": False,
        "suggestion": "Go to Settings and add a Figma personal access token.",
    },
    "INVALID_CREDENTIAL": {
        "retryable": False,
        "suggestion": "Check your Figma access token, or use a token from a "
        "different account.",
    },
    # ==========================================================================
    # Resource errors
    # ==========================================================================
    "ASSET_NOT_FOUND": {
        "retryable": False,
    },
    "FLOW_NOT_FOUND": {
        "retryable": False,
    },
    # ==========================================================================
    # External collaborator errors
    # ==========================================================================
    "RATE_LIMITED": {
        "retryable": True,
        "suggestion": "Figma is rate limiting requests. Wait a few minutes and "
        "try again, or use a token from a different account.",
    },
    "FRAME_SOURCE_ERROR": {
        "retryable": True,
        "suggestion": "The Figma API returned an error. Try again shortly.",
    },
    "PLANNER_FAILED": {
        "retryable": True,
        "suggestion": "The AI planner could not produce a flow. Try again or "
        "rephrase the description.",
    },
    # ==========================================================================
    # Pipeline errors (terminal for the run)
    # ==========================================================================
    "NO_FRAMES_MATERIALIZED": {
        "retryable": False,
        "suggestion": "No frames could be exported from Figma. Check that the "
        "frames still exist and are visible.",
    },
    "ENCODING_FAILED": {
        "retryable": False,
        "suggestion": "Failed to create video. Make sure FFmpeg is installed "
        "and configured (FFMPEG_PATH).",
    },
    "ENVIRONMENT_UNSUPPORTED": {
        "retryable": False,
        "suggestion": "Video generation requires FFmpeg. Run the app in an "
        "environment with the encoder installed.",
    },
    # ==========================================================================
    # Request / system errors
    # ==========================================================================
    "BAD_REQUEST": {
        "retryable": False,
    },
    "NOT_FOUND": {
        "retryable": False,
    },
    "UNAUTHORIZED": {
        "retryable": False,
    },
    "INTERNAL_ERROR": {
        "retryable": True,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and default suggestion
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
