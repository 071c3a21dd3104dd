"""Error codes dictionary for the SceneCast API.

This is the single source of truth for all error codes, their retryability,
and suggested recovery actions. Used by exception handlers to generate
machine-readable error responses.
"""

from typing import Any, TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_action: str
    suggested_endpoint: str
    suggested_fix: str
    parameters: dict[str, Any]


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Descriptor errors (not retryable, fix input)
    # ==========================================================================
    "MALFORMED_DESCRIPTOR": {
        "retryable": False,
        "suggested_fix": "Send an object with a 'scenes' array; each scene needs an 'image'",
    },
    "EMPTY_DESCRIPTOR": {
        "retryable": False,
        "suggested_fix": "Add at least one scene",
    },
    "INVALID_SCENE_DURATION": {
        "retryable": False,
        "suggested_fix": "Scene durations must be greater than 0 seconds",
    },
    "MISSING_ASSET_PATH": {
        "retryable": False,
    },
    # ==========================================================================
    # Resource errors
    # ==========================================================================
    "UNKNOWN_PROJECT": {
        "retryable": False,
        "suggested_action": "create_project",
        "suggested_endpoint": "POST /api/projects",
    },
    # ==========================================================================
    # Asset validation errors (not retryable, upload a different file)
    # ==========================================================================
    "VALIDATION_FAILED": {
        "retryable": False,
    },
    "EMPTY_ASSET": {
        "retryable": False,
        "suggested_fix": "Upload a non-empty file",
    },
    "UNSUPPORTED_EXTENSION": {
        "retryable": False,
        "suggested_fix": "Use one of: jpg, jpeg, png, gif, mp3, wav, m4a, mp4, mov",
    },
    "CONTENT_TYPE_MISMATCH": {
        "retryable": False,
        "suggested_fix": "Send a Content-Type whose category matches the file extension",
    },
    "ASSET_TOO_LARGE": {
        "retryable": False,
    },
    "UNEXPECTED_ASSET": {
        "retryable": False,
        "suggested_action": "check_status",
        "suggested_endpoint": "GET /api/projects/{project_id}/status",
    },
    # ==========================================================================
    # State errors
    # ==========================================================================
    "NOT_READY": {
        "retryable": True,
        "suggested_action": "upload_missing_assets",
        "suggested_endpoint": "GET /api/projects/{project_id}/status",
    },
    "ALREADY_ASSEMBLING": {
        "retryable": True,
        "suggested_action": "wait_and_retry",
        "parameters": {"delay_ms": 5000},
    },
    "PROJECT_COMPLETED": {
        "retryable": False,
        "suggested_action": "download_output",
        "suggested_endpoint": "GET /api/projects/{project_id}/output",
    },
    # ==========================================================================
    # External tool errors
    # ==========================================================================
    "TRANSCODE_FAILED": {
        "retryable": False,
    },
    "TRANSCODE_TIMEOUT": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 10000, "max_retries": 1},
    },
    # ==========================================================================
    # System errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
    "STORAGE_ERROR": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested actions
    """
    return ERROR_CODES.get(code, {"retryable": False})
