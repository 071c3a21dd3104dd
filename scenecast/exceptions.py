"""Custom exceptions for the SceneCast engine.

Every error carries a machine-readable code, an HTTP status and, where it
helps the caller self-correct, the location (asset name, scene index) of
the offending input.
"""

from scenecast.constants.error_codes import get_error_spec
from scenecast.schemas.envelope import ErrorInfo, ErrorLocation, SuggestedAction


class SceneCastError(Exception):
    """Base exception for all SceneCast errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
        details: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.location = location
        self.suggested_fix = suggested_fix
        self.details = details
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        retryable = spec.get("retryable", False)

        suggested_actions: list[SuggestedAction] = []
        if "suggested_action" in spec:
            action = SuggestedAction(
                action=spec["suggested_action"],
                endpoint=spec.get("suggested_endpoint"),
                parameters=spec.get("parameters", {}),
            )
            suggested_actions.append(action)

        # Explicit suggested_fix on the exception wins over the ERROR_CODES default
        suggested_fix = self.suggested_fix or spec.get("suggested_fix")

        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=retryable,
            suggested_fix=suggested_fix,
            suggested_actions=suggested_actions,
            details=self.details,
        )


# =============================================================================
# Descriptor Errors (400)
# =============================================================================


class DescriptorError(SceneCastError):
    """Base class for scene descriptor errors."""

    status_code = 400


class MalformedDescriptorError(DescriptorError):
    """Descriptor is not a well-formed object."""

    code = "MALFORMED_DESCRIPTOR"
    message = "Malformed scene descriptor"

    def __init__(self, reason: str | None = None, *, field: str | None = None):
        message = f"Malformed scene descriptor: {reason}" if reason else self.message
        location = ErrorLocation(field=field) if field else None
        super().__init__(message, location=location)


class EmptyDescriptorError(DescriptorError):
    """Descriptor has no scenes."""

    code = "EMPTY_DESCRIPTOR"
    message = "Scene descriptor contains no scenes"

    def __init__(self):
        super().__init__(location=ErrorLocation(field="scenes"))


class InvalidSceneDurationError(DescriptorError):
    """Scene duration is not strictly positive."""

    code = "INVALID_SCENE_DURATION"
    message = "Scene duration must be greater than 0"

    def __init__(self, scene_index: int, duration: float):
        message = f"Scene {scene_index} has invalid duration {duration}s (must be > 0)"
        super().__init__(
            message,
            location=ErrorLocation(field="duration", scene_index=scene_index),
        )


class MissingAssetPathError(DescriptorError):
    """A referenced asset has no resolved local path."""

    code = "MISSING_ASSET_PATH"
    message = "Asset has no resolved path"

    def __init__(self, asset_name: str, scene_index: int | None = None):
        super().__init__(
            f"Asset has no resolved path: {asset_name}",
            location=ErrorLocation(asset_name=asset_name, scene_index=scene_index),
        )


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class UnknownProjectError(SceneCastError):
    """Project not found in the registry."""

    code = "UNKNOWN_PROJECT"
    status_code = 404
    message = "Project not found"

    def __init__(self, project_id: str | None = None):
        message = f"Project not found: {project_id}" if project_id else self.message
        location = ErrorLocation(project_id=project_id) if project_id else None
        super().__init__(message, location=location)


# =============================================================================
# Asset Validation Errors (400)
# =============================================================================


class AssetValidationError(SceneCastError):
    """Base class for rejected uploads."""

    code = "VALIDATION_FAILED"
    status_code = 400
    message = "Asset failed validation"

    def __init__(self, message: str | None = None, *, asset_name: str | None = None):
        self.asset_name = asset_name
        location = ErrorLocation(asset_name=asset_name) if asset_name else None
        super().__init__(message, location=location)


class EmptyAssetError(AssetValidationError):
    """Uploaded asset has zero bytes."""

    code = "EMPTY_ASSET"
    message = "Asset is empty"

    def __init__(self, asset_name: str):
        super().__init__(f"Asset is empty: {asset_name}", asset_name=asset_name)


class UnsupportedExtensionError(AssetValidationError):
    """Asset name has an extension outside the allow-list."""

    code = "UNSUPPORTED_EXTENSION"
    message = "Unsupported file extension"

    def __init__(self, asset_name: str, extension: str):
        shown = f".{extension}" if extension else "(none)"
        super().__init__(
            f"Unsupported file extension {shown} for asset: {asset_name}",
            asset_name=asset_name,
        )


class ContentTypeMismatchError(AssetValidationError):
    """Declared content type does not match the extension's category."""

    code = "CONTENT_TYPE_MISMATCH"
    message = "Content type does not match file extension"

    def __init__(self, asset_name: str, content_type: str, expected_category: str):
        super().__init__(
            f"Content type '{content_type}' does not match {expected_category} "
            f"asset: {asset_name}",
            asset_name=asset_name,
        )


class AssetTooLargeError(AssetValidationError):
    """Asset exceeds the configured upload size."""

    code = "ASSET_TOO_LARGE"
    status_code = 413
    message = "Asset exceeds maximum upload size"

    def __init__(self, asset_name: str, size_bytes: int, max_bytes: int):
        super().__init__(
            f"Asset {asset_name} is {size_bytes} bytes (max: {max_bytes})",
            asset_name=asset_name,
        )


class UnexpectedAssetError(AssetValidationError):
    """Asset name is not referenced by the project's descriptor."""

    code = "UNEXPECTED_ASSET"
    message = "Asset is not required by this project"

    def __init__(self, asset_name: str):
        super().__init__(
            f"Asset is not required by this project: {asset_name}",
            asset_name=asset_name,
        )


# =============================================================================
# State Errors (409)
# =============================================================================


class ProjectStateError(SceneCastError):
    """Base class for operations not allowed in the project's current state."""

    status_code = 409


class NotReadyError(ProjectStateError):
    """Required assets are still missing."""

    code = "NOT_READY"
    message = "Project is not ready for assembly"

    def __init__(self, project_id: str, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Project {project_id} is missing assets: {', '.join(missing)}",
            location=ErrorLocation(project_id=project_id),
        )


class AlreadyAssemblingError(ProjectStateError):
    """Another assembly is already running for the project."""

    code = "ALREADY_ASSEMBLING"
    message = "Project is already being assembled"

    def __init__(self, project_id: str):
        super().__init__(
            f"Project is already being assembled: {project_id}",
            location=ErrorLocation(project_id=project_id),
        )


class ProjectCompletedError(ProjectStateError):
    """Project already produced its output and cannot change."""

    code = "PROJECT_COMPLETED"
    message = "Project has already been assembled"

    def __init__(self, project_id: str):
        super().__init__(
            f"Project has already been assembled: {project_id}",
            location=ErrorLocation(project_id=project_id),
        )


# =============================================================================
# External Tool Errors (502/504)
# =============================================================================


class TranscodeFailedError(SceneCastError):
    """FFmpeg exited non-zero or produced no output."""

    code = "TRANSCODE_FAILED"
    status_code = 502
    message = "Transcoding failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        returncode: int | None = None,
        diagnostics: str = "",
    ):
        self.returncode = returncode
        self.diagnostics = diagnostics
        msg = message or self.message
        if returncode is not None:
            msg = f"{msg} (exit code {returncode})"
        super().__init__(msg, details=diagnostics or None)


class TranscodeTimeoutError(TranscodeFailedError):
    """FFmpeg did not finish within the configured timeout."""

    code = "TRANSCODE_TIMEOUT"
    status_code = 504

    def __init__(self, timeout_s: float, diagnostics: str = ""):
        super().__init__(
            f"Transcoding timed out after {timeout_s}s",
            diagnostics=diagnostics,
        )


# =============================================================================
# System Errors (500)
# =============================================================================


class StorageError(SceneCastError):
    """Scratch storage could not be written."""

    code = "STORAGE_ERROR"
    status_code = 500
    message = "Storage error"
