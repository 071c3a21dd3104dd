"""Upload validation: an asset must be non-empty, carry an allowed extension and
declare a content type of the same category as that extension."""

from scenecast.config import get_settings
from scenecast.constants.media_types import EXTENSION_CATEGORIES, AssetCategory
from scenecast.exceptions import (
    AssetTooLargeError,
    ContentTypeMismatchError,
    EmptyAssetError,
    UnsupportedExtensionError,
)


def file_extension(name: str) -> str:
    """Lowercase extension without the dot, or "" when the name has none."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def content_type_category(content_type: str | None) -> str:
    """Primary category of a MIME type ("audio/mpeg; x=y" -> "audio")."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].split("/", 1)[0].strip().lower()


def validate_asset(
    name: str,
    size_bytes: int,
    content_type: str | None,
    max_size_bytes: int | None = None,
) -> AssetCategory:
    """Check an uploaded asset against the name it claims to satisfy.

    Args:
        name: Asset name as referenced by the descriptor
        size_bytes: Size of the uploaded payload
        content_type: Declared MIME type of the payload
        max_size_bytes: Upload limit, defaults to settings.max_upload_size_mb

    Returns:
        The category implied by the extension

    Raises:
        EmptyAssetError: Payload is empty
        AssetTooLargeError: Payload exceeds the upload limit
        UnsupportedExtensionError: Extension not in the allow-list
        ContentTypeMismatchError: MIME category differs from the extension's
    """
    if size_bytes <= 0:
        raise EmptyAssetError(name)

    if max_size_bytes is None:
        max_size_bytes = get_settings().max_upload_size_mb * 1024 * 1024
    if max_size_bytes > 0 and size_bytes > max_size_bytes:
        raise AssetTooLargeError(name, size_bytes, max_size_bytes)

    extension = file_extension(name)
    expected = EXTENSION_CATEGORIES.get(extension)
    if expected is None:
        raise UnsupportedExtensionError(name, extension)

    if content_type_category(content_type) != expected.value:
        raise ContentTypeMismatchError(name, content_type or "", expected.value)

    return expected
