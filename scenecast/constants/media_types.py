"""Asset extension allow-list and MIME types used for uploads and downloads."""

from enum import Enum


class AssetCategory(str, Enum):
    """Primary media category of an asset."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


# Extension (lowercase, no dot) -> category
EXTENSION_CATEGORIES: dict[str, AssetCategory] = {
    "jpg": AssetCategory.IMAGE,
    "jpeg": AssetCategory.IMAGE,
    "png": AssetCategory.IMAGE,
    "gif": AssetCategory.IMAGE,
    "mp3": AssetCategory.AUDIO,
    "wav": AssetCategory.AUDIO,
    "m4a": AssetCategory.AUDIO,
    "mp4": AssetCategory.VIDEO,
    "mov": AssetCategory.VIDEO,
}

# Determine media type from extension when serving files
MEDIA_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}
