"""
Tests for upload validation.

Test cases:
1. Allowed extensions with matching content types pass
2. Extensions outside the allow-list always fail
3. Content type category must match the extension
4. Empty and oversized payloads fail
"""

import pytest

from scenecast.constants.media_types import AssetCategory
from scenecast.exceptions import (
    AssetTooLargeError,
    AssetValidationError,
    ContentTypeMismatchError,
    EmptyAssetError,
    UnsupportedExtensionError,
)
from scenecast.services.asset_validator import (
    content_type_category,
    file_extension,
    validate_asset,
)


class TestValidateAsset:
    """Test the validate_asset rules."""

    @pytest.mark.parametrize(
        "name,content_type,expected",
        [
            ("photo.png", "image/png", AssetCategory.IMAGE),
            ("PHOTO.JPG", "image/jpeg", AssetCategory.IMAGE),
            ("voice.mp3", "audio/mpeg", AssetCategory.AUDIO),
            ("voice.m4a", "audio/mp4", AssetCategory.AUDIO),
            ("clip.mov", "video/quicktime", AssetCategory.VIDEO),
        ],
    )
    def test_accepts_matching_asset(self, name, content_type, expected):
        assert validate_asset(name, 10, content_type) == expected

    @pytest.mark.parametrize("content_type", ["image/png", "audio/mpeg", "video/mp4", None, ""])
    def test_unsupported_extension_always_rejected(self, content_type):
        """clip.xyz is rejected whatever content type is declared."""
        with pytest.raises(UnsupportedExtensionError) as exc_info:
            validate_asset("clip.xyz", 100, content_type)

        assert exc_info.value.asset_name == "clip.xyz"

    def test_name_without_extension_rejected(self):
        with pytest.raises(UnsupportedExtensionError):
            validate_asset("README", 100, "image/png")

    def test_png_with_audio_content_type_rejected(self):
        """photo.png declared as audio/mpeg is a category mismatch."""
        with pytest.raises(ContentTypeMismatchError) as exc_info:
            validate_asset("photo.png", 100, "audio/mpeg")

        error = exc_info.value
        assert error.asset_name == "photo.png"
        assert error.code == "CONTENT_TYPE_MISMATCH"
        assert error.to_error_info().location.asset_name == "photo.png"

    def test_missing_content_type_rejected(self):
        with pytest.raises(ContentTypeMismatchError):
            validate_asset("voice.mp3", 100, None)

    def test_content_type_parameters_ignored(self):
        assert validate_asset("voice.wav", 100, "audio/wav; codecs=1") == AssetCategory.AUDIO

    def test_empty_asset_rejected(self):
        """Empty payloads fail before any other check."""
        with pytest.raises(EmptyAssetError):
            validate_asset("clip.xyz", 0, "image/png")

    def test_too_large_rejected(self):
        with pytest.raises(AssetTooLargeError) as exc_info:
            validate_asset("photo.png", 2048, "image/png", max_size_bytes=1024)

        assert exc_info.value.status_code == 413

    def test_zero_limit_disables_size_check(self):
        assert validate_asset("photo.png", 10**9, "image/png", max_size_bytes=0) == AssetCategory.IMAGE

    def test_all_rejections_share_base_class(self):
        for args in [("a.png", 0, "image/png"), ("a.xyz", 1, "image/png"), ("a.png", 1, "audio/mpeg")]:
            with pytest.raises(AssetValidationError):
                validate_asset(*args)


class TestHelpers:
    def test_file_extension(self):
        assert file_extension("dir.v2/photo.PNG") == "png"
        assert file_extension("dir.v2/photo") == ""
        assert file_extension("archive.tar.gz") == "gz"

    def test_content_type_category(self):
        assert content_type_category("Audio/MPEG") == "audio"
        assert content_type_category(None) == ""
