"""Derive the set of asset names a scene descriptor requires."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from scenecast.constants.media_types import EXTENSION_CATEGORIES, AssetCategory
from scenecast.exceptions import MalformedDescriptorError
from scenecast.schemas.descriptor import ProjectDescriptor
from scenecast.services.asset_validator import file_extension


def parse_descriptor(raw: ProjectDescriptor | Mapping[str, Any]) -> ProjectDescriptor:
    """Validate a raw descriptor document into a ProjectDescriptor.

    Raises:
        MalformedDescriptorError: If the document is not an object or does not
            match the descriptor shape. The first validation problem is reported
            with its location so the client can correct it.
    """
    if isinstance(raw, ProjectDescriptor):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedDescriptorError(f"expected an object, got {type(raw).__name__}")

    try:
        return ProjectDescriptor.model_validate(dict(raw))
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        reason = f"{loc}: {first.get('msg', 'invalid value')}" if loc else first.get("msg")
        raise MalformedDescriptorError(reason, field=loc or None) from e


def extract_required_assets(descriptor: ProjectDescriptor | Mapping[str, Any]) -> frozenset[str]:
    """Collect every asset name referenced by the descriptor.

    Visits each scene's image, narration and sound-effect fields and the
    project's background music. Empty values are skipped and names referenced
    more than once are required only once.
    """
    descriptor = parse_descriptor(descriptor)

    names: set[str] = set()
    for scene in descriptor.scenes:
        for name in (scene.image, scene.tts, scene.sfx):
            if name:
                names.add(name)
    if descriptor.bgm:
        names.add(descriptor.bgm)

    return frozenset(names)


def required_asset_categories(
    descriptor: ProjectDescriptor | Mapping[str, Any],
) -> dict[str, AssetCategory]:
    """Map each required asset name to the category its field needs.

    Scene images must be images; narration, sound effects and background
    music must be audio.

    Raises:
        MalformedDescriptorError: A name's extension belongs to another
            category, or one name is used both as an image and as audio
    """
    descriptor = parse_descriptor(descriptor)

    fields: list[tuple[str | None, AssetCategory, str]] = []
    for idx, scene in enumerate(descriptor.scenes):
        fields.append((scene.image, AssetCategory.IMAGE, f"scenes.{idx}.image"))
        fields.append((scene.tts, AssetCategory.AUDIO, f"scenes.{idx}.tts"))
        fields.append((scene.sfx, AssetCategory.AUDIO, f"scenes.{idx}.sfx"))
    fields.append((descriptor.bgm, AssetCategory.AUDIO, "bgm"))

    categories: dict[str, AssetCategory] = {}
    for name, expected, location in fields:
        if not name:
            continue
        # Unknown extensions are left to the upload validator
        actual = EXTENSION_CATEGORIES.get(file_extension(name))
        if actual is not None and actual != expected:
            raise MalformedDescriptorError(
                f"{location}: {name} is a {actual.value} file, expected {expected.value}",
                field=location,
            )
        previous = categories.setdefault(name, expected)
        if previous != expected:
            raise MalformedDescriptorError(
                f"{location}: {name} is used as both {previous.value} and {expected.value}",
                field=location,
            )
    return categories
