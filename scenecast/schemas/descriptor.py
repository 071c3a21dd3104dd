"""Scene descriptor models.

The descriptor is the declarative document a client submits when creating a
project. Defaults are applied here, once, at ingestion; unknown keys are
rejected so that typos surface immediately instead of being silently ignored.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class DescriptorModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python, no extra keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class Resolution(DescriptorModel):
    width: int = Field(default=1280, gt=0, le=7680)
    height: int = Field(default=720, gt=0, le=4320)

    @model_validator(mode="before")
    @classmethod
    def parse_dimensions_string(cls, data: Any) -> Any:
        """Accept "1280x720" as well as {"width": 1280, "height": 720}."""
        if isinstance(data, str):
            parts = data.lower().split("x")
            if len(parts) != 2:
                raise ValueError(f"resolution must look like WIDTHxHEIGHT (got {data!r})")
            try:
                return {"width": int(parts[0]), "height": int(parts[1])}
            except ValueError:
                raise ValueError(f"resolution must look like WIDTHxHEIGHT (got {data!r})") from None
        return data

    @field_validator("width", "height")
    @classmethod
    def validate_even(cls, v: int, info) -> int:
        # libx264 with yuv420p requires even dimensions
        if v % 2 != 0:
            raise ValueError(f"{info.field_name} must be an even number (got {v})")
        return v

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


SubtitlePosition = Literal["top", "center", "bottom"]


class SubtitleSpec(DescriptorModel):
    text: str
    font_size: int = 48
    color: str = Field(default="white", min_length=1)
    position: SubtitlePosition = "bottom"


class SceneSpec(DescriptorModel):
    image: str = Field(..., min_length=1)
    tts: str | None = None
    sfx: str | None = None
    # Not constrained here: non-positive durations are rejected at graph synthesis
    duration: float = 3.0
    subtitle: SubtitleSpec | None = None


class GlobalSpec(DescriptorModel):
    resolution: Resolution = Field(default_factory=Resolution)
    background_music_volume: float = Field(default=0.3, ge=0.0, le=1.0)
    voice_volume: float = Field(default=1.0, ge=0.0, le=2.0)
    sfx_volume: float = Field(default=1.0, ge=0.0, le=2.0)
    fps: int | None = Field(default=None, ge=1, le=60)


class ProjectDescriptor(DescriptorModel):
    scenes: list[SceneSpec] = Field(default_factory=list)
    bgm: str | None = None
    global_: GlobalSpec = Field(default_factory=GlobalSpec, alias="global")

    @property
    def total_duration(self) -> float:
        return sum(scene.duration for scene in self.scenes)

    def scene_start(self, index: int) -> float:
        """Start time of scene `index` in the assembled video, in seconds."""
        return sum(scene.duration for scene in self.scenes[:index])
