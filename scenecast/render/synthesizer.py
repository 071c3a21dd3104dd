"""
Filter-graph synthesis: scene descriptor + resolved asset paths -> FilterGraphPlan.

Stages, in order:
1. Input ordering (images, narration, background music, sound effects)
2. Per-scene video normalization -> [v{i}]
3. Concatenation in scene order -> [video]
4. Subtitle overlay chain -> [video_sub{i}]
5. Audio mixing (narration, background music, sound effects)
6. Output mapping

The synthesizer is pure: it never touches the filesystem or FFmpeg. The
invoker turns the resulting plan into a command line.
"""

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional

from scenecast.config import get_settings
from scenecast.exceptions import (
    EmptyDescriptorError,
    InvalidSceneDurationError,
    MissingAssetPathError,
)
from scenecast.render.filter_graph import Filter, FilterGraph, InputStream, Text
from scenecast.schemas.descriptor import ProjectDescriptor, SceneSpec, SubtitleSpec

logger = logging.getLogger(__name__)

# Keys identifying physical inputs, e.g. ("image", 0), ("narration", 2), ("bgm",)
InputKey = tuple


@dataclass
class InputSpec:
    """One physical FFmpeg input."""

    key: InputKey
    path: str
    # Still images are looped in the filter graph, never by the demuxer
    loop_image: bool = False


class InputList:
    """Append-only list of inputs; an input's index is its position."""

    def __init__(self) -> None:
        self._inputs: list[InputSpec] = []
        self._index: dict[InputKey, int] = {}

    def append(self, spec: InputSpec) -> int:
        if spec.key in self._index:
            raise ValueError(f"Input {spec.key!r} already added")
        self._index[spec.key] = len(self._inputs)
        self._inputs.append(spec)
        return self._index[spec.key]

    def index_of(self, key: InputKey) -> int:
        return self._index[key]

    def has(self, key: InputKey) -> bool:
        return key in self._index

    def keys(self, kind: str) -> list[InputKey]:
        """Keys of one kind, in the order they were appended."""
        return [spec.key for spec in self._inputs if spec.key[0] == kind]

    def __iter__(self):
        return iter(self._inputs)

    def __len__(self) -> int:
        return len(self._inputs)

    def to_list(self) -> list[InputSpec]:
        return list(self._inputs)


@dataclass
class FilterGraphPlan:
    """Everything the invoker needs to run one assembly."""

    inputs: list[InputSpec]
    graph: FilterGraph
    video_label: str
    audio_label: Optional[str]
    duration: float
    fps: int
    width: int
    height: int
    warnings: list[str] = field(default_factory=list)

    @property
    def filter_complex(self) -> str:
        return self.graph.serialize()

    @property
    def has_audio(self) -> bool:
        return self.audio_label is not None


def select_font_file(
    candidates: Iterable[str],
    exists: Callable[[str], bool] = os.path.isfile,
) -> Optional[str]:
    """Return the first installed font from the ordered fallback list.

    None means FFmpeg's built-in default font will be used.
    """
    for path in candidates:
        if path and exists(path):
            return path
    return None


def check_scene_durations(descriptor: ProjectDescriptor) -> None:
    """Raise for an empty scene list or any scene duration <= 0."""
    if not descriptor.scenes:
        raise EmptyDescriptorError()
    for idx, scene in enumerate(descriptor.scenes):
        if not scene.duration > 0:
            raise InvalidSceneDurationError(idx, scene.duration)


class GraphSynthesizer:
    """Builds FilterGraphPlans for scene descriptors."""

    SUBTITLE_MARGIN = 40

    def __init__(
        self,
        fps: Optional[int] = None,
        font_file: Optional[str] = None,
        sample_rate: Optional[int] = None,
        min_font_size: Optional[int] = None,
        max_font_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.fps = fps or settings.render_fps
        self.font_file = font_file
        self.sample_rate = sample_rate or settings.render_audio_sample_rate
        self.min_font_size = min_font_size or settings.subtitle_min_font_size
        self.max_font_size = max_font_size or settings.subtitle_max_font_size

    def synthesize(
        self,
        descriptor: ProjectDescriptor,
        asset_paths: Mapping[str, str],
    ) -> FilterGraphPlan:
        """
        Build the filter graph plan for a descriptor.

        Args:
            descriptor: Validated project descriptor
            asset_paths: Map of asset names to local file paths

        Returns:
            FilterGraphPlan with ordered inputs, graph and output labels

        Raises:
            EmptyDescriptorError: If the descriptor has no scenes
            InvalidSceneDurationError: If any scene duration is <= 0
            MissingAssetPathError: If a referenced asset has no path
        """
        # Fail fast before building anything
        check_scene_durations(descriptor)

        fps = descriptor.global_.fps or self.fps
        resolution = descriptor.global_.resolution

        inputs = self._order_inputs(descriptor, asset_paths)
        graph = FilterGraph()

        for idx, scene in enumerate(descriptor.scenes):
            self._add_scene_video(graph, inputs, idx, scene, resolution.width, resolution.height, fps)

        self._add_concat(graph, len(descriptor.scenes))
        video_label = self._add_subtitles(graph, descriptor)
        warnings = []
        if video_label != "video" and not self.font_file:
            warnings.append("No subtitle font installed, FFmpeg default font is used")

        audio_label = self._add_audio_mix(graph, inputs, descriptor)
        audio_label = self._add_sound_effects(graph, inputs, descriptor, audio_label)

        logger.info(
            "[SYNTH] %d inputs, %d filter nodes, video=[%s] audio=[%s]",
            len(inputs),
            len(graph),
            video_label,
            audio_label,
        )

        return FilterGraphPlan(
            inputs=inputs.to_list(),
            graph=graph,
            video_label=video_label,
            audio_label=audio_label,
            duration=descriptor.total_duration,
            fps=fps,
            width=resolution.width,
            height=resolution.height,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Stage 1: input ordering
    # ------------------------------------------------------------------

    def _order_inputs(
        self,
        descriptor: ProjectDescriptor,
        asset_paths: Mapping[str, str],
    ) -> InputList:
        def resolve(name: str, scene_index: Optional[int] = None) -> str:
            path = asset_paths.get(name)
            if not path:
                raise MissingAssetPathError(name, scene_index)
            return str(path)

        inputs = InputList()

        for idx, scene in enumerate(descriptor.scenes):
            inputs.append(
                InputSpec(
                    key=("image", idx),
                    path=resolve(scene.image, idx),
                    loop_image=True,
                )
            )

        for idx, scene in enumerate(descriptor.scenes):
            if scene.tts:
                inputs.append(InputSpec(key=("narration", idx), path=resolve(scene.tts, idx)))

        if descriptor.bgm:
            inputs.append(InputSpec(key=("bgm",), path=resolve(descriptor.bgm)))

        for idx, scene in enumerate(descriptor.scenes):
            if scene.sfx:
                inputs.append(InputSpec(key=("sfx", idx), path=resolve(scene.sfx, idx)))

        return inputs

    # ------------------------------------------------------------------
    # Stages 2-3: video
    # ------------------------------------------------------------------

    def _add_scene_video(
        self,
        graph: FilterGraph,
        inputs: InputList,
        idx: int,
        scene: SceneSpec,
        width: int,
        height: int,
        fps: int,
    ) -> str:
        source = InputStream(inputs.index_of(("image", idx)), "v")
        label = f"v{idx}"
        graph.add(
            [source],
            [
                Filter.of("scale", width, height, force_original_aspect_ratio="decrease"),
                Filter.of("pad", width, height, "(ow-iw)/2", "(oh-ih)/2", color="black"),
                Filter.of("setsar", 1),
                Filter.of("loop", loop=-1, size=1),
                Filter.of("setpts", f"N/{fps}/TB"),
                Filter.of("fps", fps),
                Filter.of("trim", duration=float(scene.duration)),
                Filter.of("setpts", "PTS-STARTPTS"),
                Filter.of("format", "yuv420p"),
            ],
            label,
        )
        return label

    def _add_concat(self, graph: FilterGraph, scene_count: int) -> str:
        graph.add(
            [f"v{idx}" for idx in range(scene_count)],
            [Filter.of("concat", n=scene_count, v=1, a=0)],
            "video",
        )
        return "video"

    # ------------------------------------------------------------------
    # Stage 4: subtitles
    # ------------------------------------------------------------------

    def clamp_font_size(self, font_size: int) -> int:
        return max(self.min_font_size, min(self.max_font_size, font_size))

    def _subtitle_y(self, subtitle: SubtitleSpec) -> str:
        if subtitle.position == "top":
            return str(self.SUBTITLE_MARGIN)
        if subtitle.position == "center":
            return "(h-text_h)/2"
        return f"h-text_h-{self.SUBTITLE_MARGIN}"

    def build_drawtext(self, subtitle: SubtitleSpec, start_s: float, end_s: float) -> Filter:
        """Build the drawtext filter for one subtitle, active in [start_s, end_s)."""
        options: dict = {}
        if self.font_file:
            options["fontfile"] = Text(self.font_file)
        options.update(
            text=Text(subtitle.text),
            expansion="none",
            fontsize=self.clamp_font_size(subtitle.font_size),
            fontcolor=Text(subtitle.color),
            borderw=2,
            bordercolor="black",
            x="(w-text_w)/2",
            y=self._subtitle_y(subtitle),
            enable=f"gte(t,{_fmt_time(start_s)})*lt(t,{_fmt_time(end_s)})",
        )
        return Filter("drawtext", options=options)

    def _add_subtitles(
        self,
        graph: FilterGraph,
        descriptor: ProjectDescriptor,
    ) -> str:
        current = "video"
        start = 0.0
        for idx, scene in enumerate(descriptor.scenes):
            end = start + scene.duration
            subtitle = scene.subtitle
            if subtitle is not None and subtitle.text.strip():
                label = f"video_sub{idx}"
                graph.add([current], [self.build_drawtext(subtitle, start, end)], label)
                current = label
            start = end
        return current

    # ------------------------------------------------------------------
    # Stage 5: audio
    # ------------------------------------------------------------------

    def _normalize_audio(self) -> Filter:
        return Filter.of(
            "aformat",
            sample_fmts="fltp",
            sample_rates=self.sample_rate,
            channel_layouts="stereo",
        )

    def _add_audio_mix(
        self,
        graph: FilterGraph,
        inputs: InputList,
        descriptor: ProjectDescriptor,
    ) -> Optional[str]:
        narration_keys = inputs.keys("narration")
        has_bgm = inputs.has(("bgm",))
        voice_volume = descriptor.global_.voice_volume
        bgm_volume = descriptor.global_.background_music_volume

        if not narration_keys and not has_bgm:
            return None

        narration_label: Optional[str] = None
        if narration_keys:
            normalized = []
            for key in narration_keys:
                label = f"n{key[1]}"
                graph.add(
                    [InputStream(inputs.index_of(key), "a")],
                    [self._normalize_audio(), Filter.of("asetpts", "PTS-STARTPTS")],
                    label,
                )
                normalized.append(label)

            narration_label = "audio" if not has_bgm else "narration"
            graph.add(
                normalized,
                [
                    Filter.of("concat", n=len(normalized), v=0, a=1),
                    Filter.of("volume", float(voice_volume)),
                ],
                narration_label,
            )
            if not has_bgm:
                return narration_label

        bgm_label = "audio" if narration_label is None else "bgm"
        graph.add(
            [InputStream(inputs.index_of(("bgm",)), "a")],
            [self._normalize_audio(), Filter.of("volume", float(bgm_volume))],
            bgm_label,
        )
        if narration_label is None:
            return bgm_label

        graph.add(
            [narration_label, bgm_label],
            [Filter.of("amix", inputs=2, duration="shortest", normalize=0)],
            "audio",
        )
        return "audio"

    def _add_sound_effects(
        self,
        graph: FilterGraph,
        inputs: InputList,
        descriptor: ProjectDescriptor,
        audio_label: Optional[str],
    ) -> Optional[str]:
        sfx_keys = inputs.keys("sfx")
        if not sfx_keys:
            return audio_label

        sfx_volume = descriptor.global_.sfx_volume
        labels = []
        for key in sfx_keys:
            scene_index = key[1]
            delay_ms = int(round(descriptor.scene_start(scene_index) * 1000))
            chain = [self._normalize_audio(), Filter.of("volume", float(sfx_volume))]
            if delay_ms > 0:
                chain.append(Filter.of("adelay", f"{delay_ms}", all=1))
            label = f"sfx{scene_index}"
            graph.add([InputStream(inputs.index_of(key), "a")], chain, label)
            labels.append(label)

        if audio_label is not None:
            # The main track decides the length, effects never extend it
            graph.add(
                [audio_label, *labels],
                [Filter.of("amix", inputs=len(labels) + 1, duration="first", normalize=0)],
                "audio_fx",
            )
        else:
            chain = [Filter.of("atrim", duration=float(descriptor.total_duration))]
            if len(labels) > 1:
                chain.insert(0, Filter.of("amix", inputs=len(labels), duration="longest", normalize=0))
            graph.add(labels, chain, "audio_fx")
        return "audio_fx"


def _fmt_time(seconds: float) -> str:
    text = f"{seconds:.6f}".rstrip("0").rstrip(".")
    return text or "0"
