"""
End-to-end assembly with the real FFmpeg binary.

Skipped when ffmpeg is not installed.
"""

import subprocess
from pathlib import Path

import pytest

from conftest import requires_ffmpeg
from scenecast.render.invoker import TranscodeInvoker
from scenecast.services.project_registry import ProjectRegistry, ProjectState


def _make_image(path: Path, color: str) -> bytes:
    subprocess.run(
        ["ffmpeg", "-y", "-f", "lavfi", "-i", f"color=c={color}:s=320x240", "-frames:v", "1", str(path)],
        capture_output=True,
        check=True,
    )
    return path.read_bytes()


def _make_tone(path: Path, frequency: int, seconds: float) -> bytes:
    subprocess.run(
        [
            "ffmpeg", "-y", "-f", "lavfi",
            "-i", f"sine=frequency={frequency}:duration={seconds}",
            "-ac", "2", "-ar", "44100",
            str(path),
        ],
        capture_output=True,
        check=True,
    )
    return path.read_bytes()


@requires_ffmpeg
class TestRenderEndToEnd:
    """Assemble a small project through the real FFmpeg."""

    def test_assemble_with_narration_bgm_and_sfx(self, settings, storage, temp_output_dir):
        src = temp_output_dir / "src"
        src.mkdir()
        registry = ProjectRegistry(storage=storage, invoker=TranscodeInvoker(settings), settings=settings)
        project = registry.create({
            "scenes": [
                {"image": "red.png", "tts": "voice.wav", "duration": 1},
                {"image": "blue.png", "sfx": "ding.wav", "duration": 1},
            ],
            "bgm": "music.wav",
            "global": {"resolution": "320x240", "fps": 10},
        })

        registry.accept_asset(project.id, "red.png", _make_image(src / "red.png", "red"), "image/png")
        registry.accept_asset(project.id, "blue.png", _make_image(src / "blue.png", "blue"), "image/png")
        registry.accept_asset(project.id, "voice.wav", _make_tone(src / "voice.wav", 440, 1.5), "audio/wav")
        registry.accept_asset(project.id, "music.wav", _make_tone(src / "music.wav", 220, 3), "audio/wav")
        registry.accept_asset(project.id, "ding.wav", _make_tone(src / "ding.wav", 880, 0.3), "audio/wav")

        progress = []
        output = registry.assemble(project.id, progress_callback=lambda p, s: progress.append(p))

        assert output.exists()
        assert output.stat().st_size > 0
        assert progress[-1] == 100
        assert registry.status(project.id).state == ProjectState.COMPLETED

    def test_silent_project(self, settings, storage, temp_output_dir):
        registry = ProjectRegistry(storage=storage, invoker=TranscodeInvoker(settings), settings=settings)
        project = registry.create({"scenes": [{"image": "a.png", "duration": 0.5}], "global": {"resolution": "320x240"}})
        registry.accept_asset(project.id, "a.png", _make_image(temp_output_dir / "a.png", "green"), "image/png")

        output = registry.assemble(project.id)

        assert output.stat().st_size > 0

    def test_gif_scene_image(self, settings, storage, temp_output_dir):
        """A gif still is accepted as a scene image and held for the scene duration."""
        registry = ProjectRegistry(storage=storage, invoker=TranscodeInvoker(settings), settings=settings)
        project = registry.create({
            "scenes": [
                {"image": "a.gif", "duration": 1},
                {"image": "b.png", "duration": 0.5},
            ],
            "global": {"resolution": "320x240", "fps": 10},
        })
        registry.accept_asset(project.id, "a.gif", _make_image(temp_output_dir / "a.gif", "red"), "image/gif")
        registry.accept_asset(project.id, "b.png", _make_image(temp_output_dir / "b.png", "blue"), "image/png")

        output = registry.assemble(project.id)

        assert output.stat().st_size > 0
        assert registry.status(project.id).state == ProjectState.COMPLETED
