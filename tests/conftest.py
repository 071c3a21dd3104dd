"""
Pytest fixtures for SceneCast tests.

Unit tests never start FFmpeg: the invoker's subprocess seam is patched with
FakeProcess, and the registry is given a fake invoker where only state
handling is under test.

Tests that run the real FFmpeg binary are marked with @pytest.mark.requires_ffmpeg
and skipped when it is not installed.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from scenecast.config import Settings
from scenecast.services.project_registry import ProjectRegistry
from scenecast.services.storage_service import LocalStorageService


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring the ffmpeg binary (skipped when missing)"
    )


requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None,
    reason="ffmpeg not installed",
)

# Minimal byte payloads; the validator only looks at size, name and Content-Type
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
MP3_BYTES = b"ID3" + b"\x00" * 32


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="scenecast_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_output_dir: Path) -> Settings:
    """Settings pointing all storage at a temporary directory."""
    return Settings(
        _env_file=None,
        work_dir=str(temp_output_dir / "work"),
        output_dir=str(temp_output_dir / "output"),
        transcode_timeout_s=30,
        subtitle_font_paths=[],
    )


@pytest.fixture
def storage(settings: Settings) -> LocalStorageService:
    return LocalStorageService(settings.work_dir)


class FakeInvoker:
    """Stands in for TranscodeInvoker: records plans and writes a dummy output."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.plans = []

    def run(self, plan, output_path=None, progress_callback=None):
        self.plans.append(plan)
        if self.error is not None:
            raise self.error
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"fake mp4")
        if progress_callback:
            progress_callback(100, "Complete")
        return output


class FakeProcess:
    """Stands in for subprocess.Popen in invoker tests."""

    def __init__(self, lines: list[str], returncode: int = 0, output_path: Path | None = None,
                 output_bytes: bytes = b"mp4 data"):
        self.stdout = iter(line + "\n" for line in lines)
        self.returncode = returncode
        self._output_path = output_path
        self._output_bytes = output_bytes
        self.killed = False

    def wait(self, timeout=None):
        if self._output_path is not None and self._output_bytes:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            self._output_path.write_bytes(self._output_bytes)
        return self.returncode

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def registry(settings: Settings, storage: LocalStorageService, fake_invoker: FakeInvoker) -> ProjectRegistry:
    """Registry backed by temporary storage and a fake invoker."""
    return ProjectRegistry(storage=storage, invoker=fake_invoker, settings=settings)


@pytest.fixture
def sample_descriptor() -> dict:
    """Three scenes, narration on scenes 1 and 3, background music."""
    return {
        "scenes": [
            {"image": "img1.png", "tts": "tts1.mp3", "duration": 2,
             "subtitle": {"text": "Hello", "position": "bottom"}},
            {"image": "img2.png", "duration": 1.5},
            {"image": "img3.png", "tts": "tts3.mp3", "duration": 3,
             "subtitle": {"text": "Bye", "fontSize": 500, "position": "top"}},
        ],
        "bgm": "bgm.mp3",
        "global": {"resolution": "1280x720", "backgroundMusicVolume": 0.2},
    }


def upload_all(registry: ProjectRegistry, project_id: str, names) -> None:
    """Upload a dummy payload for every name with a matching Content-Type."""
    for name in sorted(names):
        if name.endswith(".png"):
            registry.accept_asset(project_id, name, PNG_BYTES, "image/png")
        else:
            registry.accept_asset(project_id, name, MP3_BYTES, "audio/mpeg")
