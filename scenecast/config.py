import json
from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "SceneCast API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Scratch storage for uploaded assets and rendered outputs
    work_dir: str = "/tmp/scenecast/work"
    output_dir: str = "/tmp/scenecast/output"

    # File Upload
    max_upload_size_mb: int = 500

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"

    # Render settings
    render_fps: int = 30
    render_video_codec: str = "libx264"
    render_video_bitrate: str = "1000k"
    render_preset: str = "medium"
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "128k"
    render_audio_sample_rate: int = 48000
    render_ffmpeg_threads: int = 2

    # Seconds before a stuck FFmpeg process is killed (0 = no limit)
    transcode_timeout_s: int = 1800

    # Subtitles - font paths are tried in order, FFmpeg default font if none exist
    subtitle_font_paths: list[str] = [
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    ]
    subtitle_min_font_size: int = 12
    subtitle_max_font_size: int = 160


@lru_cache
def get_settings() -> Settings:
    return Settings()
