"""SceneCast: declarative scene descriptors rendered to video with FFmpeg."""

__version__ = "0.1.0"
