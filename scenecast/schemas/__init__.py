from scenecast.schemas.descriptor import GlobalSpec, ProjectDescriptor, Resolution, SceneSpec, SubtitleSpec
from scenecast.schemas.envelope import ErrorInfo, ErrorLocation, ErrorResponse, SuggestedAction
from scenecast.schemas.project import (
    AssembleResponse,
    AssetResponse,
    ProjectCreateResponse,
    ProjectStatusResponse,
)

__all__ = [
    "ProjectDescriptor",
    "SceneSpec",
    "SubtitleSpec",
    "GlobalSpec",
    "Resolution",
    "ErrorInfo",
    "ErrorLocation",
    "ErrorResponse",
    "SuggestedAction",
    "ProjectCreateResponse",
    "ProjectStatusResponse",
    "AssetResponse",
    "AssembleResponse",
]
