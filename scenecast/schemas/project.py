from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from scenecast.schemas.envelope import ErrorInfo

ProjectStateName = Literal["created", "collecting", "ready", "assembling", "completed", "failed"]


class ProjectCreateResponse(BaseModel):
    project_id: str
    required_assets: list[str]
    state: ProjectStateName


class AssetResponse(BaseModel):
    name: str
    size_bytes: int
    content_type: str
    category: str
    uploaded_at: datetime


class ProjectStatusResponse(BaseModel):
    project_id: str
    state: ProjectStateName
    uploaded: int
    required: int
    percentage: int
    missing: list[str]
    can_assemble: bool
    output_path: str | None = None
    error: ErrorInfo | None = None


class AssembleResponse(BaseModel):
    project_id: str
    output_path: str
    download_url: str
