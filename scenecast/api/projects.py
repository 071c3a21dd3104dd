"""Project endpoints: create, upload assets, poll status, assemble, download."""

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import FileResponse, Response

from scenecast.api.deps import Registry
from scenecast.constants.media_types import MEDIA_TYPES
from scenecast.exceptions import MalformedDescriptorError
from scenecast.schemas.project import (
    AssembleResponse,
    AssetResponse,
    ProjectCreateResponse,
    ProjectStatusResponse,
)
from scenecast.services.project_registry import ProjectState, ProjectStatus

logger = logging.getLogger(__name__)
router = APIRouter()


def _status_response(project_status: ProjectStatus) -> ProjectStatusResponse:
    return ProjectStatusResponse.model_validate(project_status.to_dict())


@router.post("", response_model=ProjectCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_project(request: Request, registry: Registry) -> ProjectCreateResponse:
    """Register a scene descriptor and return the asset names it needs."""
    body = await request.body()
    try:
        raw = json.loads(body) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise MalformedDescriptorError("Request body is not valid JSON") from None

    project = registry.create(raw)
    return ProjectCreateResponse(
        project_id=project.id,
        required_assets=sorted(project.required_assets),
        state=project.state.value,
    )


@router.get("", response_model=list[ProjectStatusResponse])
async def list_projects(registry: Registry) -> list[ProjectStatusResponse]:
    return [_status_response(s) for s in registry.list_projects()]


@router.put(
    "/{project_id}/assets/{asset_name}",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_asset(
    project_id: str,
    asset_name: str,
    request: Request,
    registry: Registry,
) -> AssetResponse:
    """Upload one asset as the raw request body. Content-Type must match the extension."""
    body = await request.body()
    content_type = request.headers.get("content-type")
    record = registry.accept_asset(project_id, asset_name, body, content_type)
    return AssetResponse.model_validate(record.to_dict())


@router.get("/{project_id}/status", response_model=ProjectStatusResponse)
async def get_status(project_id: str, registry: Registry) -> ProjectStatusResponse:
    return _status_response(registry.status(project_id))


@router.post("/{project_id}/assemble", response_model=AssembleResponse)
async def assemble_project(project_id: str, request: Request, registry: Registry) -> AssembleResponse:
    """Render the project. Blocks until FFmpeg finishes; the event loop stays free."""
    output = await asyncio.to_thread(registry.assemble, project_id)
    return AssembleResponse(
        project_id=project_id,
        output_path=str(output),
        download_url=str(request.url_for("download_output", project_id=project_id)),
    )


@router.get("/{project_id}/output", name="download_output")
async def download_output(project_id: str, registry: Registry) -> FileResponse:
    """Serve the assembled MP4."""
    project = registry.get(project_id)
    output = project.output_path
    if project.state != ProjectState.COMPLETED or output is None or not output.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Output not available",
        )

    media_type = MEDIA_TYPES.get(output.suffix.lower(), "application/octet-stream")
    return FileResponse(path=str(output), media_type=media_type, filename=output.name)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, registry: Registry, delete_output: bool = False) -> Response:
    registry.evict(project_id, delete_output=delete_output)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
