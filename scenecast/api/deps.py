from typing import Annotated

from fastapi import Depends, Request

from scenecast.services.project_registry import ProjectRegistry


def get_registry(request: Request) -> ProjectRegistry:
    """The registry created by create_app()."""
    return request.app.state.registry


Registry = Annotated[ProjectRegistry, Depends(get_registry)]
