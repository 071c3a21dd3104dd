import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scenecast.api import projects
from scenecast.config import Settings, get_settings
from scenecast.constants.error_codes import get_error_spec
from scenecast.exceptions import SceneCastError
from scenecast.schemas.envelope import ErrorInfo, ErrorResponse
from scenecast.services.project_registry import ProjectRegistry

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error_response(status_code: int, error: ErrorInfo) -> JSONResponse:
    envelope = ErrorResponse(error=error)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope.model_dump(exclude_none=True)),
    )


def create_app(
    registry: Optional[ProjectRegistry] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the FastAPI app around a registry (a fresh one when omitted)."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.registry = registry or ProjectRegistry(settings=settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SceneCastError)
    async def scenecast_exception_handler(request: Request, exc: SceneCastError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.to_error_info())

    # Global exception handler to ensure errors return proper JSON
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        spec = get_error_spec("INTERNAL_ERROR")
        error = ErrorInfo(
            code="INTERNAL_ERROR",
            message="Internal server error",
            retryable=spec.get("retryable", False),
            suggested_fix=spec.get("suggested_fix"),
        )
        return _error_response(500, error)

    # Routers
    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
