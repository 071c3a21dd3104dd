"""In-memory project registry and lifecycle state machine.

Locking: the registry lock guards only the project table and is held for
lookups, inserts and removals. Each project has its own lock guarding its
asset map and state. Assembly takes the project lock only to move between
states; FFmpeg runs with no lock held, so uploads, status polls and
assemblies of other projects are never blocked by it.

Lock order is always registry lock, then project lock.
"""

import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from scenecast.config import Settings, get_settings
from scenecast.constants.media_types import AssetCategory
from scenecast.exceptions import (
    AlreadyAssemblingError,
    EmptyDescriptorError,
    NotReadyError,
    ProjectCompletedError,
    SceneCastError,
    UnexpectedAssetError,
    UnknownProjectError,
)
from scenecast.render.invoker import ProgressCallback, TranscodeInvoker
from scenecast.render.synthesizer import GraphSynthesizer, check_scene_durations, select_font_file
from scenecast.schemas.descriptor import ProjectDescriptor
from scenecast.schemas.envelope import ErrorInfo
from scenecast.services.asset_validator import validate_asset
from scenecast.services.requirements import (
    extract_required_assets,
    parse_descriptor,
    required_asset_categories,
)
from scenecast.services.storage_service import LocalStorageService

logger = logging.getLogger(__name__)


class ProjectState(Enum):
    """Project lifecycle state.

    Only CREATED, ASSEMBLING, COMPLETED and FAILED are stored. COLLECTING and
    READY are derived from the asset map whenever status is read.
    """

    CREATED = "created"
    COLLECTING = "collecting"
    READY = "ready"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AssetRecord:
    """An accepted upload."""

    name: str
    path: Path
    size_bytes: int
    content_type: str
    category: AssetCategory
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "category": self.category.value,
            "uploaded_at": self.uploaded_at.isoformat(),
        }


@dataclass
class Project:
    """A project and everything uploaded for it. Owned by the registry."""

    id: str
    descriptor: ProjectDescriptor
    required_assets: frozenset[str]
    state: ProjectState = ProjectState.CREATED
    assets: dict[str, AssetRecord] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    output_path: Optional[Path] = None
    error: Optional[ErrorInfo] = None
    evicted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def missing_assets(self) -> list[str]:
        """Required names with no upload yet, sorted."""
        return sorted(self.required_assets - self.assets.keys())


@dataclass
class ProjectStatus:
    """Consistent snapshot of a project's progress."""

    project_id: str
    state: ProjectState
    uploaded: int
    required: int
    missing: list[str]
    can_assemble: bool
    output_path: Optional[str] = None
    error: Optional[ErrorInfo] = None

    @property
    def percentage(self) -> int:
        if self.required == 0:
            return 100
        return (100 * self.uploaded) // self.required

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "project_id": self.project_id,
            "state": self.state.value,
            "uploaded": self.uploaded,
            "required": self.required,
            "percentage": self.percentage,
            "missing": self.missing,
            "can_assemble": self.can_assemble,
            "output_path": self.output_path,
            "error": self.error.model_dump(exclude_none=True) if self.error else None,
        }


class ProjectRegistry:
    """Thread-safe in-memory table of projects keyed by id."""

    def __init__(
        self,
        storage: Optional[LocalStorageService] = None,
        invoker: Optional[TranscodeInvoker] = None,
        settings: Optional[Settings] = None,
        synthesizer_factory: Optional[Callable[[], GraphSynthesizer]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.storage = storage or LocalStorageService(self.settings.work_dir)
        self.invoker = invoker or TranscodeInvoker(self.settings)
        self._synthesizer_factory = synthesizer_factory or self._default_synthesizer
        self._projects: dict[str, Project] = {}
        self._lock = threading.Lock()

    def _default_synthesizer(self) -> GraphSynthesizer:
        font_file = select_font_file(self.settings.subtitle_font_paths)
        return GraphSynthesizer(
            fps=self.settings.render_fps,
            font_file=font_file,
            sample_rate=self.settings.render_audio_sample_rate,
            min_font_size=self.settings.subtitle_min_font_size,
            max_font_size=self.settings.subtitle_max_font_size,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _get(self, project_id: str) -> Project:
        with self._lock:
            project = self._projects.get(project_id)
        if project is None:
            raise UnknownProjectError(project_id)
        return project

    def get(self, project_id: str) -> Project:
        """Get a project by id."""
        return self._get(project_id)

    def list_projects(self) -> list[ProjectStatus]:
        """Status of every project, oldest first."""
        with self._lock:
            projects = sorted(self._projects.values(), key=lambda p: p.created_at)
        return [self._snapshot(project) for project in projects]

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, descriptor: ProjectDescriptor | Mapping[str, Any]) -> Project:
        """Register a new project for a descriptor.

        Raises:
            MalformedDescriptorError: Descriptor is not a well-formed object, or
                an asset name does not fit the field that references it
            EmptyDescriptorError: Descriptor has no scenes
        """
        parsed = parse_descriptor(descriptor)
        if not parsed.scenes:
            raise EmptyDescriptorError()
        required_asset_categories(parsed)

        project = Project(
            id=uuid.uuid4().hex,
            descriptor=parsed,
            required_assets=extract_required_assets(parsed),
        )
        with self._lock:
            self._projects[project.id] = project

        logger.info(
            "Created project %s: %d scenes, %d required assets",
            project.id,
            len(parsed.scenes),
            len(project.required_assets),
        )
        return project

    def accept_asset(
        self,
        project_id: str,
        name: str,
        data: bytes,
        content_type: str | None,
    ) -> AssetRecord:
        """Validate and store one uploaded asset.

        A repeated upload under the same name replaces the previous one.

        Raises:
            UnknownProjectError: No such project
            AssetValidationError: Asset rejected by the validator, or the name
                is not required by the project
            AlreadyAssemblingError: Project is being assembled
            ProjectCompletedError: Project already has its output
        """
        project = self._get(project_id)

        category = validate_asset(
            name,
            len(data),
            content_type,
            max_size_bytes=self.settings.max_upload_size_mb * 1024 * 1024,
        )
        if name not in project.required_assets:
            raise UnexpectedAssetError(name)

        with project.lock:
            self._check_accepts_uploads(project)

        path = self.storage.save_asset(project.id, name, data)
        record = AssetRecord(
            name=name,
            path=path,
            size_bytes=len(data),
            content_type=content_type or "",
            category=category,
        )

        with project.lock:
            try:
                # State may have moved while the file was being written
                self._check_accepts_uploads(project)
            except SceneCastError:
                self.storage.delete_file(path)
                raise
            previous = project.assets.get(name)
            project.assets[name] = record

        if previous is not None and previous.path != path:
            self.storage.delete_file(previous.path)

        logger.info(
            "Accepted asset %s for project %s (%d bytes, %s)",
            name,
            project.id,
            record.size_bytes,
            record.content_type,
        )
        return record

    def _check_accepts_uploads(self, project: Project) -> None:
        """Called with project.lock held."""
        if project.evicted:
            raise UnknownProjectError(project.id)
        if project.state == ProjectState.ASSEMBLING:
            raise AlreadyAssemblingError(project.id)
        if project.state == ProjectState.COMPLETED:
            raise ProjectCompletedError(project.id)

    def status(self, project_id: str) -> ProjectStatus:
        """Readiness snapshot, computed on demand."""
        return self._snapshot(self._get(project_id))

    def _snapshot(self, project: Project) -> ProjectStatus:
        with project.lock:
            missing = project.missing_assets()
            required = len(project.required_assets)
            uploaded = required - len(missing)
            can_assemble = not missing and project.state in (ProjectState.CREATED, ProjectState.FAILED)

            state = project.state
            if can_assemble:
                state = ProjectState.READY
            elif state == ProjectState.CREATED and uploaded > 0:
                state = ProjectState.COLLECTING

            return ProjectStatus(
                project_id=project.id,
                state=state,
                uploaded=uploaded,
                required=required,
                missing=missing,
                can_assemble=can_assemble,
                output_path=str(project.output_path) if project.output_path else None,
                error=project.error,
            )

    def assemble(
        self,
        project_id: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        Assemble the project's video.

        Only the state transitions hold the project lock; synthesis and FFmpeg
        run without it.

        Returns:
            Path to the output video

        Raises:
            UnknownProjectError: No such project
            AlreadyAssemblingError: Another assembly is running
            ProjectCompletedError: Project was already assembled
            NotReadyError: Required assets are missing
            InvalidSceneDurationError: A scene has a non-positive duration
            TranscodeFailedError: FFmpeg failed
        """
        project = self._get(project_id)

        with project.lock:
            if project.evicted:
                raise UnknownProjectError(project.id)
            if project.state == ProjectState.ASSEMBLING:
                raise AlreadyAssemblingError(project.id)
            if project.state == ProjectState.COMPLETED:
                raise ProjectCompletedError(project.id)
            missing = project.missing_assets()
            if missing:
                raise NotReadyError(project.id, missing)
            # Input errors leave the project and its uploads untouched
            check_scene_durations(project.descriptor)

            project.state = ProjectState.ASSEMBLING
            project.error = None
            asset_paths = {name: str(record.path) for name, record in project.assets.items()}
            descriptor = project.descriptor

        logger.info("[ASSEMBLE] Project %s: %d assets", project.id, len(asset_paths))
        output_path = Path(self.settings.output_dir) / f"{project.id}-{uuid.uuid4().hex[:8]}.mp4"

        try:
            synthesizer = self._synthesizer_factory()
            plan = synthesizer.synthesize(descriptor, asset_paths)
            for warning in plan.warnings:
                logger.warning("[ASSEMBLE] Project %s: %s", project.id, warning)
            output = self.invoker.run(plan, output_path=output_path, progress_callback=progress_callback)
        except SceneCastError as e:
            logger.error("[ASSEMBLE] Project %s failed: %s", project.id, e.message)
            self._finish_failed(project, asset_paths.values(), e.to_error_info())
            raise
        except Exception as e:
            logger.exception("[ASSEMBLE] Project %s failed unexpectedly", project.id)
            self._finish_failed(project, asset_paths.values(), SceneCastError(str(e)).to_error_info())
            raise

        # Scratch files go while the project is still ASSEMBLING, uploads stay refused
        self._cleanup_inputs(project.id, asset_paths.values())
        with project.lock:
            project.state = ProjectState.COMPLETED
            project.output_path = output
            project.completed_at = datetime.now(timezone.utc)

        logger.info("[ASSEMBLE] Project %s completed: %s", project.id, output)
        return output

    def _finish_failed(self, project: Project, input_paths: Iterable[str], error: ErrorInfo) -> None:
        self._cleanup_inputs(project.id, input_paths)
        with project.lock:
            project.state = ProjectState.FAILED
            project.error = error
            project.completed_at = datetime.now(timezone.utc)
            # The input files are gone, drop their records
            project.assets.clear()

    def _cleanup_inputs(self, project_id: str, paths: Iterable[str | Path]) -> None:
        for path in paths:
            self.storage.delete_file(path)
        self.storage.delete_project(project_id)

    def evict(self, project_id: str, delete_output: bool = False) -> None:
        """Remove a project and its scratch files from the registry.

        Raises:
            UnknownProjectError: No such project
            AlreadyAssemblingError: Project is being assembled
        """
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise UnknownProjectError(project_id)
            with project.lock:
                if project.state == ProjectState.ASSEMBLING:
                    raise AlreadyAssemblingError(project_id)
                project.evicted = True
                paths = [record.path for record in project.assets.values()]
                output_path = project.output_path
            del self._projects[project_id]

        self._cleanup_inputs(project_id, paths)
        if delete_output and output_path is not None:
            self.storage.delete_file(output_path)
        logger.info("Evicted project %s", project_id)
