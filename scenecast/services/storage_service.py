import logging
import shutil
import uuid
from pathlib import Path

from scenecast.config import get_settings
from scenecast.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalStorageService:
    """Per-project scratch storage for uploaded assets on the local disk."""

    def __init__(self, base_path: str | Path | None = None) -> None:
        self.base_path = Path(base_path or get_settings().work_dir)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def project_dir(self, project_id: str) -> Path:
        return self.base_path / "projects" / project_id

    def save_asset(self, project_id: str, name: str, data: bytes) -> Path:
        """Write asset bytes under a generated filename, keeping the extension.

        The client's asset name never becomes part of the path.
        """
        ext = name.rsplit(".", 1)[-1].lower() if "." in name else "bin"
        full_path = self.project_dir(project_id) / "assets" / f"{uuid.uuid4().hex}.{ext}"
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not store asset {name}: {e}") from e
        return full_path.resolve()

    def delete_file(self, path: str | Path) -> bool:
        """Delete a stored file. Failures are logged, never raised."""
        try:
            file_path = Path(path)
            if file_path.exists():
                file_path.unlink()
                return True
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)
        return False

    def delete_project(self, project_id: str) -> None:
        """Remove a project's scratch directory. Failures are logged, never raised."""
        project_dir = self.project_dir(project_id)
        if not project_dir.exists():
            return
        try:
            shutil.rmtree(project_dir)
        except OSError as e:
            logger.warning("Failed to remove scratch directory %s: %s", project_dir, e)
