"""File storage service for rendered inspection act documents."""

import os
import uuid
import logging
from pathlib import Path
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class ActStorageError(Exception):
    """Act storage related errors."""
    pass


class ActStorageService:
    """Service for writing, reading and removing rendered act files."""

    CONTENT_TYPE = "application/pdf"

    def __init__(self, base_path: str = "storage/acts"):
        """Initialize act storage service.

        Args:
            base_path: Directory holding rendered act files
        """
        self.base_path = Path(base_path)
        self._ensure_base_directory()
        logger.info(f"ActStorageService initialized with base_path: {self.base_path.resolve()}")

    def _ensure_base_directory(self) -> None:
        """Ensure the base storage directory exists and is writable."""
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            if not os.access(self.base_path, os.W_OK):
                logger.error(f"Base directory is not writable: {self.base_path}")
        except PermissionError as e:
            logger.error(f"Cannot create base directory {self.base_path}: {e}")

    def generate_filename(self, task_id: uuid.UUID) -> str:
        """Generate a filename unique per render of a task's act."""
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        unique_id = uuid.uuid4().hex[:8]
        return f"act_{task_id.hex}_{timestamp}_{unique_id}.pdf"

    def _resolve(self, stored_path: str) -> Path | None:
        """Resolve a stored pointer, refusing anything outside the base directory."""
        file_path = Path(stored_path)
        if not file_path.is_absolute():
            file_path = self.base_path / file_path.name
        try:
            file_path.resolve().relative_to(self.base_path.resolve())
        except ValueError:
            logger.warning(f"Path outside act storage rejected: {stored_path}")
            return None
        return file_path

    def save_act(self, task_id: uuid.UUID, content: bytes) -> str:
        """Write a rendered act to disk.

        Args:
            task_id: Task the act belongs to
            content: Rendered document bytes

        Returns:
            Stored path to record on the act

        Raises:
            ActStorageError: If the file cannot be written
        """
        file_path = self.base_path / self.generate_filename(task_id)

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except PermissionError as e:
            logger.error(f"Permission denied writing act {file_path}: {e}")
            raise ActStorageError("Cannot write act file: permission denied")
        except OSError as e:
            logger.error(f"OS error writing act {file_path}: {e}")
            raise ActStorageError(f"Cannot write act file: {e}")

        logger.info(f"Act saved: {file_path} ({len(content)} bytes)")
        return str(file_path)

    def read_act(self, stored_path: str) -> bytes | None:
        """Read a stored act.

        Returns:
            File content, or None if the file is missing or unreadable
        """
        file_path = self._resolve(stored_path)
        if file_path is None:
            return None
        try:
            return file_path.read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read act {file_path}: {e}")
            return None

    def delete_act(self, stored_path: str) -> bool:
        """Delete a stored act.

        Returns:
            True if deleted, False if not found
        """
        file_path = self._resolve(stored_path)
        if file_path is None or not file_path.exists():
            return False
        file_path.unlink()
        return True

    @staticmethod
    def filename_of(stored_path: str) -> str:
        """Download filename for a stored pointer."""
        return Path(stored_path).name


# Global instance with configurable path
_act_storage: ActStorageService | None = None


def get_act_storage() -> ActStorageService:
    """Get the act storage service instance."""
    global _act_storage
    if _act_storage is None:
        from app.core.config import settings
        _act_storage = ActStorageService(settings.act_storage_path)
    return _act_storage
