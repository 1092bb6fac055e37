"""Pre-import backups of the current dataset with retention."""

import re
import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from .. import constants

if TYPE_CHECKING:
    from ..core.exporter import ExportOrchestrator

logger = structlog.get_logger(__name__)

_BACKUP_PATTERN = re.compile(
    rf"^{re.escape(constants.BACKUP_NAME_PREFIX)}(\d+)(?:-(\d+))?{re.escape(constants.ARCHIVE_EXTENSION)}$"
)


class BackupManager:
    """
    Create a full export archive before an import touches the store.

    Backups are named ``backup_<unix ms>.zip``; only the newest
    ``retention`` backups are kept.
    """

    def __init__(
        self,
        exporter: "ExportOrchestrator",
        backup_dir: Path,
        retention: int = constants.BACKUP_RETENTION,
    ) -> None:
        """
        Initialize BackupManager.

        Args:
            exporter: Export orchestrator over the store being backed up
            backup_dir: Directory receiving backups
            retention: Number of backups to keep
        """
        self.exporter = exporter
        self.backup_dir = backup_dir
        self.retention = max(1, retention)

    async def create_backup(self) -> Path | None:
        """
        Export the current dataset into the backup directory.

        A failed backup is logged and reported as None; it never aborts the
        import that asked for it.

        Returns:
            Path of the backup archive, or None on failure
        """
        try:
            result = await self.exporter.export(output_dir=self.backup_dir)
            target = self._unique_path(int(time.time() * 1000))
            result.archive_path.rename(target)
        except Exception as e:
            logger.error("Backup failed, continuing without backup", error=str(e), exc_info=True)
            return None

        logger.info("Backup created", path=str(target), items=result.items_exported)
        self.prune()
        return target

    def _unique_path(self, stamp: int) -> Path:
        name = f"{constants.BACKUP_NAME_PREFIX}{stamp}"
        target = self.backup_dir / f"{name}{constants.ARCHIVE_EXTENSION}"
        suffix = 1
        while target.exists():
            target = self.backup_dir / f"{name}-{suffix}{constants.ARCHIVE_EXTENSION}"
            suffix += 1
        return target

    def list_backups(self) -> list[Path]:
        """Backups in the backup directory, newest first."""
        if not self.backup_dir.is_dir():
            return []

        backups: list[tuple[int, int, Path]] = []
        for path in self.backup_dir.iterdir():
            match = _BACKUP_PATTERN.match(path.name)
            if match and path.is_file():
                backups.append((int(match.group(1)), int(match.group(2) or 0), path))

        # Same-millisecond backups carry a -n suffix; a higher n is newer
        backups.sort(reverse=True)
        return [path for _, _, path in backups]

    def prune(self) -> int:
        """
        Delete all but the newest ``retention`` backups.

        Returns:
            Number of backups deleted
        """
        removed = 0
        for path in self.list_backups()[self.retention :]:
            try:
                path.unlink()
                removed += 1
                logger.info("Old backup removed", path=str(path))
            except OSError as e:
                logger.warning("Failed to remove old backup", path=str(path), error=str(e))
        return removed
