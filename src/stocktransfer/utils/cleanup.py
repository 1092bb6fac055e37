"""Removal of leftover staging folders and stray archives.

Every export/import call removes its own staging directory, but a killed
process can leave one behind. These helpers sweep the work directory for
names matching ``constants.TEMP_PATTERNS``.
"""

import shutil
import time
from pathlib import Path

import structlog

from .. import constants

logger = structlog.get_logger(__name__)


def _is_temp_name(name: str) -> bool:
    return any(pattern in name for pattern in constants.TEMP_PATTERNS)


def _temp_entries(work_dir: Path) -> list[Path]:
    if not work_dir.is_dir():
        return []
    return sorted(p for p in work_dir.iterdir() if _is_temp_name(p.name))


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def cleanup_directory(path: Path) -> bool:
    """
    Remove a directory tree, best-effort.

    Never raises: failures are logged.

    Args:
        path: Directory to remove (a missing path is not an error)

    Returns:
        True if the path is gone afterwards
    """
    try:
        if path.exists():
            _remove(path)
            logger.debug("Temporary directory removed", path=str(path))
        return True
    except OSError as e:
        logger.warning("Failed to remove temporary directory", path=str(path), error=str(e))
        return False


def cleanup_old_temp_files(
    work_dir: Path, max_age_seconds: int = constants.MAX_TEMP_AGE_SECONDS
) -> int:
    """
    Remove temp entries older than ``max_age_seconds``.

    Args:
        work_dir: Directory holding staging folders
        max_age_seconds: Age threshold, by modification time

    Returns:
        Number of entries removed
    """
    now = time.time()
    removed = 0

    for entry in _temp_entries(work_dir):
        try:
            age = now - entry.stat().st_mtime
        except OSError:
            continue
        if age <= max_age_seconds:
            continue
        try:
            _remove(entry)
            removed += 1
            logger.info("Old temp entry removed", path=str(entry), age_seconds=int(age))
        except OSError as e:
            logger.warning("Failed to remove temp entry", path=str(entry), error=str(e))

    return removed


def cleanup_all_temp_files(work_dir: Path) -> int:
    """
    Remove every temp entry regardless of age.

    Returns:
        Number of entries removed
    """
    removed = 0
    for entry in _temp_entries(work_dir):
        try:
            _remove(entry)
            removed += 1
            logger.info("Temp entry removed", path=str(entry))
        except OSError as e:
            logger.warning("Failed to remove temp entry", path=str(entry), error=str(e))
    return removed


def temp_files_size(work_dir: Path) -> int:
    """Total size in bytes of all temp entries (folders counted recursively)."""
    total = 0
    for entry in _temp_entries(work_dir):
        try:
            if entry.is_dir():
                total += sum(f.stat().st_size for f in entry.rglob("*") if f.is_file())
            else:
                total += entry.stat().st_size
        except OSError as e:
            logger.debug("Could not size temp entry", path=str(entry), error=str(e))
    return total
