"""Unpack an export archive into a plain staging folder.

The archive is read into memory as a whole and opened as a zip container;
entries are then written out one at a time, so everything after extraction
works on loose files only. Because the read is whole-archive, callers first
consult ``can_process_in_memory`` and send archives above the limit down the
manual-extraction path (extract by hand, import the folder).
"""

import asyncio
import io
import os
import zipfile
from pathlib import Path, PurePosixPath

import structlog

from .. import constants
from ..models.progress import ImportStage, ProgressCallback, emit
from ..utils.cancellation import CancellationToken
from ..utils.exceptions import ArchiveMemoryError, MissingInputError, StagingError

logger = structlog.get_logger(__name__)


def archive_size_mb(archive_path: Path) -> float | None:
    """
    Size of an archive in megabytes.

    Returns:
        float | None: Size, or None if it cannot be determined.
    """
    try:
        return os.path.getsize(archive_path) / constants.BYTES_PER_MB
    except OSError:
        return None


def can_process_in_memory(
    archive_path: Path, limit_mb: float = constants.MAX_IN_MEMORY_ARCHIVE_MB
) -> bool:
    """
    Size gate for in-memory extraction.

    Args:
        archive_path: Archive to classify
        limit_mb: Largest size considered safe

    Returns:
        True if the archive is at most ``limit_mb``; False if it is larger or
        its size is unknown (unknown sizes take the safe, manual path).
    """
    size_mb = archive_size_mb(archive_path)
    if not size_mb:
        logger.info("Archive size unknown, treating as risky", archive=str(archive_path))
        return False
    logger.info("Archive size probed", archive=str(archive_path), size_mb=round(size_mb, 2))
    return size_mb <= limit_mb


def _safe_target(destination: Path, entry_name: str) -> Path | None:
    """Resolve an entry path under destination, or None if it would escape it."""
    entry = PurePosixPath(entry_name)
    if entry.is_absolute() or ".." in entry.parts:
        return None
    target = destination.joinpath(*entry.parts)
    try:
        target.resolve().relative_to(destination.resolve())
    except ValueError:
        return None
    return target


class ArchiveExtractor:
    """
    Extract archive entries into a destination folder.

    Features:
    - Table entries (``.csv``) decoded and written as UTF-8 text, all other
      entries written as binary
    - Progress ``(entries processed, entries total)`` mapped into a
      caller-supplied sub-range of a 0-100 scale
    - Entries escaping the destination (absolute paths, ``..``) are skipped
    - Out-of-memory turns into ArchiveMemoryError carrying the
      manual-extraction instruction
    """

    def __init__(
        self,
        pause_every: int = constants.EXTRACTION_PAUSE_EVERY,
        pause_ms: int = constants.EXTRACTION_PAUSE_MS,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self.pause_every = max(1, pause_every)
        self.pause_ms = pause_ms
        self.cancel_token = cancel_token
        self.entries_extracted = 0
        self.entries_failed = 0

    async def extract(
        self,
        archive_path: Path,
        destination: Path,
        on_progress: ProgressCallback | None = None,
        progress_range: tuple[int, int] = (0, 100),
    ) -> int:
        """
        Extract every file entry of an archive.

        Args:
            archive_path: Archive to read
            destination: Folder receiving the entries (created if missing)
            on_progress: Optional progress callback
            progress_range: ``(start, end)`` sub-range of the caller's 0-100 scale

        Returns:
            Number of entries extracted

        Raises:
            MissingInputError: If the archive does not exist
            StagingError: If a directory cannot be created
            ArchiveMemoryError: If the archive cannot be held in memory
            zipfile.BadZipFile: If the file is not a zip archive
        """
        if not archive_path.is_file():
            raise MissingInputError(str(archive_path), stage=ImportStage.READING.value)

        size_mb = archive_size_mb(archive_path) or 0.0
        logger.info("Extracting archive", archive=str(archive_path), size_mb=round(size_mb, 2))

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(
                f"Cannot create extraction folder {destination}: {e}",
                stage=ImportStage.READING.value,
            ) from e

        try:
            payload = archive_path.read_bytes()
            with zipfile.ZipFile(io.BytesIO(payload)) as zf:
                return await self._extract_entries(zf, destination, on_progress, progress_range)
        except MemoryError as e:
            logger.error("Out of memory extracting archive", archive=str(archive_path))
            raise ArchiveMemoryError(
                f"Not enough memory to extract {archive_path.name} ({size_mb:.2f} MB)."
            ) from e

    async def _extract_entries(
        self,
        zf: zipfile.ZipFile,
        destination: Path,
        on_progress: ProgressCallback | None,
        progress_range: tuple[int, int],
    ) -> int:
        entries = [info for info in zf.infolist() if not info.is_dir()]
        total = len(entries)
        start, end = progress_range
        self.entries_extracted = 0
        self.entries_failed = 0

        for index, info in enumerate(entries, start=1):
            if self._extract_entry(zf, info, destination):
                self.entries_extracted += 1
            else:
                self.entries_failed += 1

            emit(
                on_progress,
                ImportStage.READING,
                round(start + (index / total) * (end - start)),
                100,
                f"Extracting files: {index}/{total}",
            )

            if index % self.pause_every == 0:
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled(ImportStage.READING.value)
                await asyncio.sleep(self.pause_ms / 1000)

        logger.info(
            "Archive extracted",
            destination=str(destination),
            extracted=self.entries_extracted,
            failed=self.entries_failed,
        )
        return self.entries_extracted

    def _extract_entry(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, destination: Path) -> bool:
        """Write one entry under destination; False if it was skipped or failed."""
        target = _safe_target(destination, info.filename)
        if target is None:
            logger.warning("Unsafe archive entry skipped", entry=info.filename)
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(
                f"Cannot create directory {target.parent}: {e}",
                stage=ImportStage.READING.value,
            ) from e

        try:
            if info.filename.lower().endswith(constants.TABLE_EXTENSION):
                text = zf.read(info).decode("utf-8")
                with open(target, "w", encoding="utf-8", newline="") as f:
                    f.write(text)
            else:
                target.write_bytes(zf.read(info))
        except (zipfile.BadZipFile, UnicodeDecodeError, OSError) as e:
            logger.warning("Archive entry extraction failed", entry=info.filename, error=str(e))
            return False
        return True
