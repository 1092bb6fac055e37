"""Package a staging directory into the final export archive.

This is the one pipeline step whose memory grows with the total image
payload: the whole archive is assembled in an in-memory buffer and only then
written to its final path, so a failure never leaves a partial archive on
disk. Callers that need constant memory use the folder-based export instead
(the staging directory itself, see ExportOrchestrator.export_to_folder).
"""

import asyncio
import io
import zipfile
from datetime import datetime
from pathlib import Path

import structlog

from .. import constants
from ..utils.cancellation import CancellationToken
from ..utils.exceptions import PackagingError

logger = structlog.get_logger(__name__)


def archive_name(moment: datetime | None = None) -> str:
    """
    Deterministic timestamp-suffixed archive file name.

    Args:
        moment: Export time (default: now)

    Returns:
        ``warehouse_export_<unix ms>.zip``
    """
    moment = moment or datetime.now()
    return (
        f"{constants.ARCHIVE_NAME_PREFIX}{int(moment.timestamp() * 1000)}"
        f"{constants.ARCHIVE_EXTENSION}"
    )


class ArchivePackager:
    """
    Build ``items.csv``, ``transactions.csv`` and ``images/*`` into one zip.

    Features:
    - Deflate at a fixed moderate level (default 6)
    - Each image read once, fully, then compressed into the buffer
    - Periodic pause every few images to bound allocator pressure
    - Final file written only after the buffer is complete
    """

    def __init__(
        self,
        compression_level: int = constants.COMPRESSION_LEVEL,
        pause_every: int = constants.PACKAGING_PAUSE_EVERY,
        pause_ms: int = constants.PACKAGING_PAUSE_MS,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self.compression_level = compression_level
        self.pause_every = max(1, pause_every)
        self.pause_ms = pause_ms
        self.cancel_token = cancel_token
        self.images_packaged = 0

    async def package(self, staging_dir: Path, output_dir: Path) -> Path:
        """
        Package a staging directory.

        Args:
            staging_dir: Directory laid out as items.csv, transactions.csv, images/
            output_dir: Directory receiving the archive

        Returns:
            Path of the written archive

        Raises:
            PackagingError: If the archive cannot be written
        """
        buffer = io.BytesIO()
        self.images_packaged = 0

        with zipfile.ZipFile(
            buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=self.compression_level
        ) as zf:
            for table_name in (constants.ITEMS_FILE_NAME, constants.TRANSACTIONS_FILE_NAME):
                table_path = staging_dir / table_name
                if table_path.is_file():
                    zf.write(table_path, table_name)
                    logger.debug("Table packaged", table=table_name)

            images_dir = staging_dir / constants.IMAGES_DIR_NAME
            if images_dir.is_dir():
                image_files = sorted(p for p in images_dir.iterdir() if p.is_file())
                for index, image_path in enumerate(image_files, start=1):
                    try:
                        data = image_path.read_bytes()
                    except OSError as e:
                        logger.warning(
                            "Image could not be added to archive, skipping",
                            image=image_path.name,
                            error=str(e),
                        )
                    else:
                        zf.writestr(f"{constants.IMAGES_DIR_NAME}/{image_path.name}", data)
                        del data
                        self.images_packaged += 1

                    if index % self.pause_every == 0:
                        if self.cancel_token is not None:
                            self.cancel_token.raise_if_cancelled("packaging")
                        await asyncio.sleep(self.pause_ms / 1000)

        return self._write_archive(buffer, output_dir)

    def _write_archive(self, buffer: io.BytesIO, output_dir: Path) -> Path:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PackagingError(
                f"Cannot create export directory {output_dir}: {e}", stage="packaging"
            ) from e

        # Two exports in the same millisecond must not overwrite each other
        base = Path(archive_name()).stem
        archive_path = output_dir / f"{base}{constants.ARCHIVE_EXTENSION}"
        suffix = 1
        while archive_path.exists():
            archive_path = output_dir / f"{base}-{suffix}{constants.ARCHIVE_EXTENSION}"
            suffix += 1

        try:
            handle = open(archive_path, "xb")
        except OSError as e:
            raise PackagingError(
                f"Cannot create archive {archive_path}: {e}", stage="packaging"
            ) from e

        try:
            with handle:
                handle.write(buffer.getbuffer())
        except OSError as e:
            archive_path.unlink(missing_ok=True)
            raise PackagingError(
                f"Cannot write archive {archive_path}: {e}", stage="packaging"
            ) from e

        logger.info(
            "Archive written",
            archive=str(archive_path),
            size_bytes=archive_path.stat().st_size,
            images=self.images_packaged,
        )
        return archive_path
