"""
Export Orchestrator - drives one full export of the local dataset.

Stages (linear, never branching back):
    preparing -> items -> transactions -> images -> packaging -> complete

Every call owns a unique staging directory under the configured work
directory. The directory is removed when the call ends, whether it succeeded,
failed or was cancelled; a failed call re-raises its original exception and
never returns a partial archive.
"""

import shutil
import time
import uuid
from pathlib import Path

import structlog

from .. import constants
from ..config import TransferConfig
from ..models.progress import ExportStage, ProgressCallback, emit
from ..models.results import ExportResult
from ..observability.logger import LogContext
from ..persistence.store import InventoryStore
from ..utils.cancellation import CancellationToken
from ..utils.cleanup import cleanup_directory
from ..utils.exceptions import StagingError
from .materializer import ImageMaterializer
from .packager import ArchivePackager, archive_name
from .table_io import items_writer, transactions_writer

logger = structlog.get_logger(__name__)


class ExportOrchestrator:
    """
    Export items, transactions and images to an archive or a plain folder.
    """

    def __init__(
        self,
        store: InventoryStore,
        config: TransferConfig | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """
        Initialize ExportOrchestrator.

        Args:
            store: Persistence collaborator providing items and transactions
            config: Transfer configuration (default: built-in defaults)
            cancel_token: Optional token checked at every batch yield point
        """
        self.store = store
        self.config = config or TransferConfig()
        self.cancel_token = cancel_token

    async def export(
        self,
        on_progress: ProgressCallback | None = None,
        output_dir: Path | None = None,
    ) -> ExportResult:
        """
        Export the whole dataset to a single zip archive.

        Args:
            on_progress: Optional progress callback
            output_dir: Archive destination (default: configured export_dir)

        Returns:
            ExportResult with the archive path and counts

        Raises:
            StagingError: If the staging directory cannot be created
            PackagingError: If the archive cannot be written
            TransferCancelledError: If the cancel token was triggered
        """
        return await self._run(on_progress, output_dir or self.config.paths.export_dir, True)

    async def export_to_folder(
        self,
        on_progress: ProgressCallback | None = None,
        output_dir: Path | None = None,
    ) -> ExportResult:
        """
        Export the whole dataset to a plain folder (constant-memory path).

        The staged layout (``items.csv``, ``transactions.csv``, ``images/``) is
        moved to ``output_dir`` as-is; no archive buffer is ever built, so
        memory stays bounded by one batch regardless of image payload size.

        Returns:
            ExportResult whose ``archive_path`` is the exported folder
        """
        return await self._run(on_progress, output_dir or self.config.paths.export_dir, False)

    async def _run(
        self, on_progress: ProgressCallback | None, output_dir: Path, package: bool
    ) -> ExportResult:
        transfer_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        staging_dir = self.config.paths.new_staging_dir(constants.STAGING_EXPORT_PREFIX)

        with LogContext(transfer_id=transfer_id, operation="export"):
            logger.info("Export started", staging_dir=str(staging_dir), packaged=package)
            emit(on_progress, ExportStage.PREPARING, 0, 100, "Preparing export...")

            try:
                result = await self._stage(staging_dir, on_progress)

                if package:
                    emit(on_progress, ExportStage.PACKAGING, 90, 100, "Creating archive...")
                    packager = ArchivePackager(
                        compression_level=self.config.archive.compression_level,
                        pause_every=self.config.archive.packaging_pause_every,
                        pause_ms=self.config.archive.packaging_pause_ms,
                        cancel_token=self.cancel_token,
                    )
                    result.archive_path = await packager.package(staging_dir, output_dir)
                else:
                    emit(on_progress, ExportStage.PACKAGING, 90, 100, "Finalizing export folder...")
                    result.archive_path = self._publish_folder(staging_dir, output_dir)
            except Exception:
                logger.error("Export failed", staging_dir=str(staging_dir), exc_info=True)
                raise
            finally:
                cleanup_directory(staging_dir)

            result.duration_seconds = time.monotonic() - started
            emit(on_progress, ExportStage.COMPLETE, 100, 100, "Export complete!")
            logger.info(
                "Export completed",
                path=str(result.archive_path),
                items=result.items_exported,
                transactions=result.transactions_exported,
                images=result.images_exported,
                images_failed=result.images_failed,
                duration_seconds=round(result.duration_seconds, 2),
            )
            return result

    async def _stage(self, staging_dir: Path, on_progress: ProgressCallback | None) -> ExportResult:
        """Populate the staging directory with both tables and all images."""
        try:
            staging_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise StagingError(
                f"Cannot create staging directory {staging_dir}: {e}",
                stage=ExportStage.PREPARING.value,
            ) from e

        items = await self.store.get_items()
        transactions = await self.store.get_all_transactions()
        emit(
            on_progress,
            ExportStage.PREPARING,
            25,
            100,
            f"Found {len(items)} items and {len(transactions)} transactions",
        )
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(ExportStage.PREPARING.value)

        batch = self.config.batch
        writer_options = {
            "batch_size": batch.batch_size,
            "pause_ms": batch.batch_pause_ms,
            "cancel_token": self.cancel_token,
        }
        items_written = await items_writer(
            staging_dir / constants.ITEMS_FILE_NAME, **writer_options
        ).write(items, on_progress)
        transactions_written = await transactions_writer(
            staging_dir / constants.TRANSACTIONS_FILE_NAME, **writer_options
        ).write(transactions, on_progress)

        materializer = ImageMaterializer(
            staging_dir / constants.IMAGES_DIR_NAME,
            pause_every=batch.image_pause_every,
            pause_ms=batch.image_pause_ms,
            cancel_token=self.cancel_token,
        )
        await materializer.materialize(items, on_progress)

        return ExportResult(
            archive_path=staging_dir,
            items_exported=items_written,
            transactions_exported=transactions_written,
            images_exported=materializer.copied,
            images_failed=materializer.failed,
        )

    def _publish_folder(self, staging_dir: Path, output_dir: Path) -> Path:
        """Move a fully staged directory to its final, timestamp-named location."""
        base = Path(archive_name()).stem
        target = output_dir / base
        suffix = 1
        while target.exists():
            target = output_dir / f"{base}-{suffix}"
            suffix += 1

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(staging_dir), str(target))
        except OSError as e:
            raise StagingError(
                f"Cannot move export folder to {target}: {e}", stage=ExportStage.PACKAGING.value
            ) from e

        logger.info("Export folder written", path=str(target))
        return target
