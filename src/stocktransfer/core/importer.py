"""
Import Orchestrator - loads an exported dataset into the local store.

Entry points:
- import_folder: primary path over a plain folder (``items.csv``,
  optional ``transactions.csv``, optional ``images/``)
- import_archive: extracts a zip into a unique staging folder (0-50 of the
  progress scale), then runs the folder import (50-100)
- import_auto: routes folders to import_folder and archives through the
  size gate to import_archive

Row-level problems are recovered: the row is logged, counted and skipped.
Stage-level problems (missing items table, directory creation failure,
archive too large or out of memory) abort the call.
"""

import asyncio
import logging
import uuid
from pathlib import Path

import structlog

from .. import constants
from ..config import TransferConfig
from ..models.progress import ImportStage, ProgressCallback, emit, scale_progress
from ..models.records import Item
from ..models.results import ImportResult
from ..observability.logger import TRACE, LogContext
from ..persistence.backup import BackupManager
from ..persistence.store import InventoryStore
from ..utils.cancellation import CancellationToken
from ..utils.cleanup import cleanup_directory
from ..utils.exceptions import (
    ArchiveTooLargeError,
    MissingInputError,
    RowError,
    StageError,
    StagingError,
)
from ..validation.validator import ImportValidator
from .extractor import ArchiveExtractor, archive_size_mb, can_process_in_memory
from .matcher import ImageMatch, ImageMatcher
from .materializer import stream_copy
from .table_io import TableReader, item_from_row, transaction_from_row

logger = structlog.get_logger(__name__)
row_logger = logging.getLogger(__name__)

# Progress sub-ranges of an archive import
EXTRACTION_RANGE = (20, 50)
FOLDER_IMPORT_RANGE = (50, 100)


class ImportOrchestrator:
    """
    Import items, transactions and images from a folder or an archive.

    No state is cached between calls; each call starts from whatever the
    store currently holds.
    """

    def __init__(
        self,
        store: InventoryStore,
        config: TransferConfig | None = None,
        cancel_token: CancellationToken | None = None,
        backup_manager: BackupManager | None = None,
    ) -> None:
        """
        Initialize ImportOrchestrator.

        Args:
            store: Persistence collaborator receiving imported records
            config: Transfer configuration (default: built-in defaults)
            cancel_token: Optional token checked at every batch yield point
            backup_manager: Optional manager asked for a backup before the
                store is touched
        """
        self.store = store
        self.config = config or TransferConfig()
        self.cancel_token = cancel_token
        self.backup_manager = backup_manager
        self.validator = ImportValidator(
            large_archive_warning_mb=self.config.archive.large_archive_warning_mb
        )

    # =========================================================================
    # Entry points
    # =========================================================================

    async def import_folder(
        self, folder: Path, on_progress: ProgressCallback | None = None
    ) -> ImportResult:
        """
        Import from a plain folder.

        Args:
            folder: Folder holding ``items.csv`` and optionally
                ``transactions.csv`` and ``images/``
            on_progress: Optional progress callback

        Returns:
            ImportResult with per-row counts and advisory counts

        Raises:
            MissingInputError: If ``items.csv`` is missing
            StagingError: If the persistent image store cannot be created
            TransferCancelledError: If the cancel token was triggered
        """
        with LogContext(transfer_id=uuid.uuid4().hex[:12], operation="import_folder"):
            backup_path = await self._backup()
            result = await self._import_folder(folder, on_progress)
            result.backup_path = backup_path
            return result

    async def import_archive(
        self,
        archive_path: Path,
        on_progress: ProgressCallback | None = None,
        check_size: bool = True,
    ) -> ImportResult:
        """
        Import from a zip archive.

        Args:
            archive_path: Archive produced by an export
            on_progress: Optional progress callback
            check_size: Refuse archives the size gate classifies as risky

        Returns:
            ImportResult

        Raises:
            MissingInputError: If the archive does not exist
            ArchiveTooLargeError: If the size gate refuses the archive
            ArchiveMemoryError: If memory runs out during extraction
            StageError: If the archive fails validation
            TransferCancelledError: If the cancel token was triggered
        """
        with LogContext(transfer_id=uuid.uuid4().hex[:12], operation="import_archive"):
            if not archive_path.is_file():
                raise MissingInputError(str(archive_path), stage=ImportStage.READING.value)

            limit_mb = self.config.archive.max_in_memory_mb
            if check_size and not can_process_in_memory(archive_path, limit_mb):
                size_mb = archive_size_mb(archive_path)
                logger.warning(
                    "Archive refused by size gate", archive=str(archive_path), size_mb=size_mb
                )
                raise ArchiveTooLargeError(size_mb, limit_mb)

            validation = self.validator.validate_archive(archive_path)
            for warning in validation.warnings:
                logger.warning("Archive validation warning", message=warning)
            if not validation.valid:
                raise StageError(
                    "; ".join(validation.errors), stage=ImportStage.READING.value
                )

            backup_path = await self._backup()

            staging_dir = self.config.paths.new_staging_dir(constants.STAGING_IMPORT_PREFIX)
            try:
                emit(on_progress, ImportStage.READING, 10, 100, "Preparing import...")
                emit(on_progress, ImportStage.READING, 20, 100, "Extracting archive...")

                extractor = ArchiveExtractor(
                    pause_every=self.config.archive.extraction_pause_every,
                    pause_ms=self.config.archive.extraction_pause_ms,
                    cancel_token=self.cancel_token,
                )
                await extractor.extract(
                    archive_path, staging_dir, on_progress, progress_range=EXTRACTION_RANGE
                )

                emit(on_progress, ImportStage.READING, 50, 100, "Importing data...")
                result = await self._import_folder(
                    staging_dir, scale_progress(on_progress, *FOLDER_IMPORT_RANGE)
                )
            except Exception:
                logger.error("Archive import failed", archive=str(archive_path), exc_info=True)
                raise
            finally:
                cleanup_directory(staging_dir)

            result.backup_path = backup_path
            return result

    async def import_auto(
        self, source: Path, on_progress: ProgressCallback | None = None
    ) -> ImportResult:
        """
        Import from a folder or an archive, whichever ``source`` is.

        Archives go through the size gate; a risky archive raises
        ArchiveTooLargeError whose message tells the user to extract it by
        hand and import the folder.

        Args:
            source: Folder or archive path
            on_progress: Optional progress callback

        Returns:
            ImportResult
        """
        if source.is_dir():
            return await self.import_folder(source, on_progress)
        return await self.import_archive(source, on_progress, check_size=True)

    # =========================================================================
    # Folder import
    # =========================================================================

    async def _backup(self) -> Path | None:
        if self.backup_manager is None:
            return None
        return await self.backup_manager.create_backup()

    async def _import_folder(
        self, folder: Path, on_progress: ProgressCallback | None
    ) -> ImportResult:
        emit(on_progress, ImportStage.READING, 0, 100, "Reading files...")

        items_path = folder / constants.ITEMS_FILE_NAME
        transactions_path = folder / constants.TRANSACTIONS_FILE_NAME
        source_images = folder / constants.IMAGES_DIR_NAME

        if not items_path.is_file():
            raise MissingInputError(str(items_path), stage=ImportStage.READING.value)

        result = ImportResult()
        matcher = ImageMatcher(source_images)
        try:
            result.images_total = len(matcher.files)
        except OSError as e:
            logger.warning("Could not list import images", folder=str(source_images), error=str(e))
        logger.info("Import started", folder=str(folder), images_available=result.images_total)

        await self._import_items(items_path, matcher, result, on_progress)

        if transactions_path.is_file():
            await self._import_transactions(transactions_path, result, on_progress)
        else:
            logger.info("No transactions table, skipping", folder=str(folder))

        emit(on_progress, ImportStage.COMPLETE, 100, 100, "Import complete!")
        logger.info(
            "Import completed",
            items_imported=result.items_imported,
            items_skipped=result.items_skipped,
            items_failed=result.items_failed,
            transactions_imported=result.transactions_imported,
            transactions_skipped=result.transactions_skipped,
            transactions_failed=result.transactions_failed,
            items_without_price=result.items_without_price,
            images_imported=result.images_imported,
            images_total=result.images_total,
        )
        return result

    async def _import_items(
        self,
        path: Path,
        matcher: ImageMatcher,
        result: ImportResult,
        on_progress: ProgressCallback | None,
    ) -> None:
        rows = TableReader(path).read()
        total = len(rows)
        batch = self.config.batch
        pause_every = max(1, batch.item_import_pause_every)

        if matcher.files:
            self._ensure_images_dir()

        for index, (line_number, cells) in enumerate(rows, start=1):
            try:
                parsed = item_from_row(cells, line_number)
            except RowError as e:
                result.items_skipped += 1
                result.errors.append(str(e))
                logger.warning("Item row skipped", line=line_number, reason=str(e))
            else:
                await self._import_item(parsed.item, parsed.image_hint, matcher, line_number, result)

            emit(on_progress, ImportStage.ITEMS, index, total, f"Importing items: {index}/{total}")

            if index % pause_every == 0:
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled(ImportStage.ITEMS.value)
                await asyncio.sleep(batch.item_import_pause_ms / 1000)

        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(ImportStage.ITEMS.value)

    async def _import_item(
        self,
        item: Item,
        image_hint: str | None,
        matcher: ImageMatcher,
        line_number: int,
        result: ImportResult,
    ) -> None:
        stored_image: Path | None = None
        if image_hint:
            match = matcher.match(image_hint)
            if match is not None:
                stored_image = self._store_image(match, item)
                if stored_image is not None:
                    item = item.model_copy(update={"image_uri": str(stored_image)})

        try:
            await self.store.insert_item_import(item)
        except Exception as e:
            result.items_failed += 1
            result.errors.append(f"Row {line_number}: item insert failed: {e}")
            logger.warning("Item insert failed", line=line_number, name=item.name, error=str(e))
            if stored_image is not None:
                stored_image.unlink(missing_ok=True)
            return

        result.items_imported += 1
        row_logger.log(TRACE, "Item row %d imported: %s", line_number, item.name)
        if item.has_unknown_price:
            result.items_without_price += 1
        if stored_image is not None:
            result.images_imported += 1

    def _ensure_images_dir(self) -> None:
        images_dir = self.config.paths.images_dir
        try:
            images_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(
                f"Cannot create image store {images_dir}: {e}", stage=ImportStage.IMAGES.value
            ) from e

    def _store_image(self, match: ImageMatch, item: Item) -> Path | None:
        """Copy a matched image into the persistent image store."""
        images_dir = self.config.paths.images_dir
        destination = images_dir / match.file_name
        if destination.exists():
            destination = images_dir / f"{uuid.uuid4().hex[:8]}_{match.file_name}"

        try:
            stream_copy(match.path, destination)
        except OSError as e:
            destination.unlink(missing_ok=True)
            logger.warning(
                "Image copy failed, importing item without image",
                name=item.name,
                image=match.file_name,
                error=str(e),
            )
            return None

        logger.debug("Image stored", name=item.name, image=destination.name)
        return destination

    # =========================================================================
    # Transactions
    # =========================================================================

    async def _import_transactions(
        self, path: Path, result: ImportResult, on_progress: ProgressCallback | None
    ) -> None:
        rows = TableReader(path).read()
        total = len(rows)
        batch = self.config.batch
        pause_every = max(1, batch.transaction_import_pause_every)

        for index, (line_number, cells) in enumerate(rows, start=1):
            try:
                transaction = transaction_from_row(cells, line_number)
            except RowError as e:
                result.transactions_skipped += 1
                result.errors.append(str(e))
                logger.warning("Transaction row skipped", line=line_number, reason=str(e))
            else:
                try:
                    await self.store.insert_transaction_import(transaction)
                    result.transactions_imported += 1
                    row_logger.log(
                        TRACE,
                        "Transaction row %d imported: %s %s",
                        line_number,
                        transaction.action.value,
                        transaction.item_name,
                    )
                except Exception as e:
                    result.transactions_failed += 1
                    result.errors.append(f"Row {line_number}: transaction insert failed: {e}")
                    logger.warning("Transaction insert failed", line=line_number, error=str(e))

            emit(
                on_progress,
                ImportStage.TRANSACTIONS,
                index,
                total,
                f"Importing transactions: {index}/{total}",
            )

            if index % pause_every == 0:
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled(ImportStage.TRANSACTIONS.value)
                await asyncio.sleep(batch.transaction_import_pause_ms / 1000)

        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(ImportStage.TRANSACTIONS.value)
