"""Copy catalog images into the export staging area."""

import asyncio
import shutil
from collections.abc import Sequence
from pathlib import Path

import structlog

from .. import constants
from ..models.progress import ExportStage, ProgressCallback, emit
from ..models.records import Item
from ..utils.cancellation import CancellationToken

logger = structlog.get_logger(__name__)

# Chunk size for stream-to-stream copies
COPY_CHUNK_BYTES = 1024 * 1024


def resolve_image_path(image_uri: str) -> Path:
    """
    Turn a stored image reference into a filesystem path.

    References may be stored as ``file://`` URIs or plain paths.
    """
    if image_uri.startswith("file://"):
        image_uri = image_uri[len("file://") :]
    return Path(image_uri)


def stream_copy(source: Path, destination: Path) -> None:
    """
    Copy a file in fixed-size chunks without holding its contents in memory.

    Args:
        source: Existing file
        destination: Target file (overwritten)
    """
    with open(source, "rb") as src, open(destination, "wb") as dst:
        shutil.copyfileobj(src, dst, COPY_CHUNK_BYTES)


class ImageMaterializer:
    """
    Copy each item's image, unmodified, into ``<staging>/images/``.

    Destination names embed the owning item's identifier
    (``<itemId>_<originalFileName>``) so the importer can re-associate files
    with rows. A missing or unreadable image is logged and skipped; it never
    aborts the export.
    """

    def __init__(
        self,
        images_dir: Path,
        pause_every: int = constants.IMAGE_EXPORT_PAUSE_EVERY,
        pause_ms: int = constants.IMAGE_EXPORT_PAUSE_MS,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """
        Initialize the materializer.

        Args:
            images_dir: Staging images directory (created if missing)
            pause_every: Pause after every N images
            pause_ms: Pause duration
            cancel_token: Optional cancellation token checked at each pause
        """
        self.images_dir = images_dir
        self.pause_every = max(1, pause_every)
        self.pause_ms = pause_ms
        self.cancel_token = cancel_token
        self.copied = 0
        self.failed = 0

    async def materialize(
        self, items: Sequence[Item], on_progress: ProgressCallback | None = None
    ) -> int:
        """
        Copy all referenced images.

        Args:
            items: Catalog items; items without an image reference are ignored
            on_progress: Optional progress callback

        Returns:
            Number of images copied
        """
        self.images_dir.mkdir(parents=True, exist_ok=True)
        with_images = [item for item in items if item.image_uri]
        total = len(with_images)
        self.copied = 0
        self.failed = 0

        logger.info("Materializing images", total=total, images_dir=str(self.images_dir))

        for index, item in enumerate(with_images, start=1):
            destination = self.images_dir / item.staged_image_name
            try:
                stream_copy(resolve_image_path(item.image_uri), destination)
                self.copied += 1
            except OSError as e:
                self.failed += 1
                destination.unlink(missing_ok=True)
                logger.warning(
                    "Image export failed, skipping",
                    item_id=item.id,
                    image_uri=item.image_uri,
                    error=str(e),
                )

            emit(
                on_progress,
                ExportStage.IMAGES,
                index,
                total,
                f"Exporting images: {index}/{total}",
            )

            if index % self.pause_every == 0:
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled(ExportStage.IMAGES.value)
                await asyncio.sleep(self.pause_ms / 1000)

        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(ExportStage.IMAGES.value)

        logger.info("Images materialized", copied=self.copied, failed=self.failed)
        return self.copied
