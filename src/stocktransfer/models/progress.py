"""Progress events reported by export and import."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class ExportStage(str, Enum):
    """Linear export state machine: preparing -> items -> ... -> complete."""

    PREPARING = "preparing"
    ITEMS = "items"
    TRANSACTIONS = "transactions"
    IMAGES = "images"
    PACKAGING = "packaging"
    COMPLETE = "complete"


class ImportStage(str, Enum):
    """Import stages."""

    READING = "reading"
    ITEMS = "items"
    TRANSACTIONS = "transactions"
    IMAGES = "images"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Progress:
    """
    One progress event.

    Attributes:
        stage: Current stage
        current: Units done, on the scale given by total
        total: Scale of ``current`` (a stage's record count, or 100)
        message: Human-readable status line
    """

    stage: ExportStage | ImportStage
    current: int
    total: int
    message: str

    @property
    def fraction(self) -> float:
        """Completion of this event's scale as 0.0-1.0."""
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


ProgressCallback = Callable[[Progress], None]


def emit(
    callback: ProgressCallback | None,
    stage: ExportStage | ImportStage,
    current: int,
    total: int,
    message: str,
) -> None:
    """Invoke callback with a Progress event if a callback was given."""
    if callback is not None:
        callback(Progress(stage=stage, current=current, total=total, message=message))


def scale_progress(
    callback: ProgressCallback | None, start: int, end: int
) -> ProgressCallback | None:
    """
    Compose a sub-pipeline's progress into a range of a larger 0-100 scale.

    Every event the returned callback receives is mapped to
    ``start + fraction * (end - start)`` out of 100. For example, an archive
    import passes ``scale_progress(cb, 50, 100)`` to the folder import, so the
    folder import's "complete" event reaches the caller as 100/100.

    Args:
        callback: Outer callback (None disables reporting)
        start: Start of the reserved range
        end: End of the reserved range

    Returns:
        Wrapped callback, or None if callback is None
    """
    if callback is None:
        return None

    def _scaled(progress: Progress) -> None:
        callback(
            Progress(
                stage=progress.stage,
                current=round(start + progress.fraction * (end - start)),
                total=100,
                message=progress.message,
            )
        )

    return _scaled
