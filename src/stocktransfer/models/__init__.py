"""Data models for the warehouse data transfer pipeline."""

from .progress import ExportStage, ImportStage, Progress, ProgressCallback, scale_progress
from .records import Item, Transaction, TransactionAction
from .results import ExportResult, ImportResult

__all__ = [
    # Records
    "Item",
    "Transaction",
    "TransactionAction",
    # Progress
    "ExportStage",
    "ImportStage",
    "Progress",
    "ProgressCallback",
    "scale_progress",
    # Results
    "ExportResult",
    "ImportResult",
]
