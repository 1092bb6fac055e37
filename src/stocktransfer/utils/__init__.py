"""Utility functions and exceptions."""

from .cancellation import CancellationToken
from .exceptions import (
    ArchiveMemoryError,
    ArchiveTooLargeError,
    MissingInputError,
    PackagingError,
    RowError,
    StageError,
    StagingError,
    TransferCancelledError,
    TransferError,
)

__all__ = [
    "TransferError",
    "StageError",
    "MissingInputError",
    "StagingError",
    "PackagingError",
    "ArchiveMemoryError",
    "ArchiveTooLargeError",
    "TransferCancelledError",
    "RowError",
    "CancellationToken",
]
