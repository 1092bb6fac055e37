"""Custom exceptions for the warehouse data transfer pipeline.

Exception Hierarchy:
-------------------
TransferError (base)
├── StageError                    # Fatal: aborts the whole export/import call
│   ├── MissingInputError         # items.csv or the archive itself is missing
│   ├── StagingError              # Staging/destination directory could not be created
│   ├── PackagingError            # Final archive could not be written
│   └── ArchiveMemoryError        # Out of memory while decoding an archive
│       └── ArchiveTooLargeError  # Refused by the size gate before extraction
├── TransferCancelledError        # Cancellation observed at a batch yield point
└── RowError                      # Recoverable: one row/record/image failed

Usage Guidelines:
----------------
1. RowError never escapes the batch loop that raised it. The loop logs it,
   counts it in the result and moves on to the next row.

2. StageError and its subclasses unwind to the orchestrator, which removes its
   staging directory and re-raises the original exception.

3. ArchiveMemoryError is a degrade-by-instruction signal: its message tells the
   user to extract the archive manually and run the folder import instead.

4. Advisory outcomes (unknown prices, unmatched images) are not exceptions at
   all. They are counted in ImportResult.
"""

MANUAL_EXTRACTION_HINT = (
    "Extract the archive manually and use the folder import "
    "(`stocktransfer import <folder>`) instead."
)


class TransferError(Exception):
    """Base exception for all transfer errors."""

    pass


class StageError(TransferError):
    """Raised when a pipeline stage fails and the whole call must abort."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        """
        Initialize StageError.

        Args:
            message: Error message.
            stage: Optional name of the stage that failed.
        """
        super().__init__(message)
        self.stage = stage


class MissingInputError(StageError):
    """Raised when a required input file is missing."""

    def __init__(self, path: str, stage: str | None = None) -> None:
        super().__init__(f"Required file not found: {path}", stage=stage)
        self.path = path


class StagingError(StageError):
    """Raised when a staging or destination directory cannot be prepared."""

    pass


class PackagingError(StageError):
    """Raised when the final archive cannot be written."""

    pass


class ArchiveMemoryError(StageError):
    """
    Raised when an archive cannot be decoded in memory.

    The message always carries the manual-extraction instruction so the caller
    can show it to the user verbatim.
    """

    def __init__(self, message: str | None = None, stage: str | None = "reading") -> None:
        """
        Initialize ArchiveMemoryError.

        Args:
            message: Optional leading explanation.
            stage: Stage in which memory ran out.
        """
        lead = message or "Not enough memory to extract the archive."
        super().__init__(f"{lead} {MANUAL_EXTRACTION_HINT}", stage=stage)


class ArchiveTooLargeError(ArchiveMemoryError):
    """Raised when the size gate classifies an archive as too risky to extract in memory."""

    def __init__(self, size_mb: float | None, limit_mb: float) -> None:
        """
        Initialize ArchiveTooLargeError.

        Args:
            size_mb: Archive size in megabytes, or None if it could not be determined.
            limit_mb: Largest size accepted for in-memory extraction.
        """
        if size_mb:
            lead = (
                f"Archive is too large to extract in memory "
                f"({size_mb:.2f} MB > {limit_mb:.0f} MB)."
            )
        else:
            lead = "Archive size could not be determined, refusing in-memory extraction."
        super().__init__(lead)
        self.size_mb = size_mb
        self.limit_mb = limit_mb


class TransferCancelledError(TransferError):
    """Raised when a transfer is cancelled through its CancellationToken."""

    def __init__(self, stage: str | None = None) -> None:
        message = "Transfer cancelled" if stage is None else f"Transfer cancelled during {stage}"
        super().__init__(message)
        self.stage = stage


class RowError(TransferError):
    """Raised for a single malformed row or failed record; always recoverable."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize RowError.

        Args:
            message: Error message.
            line_number: Optional 1-based data row number.
            original_error: Optional exception that caused this error.
        """
        super().__init__(message)
        self.line_number = line_number
        self.original_error = original_error

    def __str__(self) -> str:
        if self.line_number:
            return f"Row {self.line_number}: {self.args[0]}"
        return str(self.args[0]) if self.args else "Row error"
