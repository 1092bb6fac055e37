"""
Structural pre-flight checks for import sources.

These checks are cheap and advisory: they look at table headers, a sample of
data rows and archive metadata before the slower import starts. Anything the
import itself tolerates (short rows, odd identifiers) is a warning; only
problems that would make the import fail outright are errors.
"""

import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from .. import constants
from ..core.codec import is_blank_row, parse_table
from ..core.extractor import archive_size_mb

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """Errors and warnings collected for one import source."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        """Returns True if there are no errors (warnings are allowed)."""
        return len(self.errors) == 0

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self


def _read_rows(path: Path) -> list[list[str]]:
    with open(path, encoding="utf-8-sig", newline="") as f:
        return [row for row in parse_table(f.read()) if not is_blank_row(row)]


def _missing_headers(header: Sequence[str], required: Sequence[str]) -> list[str]:
    present = {cell.strip().lower() for cell in header}
    return [name for name in required if name.lower() not in present]


def _parse_id(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


class ImportValidator:
    """
    Validate an import folder or archive before running the import.
    """

    def __init__(
        self,
        sample_rows: int = constants.VALIDATION_SAMPLE_ROWS,
        large_archive_warning_mb: float = constants.LARGE_ARCHIVE_WARNING_MB,
    ) -> None:
        self.sample_rows = sample_rows
        self.large_archive_warning_mb = large_archive_warning_mb

    def validate_items_table(self, path: Path) -> ValidationResult:
        """
        Check the items table header and a sample of data rows.

        Args:
            path: ``items.csv`` path

        Returns:
            ValidationResult
        """
        result = ValidationResult()

        try:
            rows = _read_rows(path)
        except (OSError, UnicodeDecodeError) as e:
            result.add_error(f"Cannot read items table: {e}")
            return result

        if not rows:
            result.add_error("Items table is empty")
            return result

        missing = _missing_headers(rows[0], constants.REQUIRED_ITEM_HEADERS)
        if missing:
            result.add_error(f"Items table is missing required columns: {', '.join(missing)}")
            return result

        required = len(constants.REQUIRED_ITEM_HEADERS)
        for offset, cells in enumerate(rows[1 : self.sample_rows + 1], start=2):
            if len(cells) < required:
                result.add_warning(f"Row {offset}: too few columns ({len(cells)}/{required})")
            if cells[0].strip() and _parse_id(cells[0]) is None:
                result.add_warning(f'Row {offset}: invalid id "{cells[0]}"')

        logger.debug(
            "Items table validated",
            path=str(path),
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return result

    def validate_transactions_table(self, path: Path) -> ValidationResult:
        """
        Check the transactions table header.

        The transactions table is optional: a missing or empty file is only a
        warning.

        Args:
            path: ``transactions.csv`` path

        Returns:
            ValidationResult
        """
        result = ValidationResult()

        if not path.exists():
            result.add_warning("Transactions table is missing (normal for some exports)")
            return result

        try:
            rows = _read_rows(path)
        except (OSError, UnicodeDecodeError) as e:
            result.add_warning(f"Cannot read transactions table: {e}")
            return result

        if not rows:
            result.add_warning("Transactions table is empty")
            return result

        missing = _missing_headers(rows[0], constants.REQUIRED_TRANSACTION_HEADERS)
        if missing:
            result.add_error(
                f"Transactions table is missing required columns: {', '.join(missing)}"
            )

        return result

    def validate_archive(self, path: Path) -> ValidationResult:
        """
        Check that an archive exists, is a zip file, and warn when it is very large.

        Args:
            path: Archive path

        Returns:
            ValidationResult
        """
        result = ValidationResult()

        if not path.is_file():
            result.add_error(f"Archive does not exist: {path}")
            return result

        size_mb = archive_size_mb(path)
        if size_mb and size_mb > self.large_archive_warning_mb:
            result.add_warning(
                f"Archive is very large ({size_mb:.2f} MB). Import may take a long time."
            )

        if not zipfile.is_zipfile(path):
            result.add_error(f"Not a zip archive: {path.name}")

        return result

    def validate_folder(self, folder: Path) -> ValidationResult:
        """
        Validate both tables of an import folder.

        Args:
            folder: Folder holding ``items.csv`` and optionally ``transactions.csv``

        Returns:
            Combined ValidationResult
        """
        items_path = folder / constants.ITEMS_FILE_NAME
        if not items_path.is_file():
            result = ValidationResult()
            result.add_error(f"{constants.ITEMS_FILE_NAME} not found in {folder}")
            return result

        result = self.validate_items_table(items_path)
        result.merge(self.validate_transactions_table(folder / constants.TRANSACTIONS_FILE_NAME))

        try:
            duplicates = find_duplicate_ids(items_path.read_text(encoding="utf-8-sig"))
        except (OSError, UnicodeDecodeError):
            duplicates = []
        if duplicates:
            shown = ", ".join(str(i) for i in duplicates[:10])
            result.add_warning(f"Duplicate item ids (new ids are assigned on import): {shown}")

        logger.info(
            "Import folder validated",
            folder=str(folder),
            valid=result.valid,
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return result


def find_duplicate_ids(text: str, column: int = 0) -> list[int]:
    """
    Find integer identifiers that occur more than once in a table.

    The first row is treated as the header and skipped.

    Args:
        text: Table text
        column: Index of the identifier column

    Returns:
        Each duplicated identifier once, in first-duplicate order
    """
    seen: set[int] = set()
    duplicates: list[int] = []

    rows = [row for row in parse_table(text) if not is_blank_row(row)]
    for cells in rows[1:]:
        if column >= len(cells):
            continue
        value = _parse_id(cells[column])
        if value is None:
            continue
        if value in seen:
            if value not in duplicates:
                duplicates.append(value)
        else:
            seen.add(value)

    return duplicates
