"""Result types for export and import calls."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ExportResult:
    """
    Outcome of one export call.

    Attributes:
        archive_path: Final archive file
        items_exported: Item rows written
        transactions_exported: Transaction rows written
        images_exported: Images copied into the staging area
        images_failed: Images that could not be copied (logged and skipped)
        duration_seconds: Wall-clock duration
    """

    archive_path: Path
    items_exported: int = 0
    transactions_exported: int = 0
    images_exported: int = 0
    images_failed: int = 0
    duration_seconds: float = 0.0

    def get_summary(self) -> str:
        """Human-readable one-line summary."""
        summary = (
            f"Exported {self.items_exported} items, {self.transactions_exported} transactions "
            f"and {self.images_exported} images to {self.archive_path.name}"
        )
        if self.images_failed:
            summary += f" ({self.images_failed} images could not be copied)"
        return summary


@dataclass
class ImportResult:
    """
    Outcome of one import call.

    The first three fields are the advisory counts shown to the user next to
    the success/failure outcome: they are expected, actionable results rather
    than errors.

    Attributes:
        items_without_price: Imported items carrying the unknown-price sentinel
        images_imported: Images matched to an item and copied into the store
        images_total: Image files available in the import source
        items_imported: Item rows inserted
        items_skipped: Item rows skipped (blank name or malformed)
        items_failed: Item rows whose insert failed
        transactions_imported: Transaction rows inserted
        transactions_skipped: Transaction rows skipped (missing action/name or malformed)
        transactions_failed: Transaction rows whose insert failed
        errors: Messages for every skipped or failed row
        backup_path: Pre-import backup archive, if one was created
    """

    items_without_price: int = 0
    images_imported: int = 0
    images_total: int = 0
    items_imported: int = 0
    items_skipped: int = 0
    items_failed: int = 0
    transactions_imported: int = 0
    transactions_skipped: int = 0
    transactions_failed: int = 0
    errors: list[str] = field(default_factory=list)
    backup_path: Path | None = None

    @property
    def images_unmatched(self) -> int:
        """Images present in the source that were not attached to any item."""
        return max(0, self.images_total - self.images_imported)

    @property
    def has_advisories(self) -> bool:
        """True when the user should be told about unknown prices or unmatched images."""
        return self.items_without_price > 0 or self.images_unmatched > 0

    def to_summary(self) -> dict[str, int]:
        """Import summary in the wire shape ``{itemsWithoutPrice, imagesImported, imagesTotal}``."""
        return {
            "itemsWithoutPrice": self.items_without_price,
            "imagesImported": self.images_imported,
            "imagesTotal": self.images_total,
        }

    def get_summary(self) -> str:
        """
        Get a human-readable summary including advisory counts.

        Returns:
            str: Multi-line confirmation message.
        """
        lines = [
            f"Imported {self.items_imported} items and {self.transactions_imported} transactions."
        ]
        skipped = self.items_skipped + self.transactions_skipped
        failed = self.items_failed + self.transactions_failed
        if skipped or failed:
            lines.append(f"{skipped} rows skipped, {failed} rows failed to insert.")
        if self.images_total:
            lines.append(f"Images attached: {self.images_imported}/{self.images_total}.")
        if self.items_without_price:
            lines.append(
                f"{self.items_without_price} items have no price set and need attention."
            )
        return "\n".join(lines)
