"""Unit tests for records, progress events and results."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.stocktransfer.models.progress import (
    ExportStage,
    ImportStage,
    Progress,
    emit,
    scale_progress,
)
from src.stocktransfer.models.records import Item, Transaction, TransactionAction
from src.stocktransfer.models.results import ExportResult, ImportResult


class TestItem:
    """Test Item model."""

    def test_defaults(self):
        item = Item(name="A")

        assert item.number_of_boxes == 1
        assert item.box_size_quantities == "[]"
        assert item.total_value == 0
        assert item.has_unknown_price is False

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            Item(name="")

    def test_blank_optional_text_becomes_none(self):
        item = Item(name="A", row="  ", side="", image_uri="")

        assert item.row is None
        assert item.side is None
        assert item.image_uri is None

    @pytest.mark.parametrize("value", [-1, -0.5, -100])
    def test_negative_value_is_unknown_price(self, value):
        assert Item(name="A", total_value=value).has_unknown_price is True

    def test_staged_image_name(self):
        item = Item(id=7, name="A", image_uri="file:///data/images/shoe.png")

        assert item.staged_image_name == "7_shoe.png"

    def test_staged_image_name_windows_path(self):
        item = Item(id=3, name="A", image_uri="C:\\photos\\boot.jpg")

        assert item.staged_image_name == "3_boot.jpg"

    def test_no_image_no_staged_name(self):
        assert Item(id=1, name="A").staged_image_name is None


class TestTransaction:
    """Test Transaction model."""

    def test_action_from_string(self):
        transaction = Transaction(action="wholesale", item_name="A", timestamp=1)

        assert transaction.action == TransactionAction.WHOLESALE

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            Transaction(action="teleport", item_name="A", timestamp=1)

    def test_blank_details_become_none(self):
        assert Transaction(action="create", item_name="A", timestamp=1, details="").details is None


class TestProgress:
    """Test progress events and scaling."""

    def test_fraction(self):
        assert Progress(ExportStage.ITEMS, 50, 200, "").fraction == 0.25
        assert Progress(ExportStage.ITEMS, 0, 0, "").fraction == 0.0
        assert Progress(ExportStage.ITEMS, 5, 3, "").fraction == 1.0

    def test_emit_without_callback(self):
        emit(None, ExportStage.ITEMS, 1, 1, "ignored")

    def test_emit(self):
        events = []

        emit(events.append, ImportStage.READING, 10, 100, "Preparing import...")

        assert events == [Progress(ImportStage.READING, 10, 100, "Preparing import...")]

    def test_scale_progress(self):
        events = []
        scaled = scale_progress(events.append, 50, 100)

        scaled(Progress(ImportStage.READING, 0, 100, "start"))
        scaled(Progress(ImportStage.ITEMS, 1, 4, "items"))
        scaled(Progress(ImportStage.COMPLETE, 100, 100, "done"))

        assert [(e.stage, e.current, e.total) for e in events] == [
            (ImportStage.READING, 50, 100),
            (ImportStage.ITEMS, 62, 100),
            (ImportStage.COMPLETE, 100, 100),
        ]
        assert events[1].message == "items"

    def test_scale_progress_none(self):
        assert scale_progress(None, 0, 50) is None


class TestResults:
    """Test ExportResult and ImportResult."""

    def test_export_summary(self):
        result = ExportResult(
            archive_path=Path("/x/warehouse_export_1.zip"),
            items_exported=3,
            transactions_exported=2,
            images_exported=1,
            images_failed=1,
        )

        summary = result.get_summary()

        assert "3 items, 2 transactions and 1 images" in summary
        assert "warehouse_export_1.zip" in summary
        assert "1 images could not be copied" in summary

    def test_import_summary_wire_shape(self):
        result = ImportResult(items_without_price=1, images_imported=1, images_total=3)

        assert result.to_summary() == {
            "itemsWithoutPrice": 1,
            "imagesImported": 1,
            "imagesTotal": 3,
        }
        assert result.images_unmatched == 2
        assert result.has_advisories is True

    def test_no_advisories(self):
        result = ImportResult(items_imported=2, images_imported=1, images_total=1)

        assert result.has_advisories is False
        assert result.get_summary() == (
            "Imported 2 items and 0 transactions.\nImages attached: 1/1."
        )

    def test_import_summary_mentions_problems(self):
        result = ImportResult(
            items_imported=4,
            items_skipped=1,
            transactions_failed=2,
            items_without_price=3,
        )

        summary = result.get_summary()

        assert "1 rows skipped, 2 rows failed to insert." in summary
        assert "3 items have no price set" in summary
