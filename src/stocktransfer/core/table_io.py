"""Batched table writer/reader and row <-> record mapping.

Writing:
-------
BatchedTableWriter writes the header row once, then appends one rendered
block per batch, reports ``(processed, total, stage)`` and yields briefly so
the event loop stays responsive and the block buffer is reclaimed before the
next batch. Only one batch worth of rendered text is alive at a time.

The destination is opened in true append mode for every batch, so writing N
batches costs O(total bytes), not the O(n^2) of a read-concatenate-rewrite
loop.

Reading:
-------
TableReader loads one table and returns its data rows: an optional header row
(first cell ``id``, case-insensitive) is skipped and rows whose cells are all
blank are dropped. Rows are then mapped positionally to records. Short or
legacy rows get defaults for absent trailing columns instead of failing the
whole import.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError

from .. import constants
from ..models.progress import ExportStage, ProgressCallback, emit
from ..models.records import Item, Transaction
from ..observability.logger import VERBOSE
from ..utils.cancellation import CancellationToken
from ..utils.exceptions import RowError
from .codec import is_blank_row, parse_table, render_row

logger = structlog.get_logger(__name__)
batch_logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Record -> row
# =============================================================================


def format_number(value: int | float | None) -> str:
    """
    Render a number without a spurious fractional part.

    ``-1.0`` renders as ``-1`` and ``12.5`` as ``12.5``, so the price sentinel
    is written back exactly as it was read.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def item_to_row(item: Item) -> list[Any]:
    """Render an Item in ``constants.ITEM_COLUMNS`` order."""
    return [
        format_number(item.id),
        item.name,
        item.code,
        item.warehouse,
        format_number(item.number_of_boxes),
        item.box_size_quantities,
        item.size_type,
        item.row,
        item.position,
        item.side,
        item.staged_image_name,
        format_number(item.total_quantity),
        format_number(item.total_value),
        format_number(item.created_at),
    ]


def transaction_to_row(transaction: Transaction) -> list[Any]:
    """Render a Transaction in ``constants.TRANSACTION_COLUMNS`` order."""
    return [
        format_number(transaction.id),
        transaction.action.value,
        format_number(transaction.item_id),
        transaction.item_name,
        format_number(transaction.timestamp),
        transaction.details,
    ]


# =============================================================================
# Row -> record
# =============================================================================


@dataclass
class ItemRow:
    """
    An item parsed from one data row.

    Attributes:
        item: Parsed record. ``image_uri`` is unset; the importer fills it in
            after image reconciliation.
        image_hint: ``imageFileName`` cell recorded at export time
        line_number: 1-based data row number
    """

    item: Item
    image_hint: str | None
    line_number: int


def _cell(cells: Sequence[str], index: int) -> str:
    return cells[index] if index < len(cells) else ""


def _parse_int(text: str) -> int | None:
    """Parse an integer cell, accepting ``"12.0"``; None when blank or unparsable."""
    text = text.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return None


def _parse_float(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def item_from_row(cells: Sequence[str], line_number: int) -> ItemRow:
    """
    Map a data row to an Item positionally.

    Absent trailing columns fall back to defaults. ``totalValue`` is only
    read when the row has all 14 columns and the cell is non-empty; a
    negative value is kept verbatim. An unparsable ``totalValue`` becomes 0
    with a warning.

    Args:
        cells: Raw cells
        line_number: 1-based data row number, for messages

    Returns:
        ItemRow

    Raises:
        RowError: If the name is blank or the row fails model validation
    """
    name = _cell(cells, 1)
    if not name.strip():
        raise RowError("Item row has no name", line_number=line_number)

    total_value = 0.0
    raw_total_value = _cell(cells, 12)
    if len(cells) >= len(constants.ITEM_COLUMNS) and raw_total_value != "":
        parsed_value = _parse_float(raw_total_value)
        if parsed_value is None:
            logger.warning(
                "Unparsable totalValue, defaulting to 0",
                line=line_number,
                value=raw_total_value,
            )
        else:
            total_value = parsed_value

    code = _cell(cells, 2)
    warehouse = _cell(cells, 3)
    box_size_quantities = _cell(cells, 5)
    size_type = _cell(cells, 6)
    if not code or not warehouse or not size_type or box_size_quantities in ("", "[]"):
        logger.warning(
            "Importing item with incomplete data",
            line=line_number,
            name=name,
            has_code=bool(code),
            has_warehouse=bool(warehouse),
            has_size_type=bool(size_type),
            has_box_size_quantities=box_size_quantities not in ("", "[]"),
        )

    number_of_boxes = _parse_int(_cell(cells, 4))
    total_quantity = _parse_int(_cell(cells, 11))

    try:
        item = Item(
            id=_parse_int(_cell(cells, 0)),
            name=name,
            code=code,
            warehouse=warehouse,
            number_of_boxes=(
                number_of_boxes if number_of_boxes is not None else constants.DEFAULT_NUMBER_OF_BOXES
            ),
            box_size_quantities=box_size_quantities or constants.DEFAULT_BOX_SIZE_QUANTITIES,
            size_type=size_type,
            row=_cell(cells, 7),
            position=_cell(cells, 8),
            side=_cell(cells, 9),
            total_quantity=total_quantity if total_quantity is not None else 0,
            total_value=total_value,
            created_at=_parse_int(_cell(cells, 13)),
        )
    except ValidationError as e:
        raise RowError(f"Invalid item row: {e}", line_number=line_number, original_error=e) from e

    image_hint = _cell(cells, 10).strip() or None
    return ItemRow(item=item, image_hint=image_hint, line_number=line_number)


def transaction_from_row(cells: Sequence[str], line_number: int) -> Transaction:
    """
    Map a data row to a Transaction positionally.

    A blank timestamp defaults to the current Unix time.

    Args:
        cells: Raw cells
        line_number: 1-based data row number, for messages

    Returns:
        Transaction

    Raises:
        RowError: If action or item name is missing, or the action is unknown
    """
    action = _cell(cells, 1).strip()
    item_name = _cell(cells, 3)
    if not action or not item_name.strip():
        raise RowError("Transaction row is missing action or item name", line_number=line_number)

    timestamp = _parse_int(_cell(cells, 4))
    try:
        return Transaction(
            id=_parse_int(_cell(cells, 0)),
            action=action,
            item_id=_parse_int(_cell(cells, 2)),
            item_name=item_name,
            timestamp=timestamp if timestamp is not None else int(time.time()),
            details=_cell(cells, 5),
        )
    except ValidationError as e:
        raise RowError(
            f"Invalid transaction row: {e}", line_number=line_number, original_error=e
        ) from e


# =============================================================================
# Writer
# =============================================================================


class BatchedTableWriter(Generic[T]):
    """
    Write a record sequence to a table file in fixed-size batches.

    Features:
    - Header written once, rows appended one batch at a time
    - Progress ``(processed, total, stage)`` after each batch
    - Cooperative pause and cancellation check between batches
    """

    def __init__(
        self,
        path: Path,
        columns: Sequence[str],
        render: Callable[[T], Sequence[Any]],
        stage: ExportStage,
        label: str,
        batch_size: int = constants.DEFAULT_BATCH_SIZE,
        pause_ms: int = constants.BATCH_PAUSE_MS,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """
        Initialize the writer.

        Args:
            path: Destination table file (truncated on write)
            columns: Header row
            render: Maps one record to its cells in column order
            stage: Stage reported with progress events
            label: Human-readable record kind for progress messages
            batch_size: Records per batch
            pause_ms: Pause after each batch
            cancel_token: Optional cancellation token checked between batches
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.path = path
        self.columns = list(columns)
        self.render = render
        self.stage = stage
        self.label = label
        self.batch_size = batch_size
        self.pause_ms = pause_ms
        self.cancel_token = cancel_token
        self.rows_written = 0

    async def write(
        self, records: Sequence[T], on_progress: ProgressCallback | None = None
    ) -> int:
        """
        Write header and all records.

        Args:
            records: Records in output order
            on_progress: Optional progress callback

        Returns:
            Number of data rows written
        """
        total = len(records)
        self.rows_written = 0

        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(render_row(self.columns))

        for start in range(0, total, self.batch_size):
            batch = records[start : start + self.batch_size]
            block = "".join(render_row(self.render(record)) for record in batch)

            with open(self.path, "a", encoding="utf-8", newline="") as f:
                f.write(block)

            self.rows_written += len(batch)
            del block

            emit(
                on_progress,
                self.stage,
                self.rows_written,
                total,
                f"Exporting {self.label}: {self.rows_written}/{total}",
            )
            batch_logger.log(
                VERBOSE, "Batch written to %s: %d/%d", self.path.name, self.rows_written, total
            )

            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled(self.stage.value)
            await asyncio.sleep(self.pause_ms / 1000)

        return self.rows_written


def items_writer(path: Path, **kwargs: Any) -> BatchedTableWriter[Item]:
    """BatchedTableWriter configured for items.csv."""
    return BatchedTableWriter(
        path, constants.ITEM_COLUMNS, item_to_row, ExportStage.ITEMS, "items", **kwargs
    )


def transactions_writer(path: Path, **kwargs: Any) -> BatchedTableWriter[Transaction]:
    """BatchedTableWriter configured for transactions.csv."""
    return BatchedTableWriter(
        path,
        constants.TRANSACTION_COLUMNS,
        transaction_to_row,
        ExportStage.TRANSACTIONS,
        "transactions",
        **kwargs,
    )


# =============================================================================
# Reader
# =============================================================================


class TableReader:
    """
    Read a table file into data rows.

    The whole table text is decoded once; rows are then handed to the
    importer which processes them with its own batch cadence.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.header: list[str] | None = None

    def read(self) -> list[tuple[int, list[str]]]:
        """
        Read data rows.

        Returns:
            ``(data_row_number, cells)`` pairs, header and blank rows removed

        Raises:
            FileNotFoundError: If the table file does not exist
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Table file not found: {self.path}")

        with open(self.path, encoding="utf-8-sig", newline="") as f:
            rows = parse_table(f.read())

        self.header = None
        if rows and rows[0] and rows[0][0].strip().lower() == constants.HEADER_MARKER:
            self.header = rows[0]
            rows = rows[1:]

        data_rows = [
            (number, cells)
            for number, cells in enumerate(rows, start=1)
            if not is_blank_row(cells)
        ]

        logger.info(
            "Table read",
            path=str(self.path),
            has_header=self.header is not None,
            rows=len(data_rows),
            blank_rows=len(rows) - len(data_rows),
        )
        return data_rows
