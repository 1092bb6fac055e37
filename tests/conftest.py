"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing Stock Transfer.
Fixtures are organized by category:
- Store fixtures: In-memory InventoryStore test double and sample datasets
- Config fixtures: TransferConfig rooted in a temp directory with no pauses
- Progress fixtures: Collector for progress events
"""

from pathlib import Path

import pytest

from src.stocktransfer.config import ArchiveConfig, BatchConfig, PathsConfig, TransferConfig
from src.stocktransfer.models.progress import Progress
from src.stocktransfer.models.records import Item, Transaction, TransactionAction

# =============================================================================
# Store Fixtures
# =============================================================================


class InMemoryStore:
    """InventoryStore test double keeping records in lists.

    Inserts assign fresh identifiers like a real store would. Item names in
    ``fail_item_names`` make ``insert_item_import`` raise.
    """

    def __init__(
        self,
        items: list[Item] | None = None,
        transactions: list[Transaction] | None = None,
    ) -> None:
        self.items: list[Item] = list(items or [])
        self.transactions: list[Transaction] = list(transactions or [])
        self.fail_item_names: set[str] = set()
        self._next_item_id = 1000
        self._next_transaction_id = 1000

    async def get_items(self) -> list[Item]:
        return list(self.items)

    async def get_all_transactions(self) -> list[Transaction]:
        return list(self.transactions)

    async def insert_item_import(self, item: Item) -> None:
        if item.name in self.fail_item_names:
            raise RuntimeError(f"constraint failed for {item.name}")
        self._next_item_id += 1
        self.items.append(item.model_copy(update={"id": self._next_item_id}))

    async def insert_transaction_import(self, transaction: Transaction) -> None:
        self._next_transaction_id += 1
        self.transactions.append(transaction.model_copy(update={"id": self._next_transaction_id}))


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """A small image file outside any staging area."""
    source_dir = tmp_path / "device_images"
    source_dir.mkdir()
    path = source_dir / "a.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg-payload\x00\x01\x02")
    return path


@pytest.fixture
def example_items(image_file: Path) -> list[Item]:
    """Three items: one with an image, one without, one with unknown price."""
    return [
        Item(
            id=1,
            name="Running shoe",
            code="RS-1",
            warehouse="A",
            number_of_boxes=2,
            box_size_quantities='[{"size":42,"qty":3}]',
            size_type="eu",
            row="1",
            position="2",
            side="left",
            image_uri=str(image_file),
            total_quantity=6,
            total_value=120.5,
            created_at=1700000000,
        ),
        Item(
            id=2,
            name="Sandal, summer",
            code="SD-2",
            warehouse="B",
            box_size_quantities='[{"size":40,"qty":1}]',
            size_type="eu",
            total_quantity=1,
            total_value=30,
            created_at=1700000100,
        ),
        Item(
            id=3,
            name='Boot "Winter"',
            code="BT-3",
            warehouse="A",
            box_size_quantities="[]",
            size_type="us",
            total_quantity=0,
            total_value=-1,
            created_at=1700000200,
        ),
    ]


@pytest.fixture
def example_transactions() -> list[Transaction]:
    """Two transactions, one with multi-line details."""
    return [
        Transaction(
            id=10,
            action=TransactionAction.CREATE,
            item_id=1,
            item_name="Running shoe",
            timestamp=1700000001,
            details='{"note":"initial"}',
        ),
        Transaction(
            id=11,
            action=TransactionAction.SALE,
            item_id=2,
            item_name="Sandal, summer",
            timestamp=1700000500,
            details='{"qty":1,\n"price":30}',
        ),
    ]


@pytest.fixture
def example_store(example_items: list[Item], example_transactions: list[Transaction]) -> InMemoryStore:
    """Store holding the example dataset."""
    return InMemoryStore(example_items, example_transactions)


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def transfer_config(tmp_path: Path) -> TransferConfig:
    """Configuration rooted in tmp_path with all cooperative pauses disabled."""
    return TransferConfig(
        paths=PathsConfig(data_dir=tmp_path / "data"),
        batch=BatchConfig(
            batch_pause_ms=0,
            image_pause_ms=0,
            item_import_pause_ms=0,
            transaction_import_pause_ms=0,
        ),
        archive=ArchiveConfig(packaging_pause_ms=0, extraction_pause_ms=0),
    )


# =============================================================================
# Progress Fixtures
# =============================================================================


@pytest.fixture
def progress_events() -> list[Progress]:
    """List that collects progress events; pass ``progress_events.append`` as callback."""
    return []
