"""Unit tests for the SQLite inventory store."""

import sqlite3

import pytest

from src.stocktransfer.models.records import Item, Transaction, TransactionAction
from src.stocktransfer.persistence.store import InventoryStore, SQLiteInventoryStore


class TestSQLiteInventoryStore:
    """Test SQLiteInventoryStore class."""

    @pytest.fixture(autouse=True)
    def setup_method(self, tmp_path):
        """Set up test fixtures."""
        self.db_path = tmp_path / "nested" / "inventory.db"
        self.store = SQLiteInventoryStore(self.db_path)

        yield

        self.store.close()

    def test_init_creates_schema(self):
        """Test initialization creates both tables."""
        assert self.db_path.exists()

        conn = sqlite3.connect(str(self.db_path))
        names = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        conn.close()
        assert {"items", "transactions"} <= names

    def test_satisfies_protocol(self):
        assert isinstance(self.store, InventoryStore)

    @pytest.mark.asyncio
    async def test_insert_item_ignores_source_id(self):
        """Test imported items get the store's own identifiers."""
        await self.store.insert_item_import(Item(id=500, name="A", total_value=-1))
        await self.store.insert_item_import(Item(id=500, name="B", image_uri="/img/b.jpg"))

        items = await self.store.get_items()

        assert [(i.id, i.name) for i in items] == [(1, "A"), (2, "B")]
        assert items[0].total_value == -1
        assert items[0].has_unknown_price is True
        assert items[1].image_uri == "/img/b.jpg"

    @pytest.mark.asyncio
    async def test_item_fields_preserved(self):
        item = Item(
            name="Boot",
            code="BT",
            warehouse="North",
            number_of_boxes=3,
            box_size_quantities='[{"size":40,"qty":2}]',
            size_type="eu",
            row="4",
            position="B",
            side="left",
            total_quantity=6,
            total_value=99.5,
            created_at=1700000000,
        )
        await self.store.insert_item_import(item)

        (stored,) = await self.store.get_items()

        assert stored.model_dump(exclude={"id"}) == item.model_dump(exclude={"id"})

    @pytest.mark.asyncio
    async def test_missing_created_at_defaults_to_now(self):
        await self.store.insert_item_import(Item(name="A"))

        (stored,) = await self.store.get_items()

        assert stored.created_at is not None
        assert stored.created_at > 1700000000

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self):
        for timestamp, name in [(100, "old"), (300, "new"), (200, "mid")]:
            await self.store.insert_transaction_import(
                Transaction(
                    action=TransactionAction.UPDATE,
                    item_name=name,
                    timestamp=timestamp,
                    details='{"a":1}',
                )
            )

        transactions = await self.store.get_all_transactions()

        assert [t.item_name for t in transactions] == ["new", "mid", "old"]
        assert transactions[0].action == TransactionAction.UPDATE
        assert transactions[0].details == '{"a":1}'

    @pytest.mark.asyncio
    async def test_failed_insert_keeps_earlier_rows(self):
        await self.store.insert_item_import(Item(name="kept"))
        self.store.conn.execute(
            "CREATE TRIGGER reject BEFORE INSERT ON items "
            "WHEN NEW.name = 'bad' BEGIN SELECT RAISE(ABORT, 'rejected'); END"
        )

        with pytest.raises(sqlite3.DatabaseError):
            await self.store.insert_item_import(Item(name="bad"))

        assert [i.name for i in await self.store.get_items()] == ["kept"]

    def test_context_manager(self, tmp_path):
        with SQLiteInventoryStore(tmp_path / "ctx.db") as store:
            assert store.conn is not None

        with pytest.raises(sqlite3.ProgrammingError):
            store.conn.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = SQLiteInventoryStore(":memory:")
        try:
            await store.insert_item_import(Item(name="A"))
            assert len(await store.get_items()) == 1
        finally:
            store.close()
