"""Inventory store collaborator.

The pipeline only needs four operations from local persistence. They are
described by the ``InventoryStore`` protocol; ``SQLiteInventoryStore`` is the
reference implementation used by the command line.

Import inserts ignore the record's own identifier: the importing store
assigns its own sequence. Each insert is its own transaction, so a failed row
never rolls back rows already imported.
"""

import sqlite3
import time
from pathlib import Path
from types import TracebackType
from typing import Protocol, runtime_checkable

import structlog

from ..models.records import Item, Transaction

logger = structlog.get_logger(__name__)


@runtime_checkable
class InventoryStore(Protocol):
    """Persistence operations consumed by export and import."""

    async def get_items(self) -> list[Item]:
        """Return all catalog items."""
        ...

    async def get_all_transactions(self) -> list[Transaction]:
        """Return all transactions."""
        ...

    async def insert_item_import(self, item: Item) -> None:
        """Insert an imported item under a new identifier. Raises on failure."""
        ...

    async def insert_transaction_import(self, transaction: Transaction) -> None:
        """Insert an imported transaction under a new identifier. Raises on failure."""
        ...


class SQLiteInventoryStore:
    """
    SQLite-backed InventoryStore.

    Features:
    - Schema created on first use
    - One transaction per imported record
    - Context manager support for closing the connection
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (``:memory:`` allowed)
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn: sqlite3.Connection = self._initialize_db()

        logger.info("Inventory store opened", db_path=self.db_path)

    def _initialize_db(self) -> sqlite3.Connection:
        """Initialize database schema."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                code TEXT NOT NULL DEFAULT '',
                warehouse TEXT NOT NULL DEFAULT '',
                numberOfBoxes INTEGER NOT NULL DEFAULT 1,
                boxSizeQuantities TEXT NOT NULL DEFAULT '[]',
                sizeType TEXT NOT NULL DEFAULT '',
                row TEXT,
                position TEXT,
                side TEXT,
                imageUri TEXT,
                totalQuantity INTEGER NOT NULL DEFAULT 0,
                totalValue REAL NOT NULL DEFAULT 0,
                createdAt INTEGER NOT NULL
            )
        """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                action TEXT NOT NULL,
                itemId INTEGER,
                itemName TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                details TEXT
            )
        """
        )

        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transactions_timestamp
            ON transactions(timestamp)
        """
        )

        conn.commit()

        logger.debug("Database schema initialized")
        return conn

    async def get_items(self) -> list[Item]:
        cursor = self.conn.execute("SELECT * FROM items ORDER BY id")
        return [
            Item(
                id=row["id"],
                name=row["name"],
                code=row["code"],
                warehouse=row["warehouse"],
                number_of_boxes=row["numberOfBoxes"],
                box_size_quantities=row["boxSizeQuantities"],
                size_type=row["sizeType"],
                row=row["row"],
                position=row["position"],
                side=row["side"],
                image_uri=row["imageUri"],
                total_quantity=row["totalQuantity"],
                total_value=row["totalValue"],
                created_at=row["createdAt"],
            )
            for row in cursor.fetchall()
        ]

    async def get_all_transactions(self) -> list[Transaction]:
        cursor = self.conn.execute("SELECT * FROM transactions ORDER BY timestamp DESC, id DESC")
        return [
            Transaction(
                id=row["id"],
                action=row["action"],
                item_id=row["itemId"],
                item_name=row["itemName"],
                timestamp=row["timestamp"],
                details=row["details"],
            )
            for row in cursor.fetchall()
        ]

    async def insert_item_import(self, item: Item) -> None:
        created_at = item.created_at if item.created_at is not None else int(time.time())
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO items (name, code, warehouse, numberOfBoxes, boxSizeQuantities,
                    sizeType, row, position, side, imageUri, totalQuantity, totalValue, createdAt)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    item.name,
                    item.code,
                    item.warehouse,
                    item.number_of_boxes,
                    item.box_size_quantities,
                    item.size_type,
                    item.row,
                    item.position,
                    item.side,
                    item.image_uri,
                    item.total_quantity,
                    item.total_value,
                    created_at,
                ),
            )

    async def insert_transaction_import(self, transaction: Transaction) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO transactions (action, itemId, itemName, timestamp, details)
                VALUES (?, ?, ?, ?, ?)
            """,
                (
                    transaction.action.value,
                    transaction.item_id,
                    transaction.item_name,
                    transaction.timestamp,
                    transaction.details,
                ),
            )

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            logger.debug("Inventory store closed")

    def __enter__(self) -> "SQLiteInventoryStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
