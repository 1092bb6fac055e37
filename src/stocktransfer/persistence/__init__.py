"""Persistence layer: inventory store collaborator and pre-import backups."""

from .backup import BackupManager
from .store import InventoryStore, SQLiteInventoryStore

__all__ = ["BackupManager", "InventoryStore", "SQLiteInventoryStore"]
