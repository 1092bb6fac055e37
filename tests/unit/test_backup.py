"""Unit tests for pre-import backups."""

import sqlite3
import zipfile
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.stocktransfer.core.exporter import ExportOrchestrator
from src.stocktransfer.models.results import ExportResult
from src.stocktransfer.persistence.backup import BackupManager
from src.stocktransfer.utils.exceptions import PackagingError


def _touch(directory, *names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"zip")


class TestBackupManager:
    """Test BackupManager class."""

    @pytest.mark.asyncio
    async def test_create_backup(self, example_store, transfer_config):
        backup_dir = transfer_config.paths.backup_dir
        manager = BackupManager(ExportOrchestrator(example_store, transfer_config), backup_dir)

        path = await manager.create_backup()

        assert path.parent == backup_dir
        assert path.name.startswith("backup_")
        assert path.suffix == ".zip"
        with zipfile.ZipFile(path) as zf:
            assert "items.csv" in zf.namelist()
        assert manager.list_backups() == [path]

    @pytest.mark.asyncio
    async def test_failed_backup_returns_none(self, tmp_path):
        exporter = MagicMock()
        exporter.export = AsyncMock(side_effect=PackagingError("disk full", stage="packaging"))
        manager = BackupManager(exporter, tmp_path / "backups")

        assert await manager.create_backup() is None

    @pytest.mark.asyncio
    async def test_store_error_returns_none(self, example_store, transfer_config):
        """Test a database error from the store is logged and reported as no backup."""
        example_store.get_items = AsyncMock(
            side_effect=sqlite3.OperationalError("database is locked")
        )
        backup_dir = transfer_config.paths.backup_dir
        manager = BackupManager(ExportOrchestrator(example_store, transfer_config), backup_dir)

        with patch("src.stocktransfer.persistence.backup.logger") as mock_logger:
            assert await manager.create_backup() is None

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["exc_info"] is True
        assert manager.list_backups() == []

    @pytest.mark.asyncio
    async def test_backup_exported_to_backup_dir(self, tmp_path):
        archive = tmp_path / "backups" / "warehouse_export_1.zip"
        _touch(archive.parent, archive.name)
        exporter = MagicMock()
        exporter.export = AsyncMock(return_value=ExportResult(archive_path=archive))
        manager = BackupManager(exporter, tmp_path / "backups")

        path = await manager.create_backup()

        exporter.export.assert_awaited_once_with(output_dir=tmp_path / "backups")
        assert not archive.exists()
        assert path.exists()

    def test_list_backups_newest_first(self, tmp_path):
        backup_dir = tmp_path / "backups"
        _touch(
            backup_dir,
            "backup_100.zip",
            "backup_300.zip",
            "backup_200.zip",
            "backup_300-1.zip",
            "notes.txt",
            "warehouse_export_400.zip",
        )
        manager = BackupManager(MagicMock(), backup_dir)

        names = [p.name for p in manager.list_backups()]

        assert names == ["backup_300-1.zip", "backup_300.zip", "backup_200.zip", "backup_100.zip"]

    def test_list_backups_missing_dir(self, tmp_path):
        assert BackupManager(MagicMock(), tmp_path / "absent").list_backups() == []

    def test_prune_keeps_retention(self, tmp_path):
        backup_dir = tmp_path / "backups"
        _touch(backup_dir, *(f"backup_{n}.zip" for n in range(1, 8)))
        manager = BackupManager(MagicMock(), backup_dir, retention=3)

        removed = manager.prune()

        assert removed == 4
        assert sorted(p.name for p in backup_dir.iterdir()) == [
            "backup_5.zip",
            "backup_6.zip",
            "backup_7.zip",
        ]

    @pytest.mark.asyncio
    async def test_create_backup_prunes(self, example_store, transfer_config):
        backup_dir = transfer_config.paths.backup_dir
        _touch(backup_dir, "backup_1.zip", "backup_2.zip")
        manager = BackupManager(
            ExportOrchestrator(example_store, transfer_config), backup_dir, retention=2
        )

        path = await manager.create_backup()

        assert sorted(p.name for p in backup_dir.iterdir()) == sorted(["backup_2.zip", path.name])
