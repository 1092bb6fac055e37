"""Unit tests for the archive packager."""

import zipfile
from datetime import datetime
from unittest.mock import patch

import pytest

from src.stocktransfer.core.packager import ArchivePackager, archive_name
from src.stocktransfer.utils.cancellation import CancellationToken
from src.stocktransfer.utils.exceptions import PackagingError, TransferCancelledError


@pytest.fixture
def staging_dir(tmp_path):
    staging = tmp_path / "streaming_export_test"
    (staging / "images").mkdir(parents=True)
    (staging / "items.csv").write_text("id,name\n1,A\n", encoding="utf-8")
    (staging / "transactions.csv").write_text("id,action\n", encoding="utf-8")
    (staging / "images" / "1_a.jpg").write_bytes(b"\xff\xd8jpeg")
    (staging / "images" / "2_b.png").write_bytes(b"\x89PNGpng")
    return staging


class _FailingHandle:
    """File handle that writes a few bytes and then fails."""

    def __init__(self, path, mode):
        self._file = open(path, mode)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._file.close()

    def write(self, data):
        self._file.write(b"partial")
        raise OSError("disk full")


class TestArchiveName:
    """Test archive_name function."""

    def test_timestamp_suffixed(self):
        moment = datetime.fromtimestamp(1718000000.5)
        assert archive_name(moment) == "warehouse_export_1718000000500.zip"


class TestArchivePackager:
    """Test ArchivePackager class."""

    @pytest.mark.asyncio
    async def test_archive_layout(self, tmp_path, staging_dir):
        """Test tables at the root and images under images/."""
        packager = ArchivePackager(pause_ms=0)

        archive = await packager.package(staging_dir, tmp_path / "out")

        assert archive.parent == tmp_path / "out"
        assert archive.name.startswith("warehouse_export_")
        with zipfile.ZipFile(archive) as zf:
            assert sorted(zf.namelist()) == [
                "images/1_a.jpg",
                "images/2_b.png",
                "items.csv",
                "transactions.csv",
            ]
            assert zf.read("images/1_a.jpg") == b"\xff\xd8jpeg"
            assert zf.read("items.csv").decode("utf-8") == "id,name\n1,A\n"
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())
        assert packager.images_packaged == 2

    @pytest.mark.asyncio
    async def test_missing_tables_and_images_are_optional(self, tmp_path):
        staging = tmp_path / "staging"
        staging.mkdir()
        (staging / "items.csv").write_text("id\n", encoding="utf-8")

        archive = await ArchivePackager(pause_ms=0).package(staging, tmp_path / "out")

        with zipfile.ZipFile(archive) as zf:
            assert zf.namelist() == ["items.csv"]

    @pytest.mark.asyncio
    async def test_same_millisecond_exports_do_not_collide(self, tmp_path, staging_dir):
        packager = ArchivePackager(pause_ms=0)
        with patch(
            "src.stocktransfer.core.packager.archive_name",
            return_value="warehouse_export_1.zip",
        ):
            first = await packager.package(staging_dir, tmp_path / "out")
            second = await packager.package(staging_dir, tmp_path / "out")

        assert first.name == "warehouse_export_1.zip"
        assert second.name == "warehouse_export_1-1.zip"

    @pytest.mark.asyncio
    async def test_write_failure_leaves_no_partial_file(self, tmp_path, staging_dir):
        """Test a failed write removes the archive and raises PackagingError."""
        out = tmp_path / "out"
        packager = ArchivePackager(pause_ms=0)

        with patch("src.stocktransfer.core.packager.open", _FailingHandle, create=True):
            with pytest.raises(PackagingError):
                await packager.package(staging_dir, out)

        assert list(out.iterdir()) == []

    @pytest.mark.asyncio
    async def test_uncreatable_output_dir(self, tmp_path, staging_dir):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(PackagingError) as exc_info:
            await ArchivePackager(pause_ms=0).package(staging_dir, blocker / "out")

        assert exc_info.value.stage == "packaging"

    @pytest.mark.asyncio
    async def test_unreadable_image_skipped(self, tmp_path, staging_dir):
        original_read_bytes = type(staging_dir).read_bytes

        def flaky_read_bytes(path):
            if path.name == "2_b.png":
                raise OSError("unreadable")
            return original_read_bytes(path)

        with patch.object(type(staging_dir), "read_bytes", flaky_read_bytes):
            packager = ArchivePackager(pause_ms=0)
            archive = await packager.package(staging_dir, tmp_path / "out")

        with zipfile.ZipFile(archive) as zf:
            assert "images/2_b.png" not in zf.namelist()
        assert packager.images_packaged == 1

    @pytest.mark.asyncio
    async def test_cancellation_checked_after_unreadable_image(self, tmp_path, staging_dir):
        original_read_bytes = type(staging_dir).read_bytes

        def flaky_read_bytes(path):
            if path.name == "1_a.jpg":
                raise OSError("unreadable")
            return original_read_bytes(path)

        token = CancellationToken()
        token.cancel()
        packager = ArchivePackager(pause_every=1, pause_ms=0, cancel_token=token)

        with patch.object(type(staging_dir), "read_bytes", flaky_read_bytes):
            with pytest.raises(TransferCancelledError):
                await packager.package(staging_dir, tmp_path / "out")

        assert packager.images_packaged == 0
        assert not (tmp_path / "out").exists()
