"""Configuration management for the warehouse data transfer pipeline."""

import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

import yaml

from . import constants


@dataclass
class PathsConfig:
    """
    Filesystem locations used by export and import.

    Staging directories are never fixed paths: each call derives its own
    unique directory under ``work_dir`` via ``new_staging_dir``.
    """

    data_dir: Path = field(default_factory=lambda: Path.home() / ".stocktransfer")
    images_dir: Path | None = None  # Persistent image store (default: data_dir/images)
    export_dir: Path | None = None  # Final archives (default: data_dir/exports)
    work_dir: Path | None = None  # Parent of per-call staging dirs (default: data_dir)
    backup_dir: Path | None = None  # Pre-import backups (default: data_dir/backups)
    database: Path | None = None  # SQLite store (default: data_dir/inventory.db)

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
        self.images_dir = Path(self.images_dir) if self.images_dir else self.data_dir / "images"
        self.export_dir = Path(self.export_dir) if self.export_dir else self.data_dir / "exports"
        self.work_dir = Path(self.work_dir) if self.work_dir else self.data_dir
        self.backup_dir = Path(self.backup_dir) if self.backup_dir else self.data_dir / "backups"
        self.database = Path(self.database) if self.database else self.data_dir / "inventory.db"

    def new_staging_dir(self, prefix: str) -> Path:
        """
        Build a unique, not yet created staging path for one call.

        Args:
            prefix: Name prefix (e.g. ``streaming_export_``)

        Returns:
            Path under work_dir, unique per call
        """
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return self.work_dir / f"{prefix}{stamp}_{uuid.uuid4().hex[:8]}"


@dataclass
class BatchConfig:
    """Batch sizes and cooperative pause cadence."""

    batch_size: int = constants.DEFAULT_BATCH_SIZE
    batch_pause_ms: int = constants.BATCH_PAUSE_MS
    image_pause_every: int = constants.IMAGE_EXPORT_PAUSE_EVERY
    image_pause_ms: int = constants.IMAGE_EXPORT_PAUSE_MS
    item_import_pause_every: int = constants.ITEM_IMPORT_PAUSE_EVERY
    item_import_pause_ms: int = constants.ITEM_IMPORT_PAUSE_MS
    transaction_import_pause_every: int = constants.TRANSACTION_IMPORT_PAUSE_EVERY
    transaction_import_pause_ms: int = constants.TRANSACTION_IMPORT_PAUSE_MS

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


@dataclass
class ArchiveConfig:
    """Archive packaging and extraction settings."""

    compression_level: int = constants.COMPRESSION_LEVEL
    max_in_memory_mb: float = constants.MAX_IN_MEMORY_ARCHIVE_MB
    large_archive_warning_mb: float = constants.LARGE_ARCHIVE_WARNING_MB
    packaging_pause_every: int = constants.PACKAGING_PAUSE_EVERY
    packaging_pause_ms: int = constants.PACKAGING_PAUSE_MS
    extraction_pause_every: int = constants.EXTRACTION_PAUSE_EVERY
    extraction_pause_ms: int = constants.EXTRACTION_PAUSE_MS

    def __post_init__(self) -> None:
        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 0-9, got {self.compression_level}")


@dataclass
class BackupConfig:
    """Pre-import backup settings."""

    enabled: bool = True
    retention: int = constants.BACKUP_RETENTION


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class TransferConfig:
    """
    Complete configuration for export and import.

    This combines all configuration sections.
    """

    paths: PathsConfig = field(default_factory=PathsConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "TransferConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            TransferConfig instance

        Raises:
            ValueError: If the file is not valid YAML or not a mapping
        """
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])

        return cls(
            paths=PathsConfig(**(data.get("paths") or {})),
            batch=BatchConfig(**(data.get("batch") or {})),
            archive=ArchiveConfig(**(data.get("archive") or {})),
            backup=BackupConfig(**(data.get("backup") or {})),
            logging=LoggingConfig(**logging_data),
        )

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "paths": {k: str(v) for k, v in asdict(self.paths).items() if v is not None},
            "batch": asdict(self.batch),
            "archive": asdict(self.archive),
            "backup": asdict(self.backup),
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in asdict(self.logging).items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "TransferConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            STOCKTRANSFER_DATA_DIR: Root directory for data and working files
            STOCKTRANSFER_BATCH_SIZE: Records per write batch (default: 100)
            STOCKTRANSFER_MAX_IN_MEMORY_MB: Size gate for archive extraction (default: 50)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            TransferConfig instance
        """
        data_dir = os.environ.get("STOCKTRANSFER_DATA_DIR")
        paths = PathsConfig(data_dir=Path(data_dir)) if data_dir else PathsConfig()

        batch = BatchConfig(
            batch_size=int(
                os.environ.get("STOCKTRANSFER_BATCH_SIZE", str(constants.DEFAULT_BATCH_SIZE))
            )
        )
        archive = ArchiveConfig(
            max_in_memory_mb=float(
                os.environ.get(
                    "STOCKTRANSFER_MAX_IN_MEMORY_MB", str(constants.MAX_IN_MEMORY_ARCHIVE_MB)
                )
            )
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(paths=paths, batch=batch, archive=archive, logging=logging_config)


def load_config(config_file: Path | None = None) -> TransferConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        TransferConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return TransferConfig.from_file(config_file)
    return TransferConfig.from_env()
