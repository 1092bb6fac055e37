"""Configuration constants for the warehouse data transfer pipeline.

Named constants for batch sizes, yield cadences, file layout and size limits.
Runtime-tunable values are mirrored as defaults in ``config.py``.
"""

# -----------------------------------------------------------------------------
# Staged / archive layout
# -----------------------------------------------------------------------------

ITEMS_FILE_NAME: str = "items.csv"
TRANSACTIONS_FILE_NAME: str = "transactions.csv"
IMAGES_DIR_NAME: str = "images"

# Extension that marks an archive entry as tabular text
TABLE_EXTENSION: str = ".csv"

ARCHIVE_NAME_PREFIX: str = "warehouse_export_"
ARCHIVE_EXTENSION: str = ".zip"
STAGING_EXPORT_PREFIX: str = "streaming_export_"
STAGING_IMPORT_PREFIX: str = "temp_import_"
BACKUP_NAME_PREFIX: str = "backup_"


# -----------------------------------------------------------------------------
# Tabular columns (positional)
# -----------------------------------------------------------------------------

ITEM_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "code",
    "warehouse",
    "numberOfBoxes",
    "boxSizeQuantities",
    "sizeType",
    "row",
    "position",
    "side",
    "imageFileName",
    "totalQuantity",
    "totalValue",
    "createdAt",
)

TRANSACTION_COLUMNS: tuple[str, ...] = (
    "id",
    "action",
    "itemId",
    "itemName",
    "timestamp",
    "details",
)

# Columns a header row must contain for the table to be importable
REQUIRED_ITEM_HEADERS: tuple[str, ...] = (
    "id",
    "name",
    "code",
    "warehouse",
    "numberOfBoxes",
    "boxSizeQuantities",
    "sizeType",
)
REQUIRED_TRANSACTION_HEADERS: tuple[str, ...] = ("id", "action", "itemName", "timestamp")

# First cell of an optional header row (compared case-insensitively)
HEADER_MARKER: str = "id"


# -----------------------------------------------------------------------------
# Batching and cooperative yields
# -----------------------------------------------------------------------------

DEFAULT_BATCH_SIZE: int = 100
BATCH_PAUSE_MS: int = 10

IMAGE_EXPORT_PAUSE_EVERY: int = 10
IMAGE_EXPORT_PAUSE_MS: int = 50

PACKAGING_PAUSE_EVERY: int = 5
PACKAGING_PAUSE_MS: int = 20

EXTRACTION_PAUSE_EVERY: int = 10
EXTRACTION_PAUSE_MS: int = 50

ITEM_IMPORT_PAUSE_EVERY: int = 50
ITEM_IMPORT_PAUSE_MS: int = 10
TRANSACTION_IMPORT_PAUSE_EVERY: int = 100
TRANSACTION_IMPORT_PAUSE_MS: int = 5


# -----------------------------------------------------------------------------
# Archive limits
# -----------------------------------------------------------------------------

# Deflate level 6: moderate, not maximum
COMPRESSION_LEVEL: int = 6

# Archives above this size are not extracted in memory
MAX_IN_MEMORY_ARCHIVE_MB: float = 50.0

# Archives above this size get a validation warning
LARGE_ARCHIVE_WARNING_MB: float = 100.0

BYTES_PER_MB: int = 1024 * 1024


# -----------------------------------------------------------------------------
# Images
# -----------------------------------------------------------------------------

# Extensions stripped from candidates during fuzzy image matching
IMAGE_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".webp")


# -----------------------------------------------------------------------------
# Item defaults for short / legacy rows
# -----------------------------------------------------------------------------

DEFAULT_NUMBER_OF_BOXES: int = 1
DEFAULT_BOX_SIZE_QUANTITIES: str = "[]"


# -----------------------------------------------------------------------------
# Housekeeping
# -----------------------------------------------------------------------------

TEMP_PATTERNS: tuple[str, ...] = (
    STAGING_IMPORT_PREFIX,
    "export_images",
    "streaming_export",
    ARCHIVE_NAME_PREFIX,
)
MAX_TEMP_AGE_SECONDS: int = 24 * 60 * 60
BACKUP_RETENTION: int = 5

# Data rows inspected by the structural validator
VALIDATION_SAMPLE_ROWS: int = 10
