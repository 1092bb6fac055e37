"""Core components of the warehouse data transfer pipeline.

This package contains the tabular codec, batched table I/O, image
materialization and matching, archive packaging and extraction, and the
export/import orchestrators that drive them.
"""

from .codec import escape_field, parse_table, render_row
from .exporter import ExportOrchestrator
from .extractor import ArchiveExtractor, can_process_in_memory
from .importer import ImportOrchestrator
from .matcher import ImageMatch, ImageMatcher, MatchStrategy
from .materializer import ImageMaterializer
from .packager import ArchivePackager
from .table_io import BatchedTableWriter, TableReader

__all__ = [
    "escape_field",
    "parse_table",
    "render_row",
    "BatchedTableWriter",
    "TableReader",
    "ImageMaterializer",
    "ArchivePackager",
    "ArchiveExtractor",
    "can_process_in_memory",
    "ImageMatch",
    "ImageMatcher",
    "MatchStrategy",
    "ExportOrchestrator",
    "ImportOrchestrator",
]
