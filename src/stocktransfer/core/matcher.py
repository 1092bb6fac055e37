"""Re-associate extracted image files with imported item rows.

Overview:
--------
An export names each image ``<originalItemId>_<originalFileName>`` and records
that name in the item's ``imageFileName`` cell (the "hint"). By import time
the files may have been renamed (manual extraction, a different exporter
version) and the importing store assigns its own identifiers, so the hint is
resolved against the folder with an ordered set of strategies. The first one
that hits wins:

1. exact      - a file named exactly like the hint
2. base_name  - the hint without everything up to its first underscore
                (``7_shoe.png`` -> ``shoe.png``)
3. fuzzy      - the hint's text after its last underscore, lower-cased; a
                file matches if it contains that text, or if that text
                contains the file name with a known image extension stripped;
                a hint ending in an underscore (``7_``) has an empty tail and
                attaches the first file in sorted order
4. single     - the folder holds exactly one file

The order is part of the contract: changing a tie-break changes which file
silently gets attached to which item.

Known limitation: the fuzzy rule can attach an unrelated file whose name
happens to share a substring with the hint (``shoe.png`` vs ``snowshoe.png``).
This is inherited behavior, kept as-is for product review.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from .. import constants

logger = structlog.get_logger(__name__)


class MatchStrategy(str, Enum):
    """Strategy that produced an image match."""

    EXACT = "exact"
    BASE_NAME = "base_name"
    FUZZY = "fuzzy"
    SINGLE = "single"


@dataclass(frozen=True)
class ImageMatch:
    """A resolved image file and the strategy that found it."""

    file_name: str
    path: Path
    strategy: MatchStrategy


def _strip_image_extension(file_name: str) -> str:
    lowered = file_name.lower()
    for extension in constants.IMAGE_EXTENSIONS:
        if lowered.endswith(extension):
            return file_name[: -len(extension)]
    return file_name


class ImageMatcher:
    """
    Resolve export-time image hints against a folder of loose image files.

    The folder is listed once per matcher (one matcher per import call) and
    listed in sorted order so that fuzzy matching is deterministic.
    """

    def __init__(self, folder: Path) -> None:
        """
        Initialize the matcher.

        Args:
            folder: Directory holding the extracted images. A missing folder
                behaves like an empty one.
        """
        self.folder = folder
        self._files: list[str] | None = None

    @property
    def files(self) -> list[str]:
        """Sorted names of regular files in the folder."""
        if self._files is None:
            if self.folder.is_dir():
                self._files = sorted(p.name for p in self.folder.iterdir() if p.is_file())
            else:
                self._files = []
        return self._files

    def match(self, hint: str | None) -> ImageMatch | None:
        """
        Find the best file for a hint.

        Never raises: a failed lookup is logged and reported as no match.

        Args:
            hint: ``imageFileName`` recorded at export time

        Returns:
            ImageMatch or None if no strategy succeeded
        """
        try:
            result = self._match(hint)
        except OSError as e:
            logger.warning("Image lookup failed", hint=hint, folder=str(self.folder), error=str(e))
            return None

        if result is None:
            logger.warning("No image match found", hint=hint, candidates=len(self._files or []))
        else:
            logger.debug(
                "Image matched", hint=hint, file=result.file_name, strategy=result.strategy.value
            )
        return result

    def _match(self, hint: str | None) -> ImageMatch | None:
        files = self.files
        if not files:
            return None
        present = set(files)

        if hint and hint in present:
            return self._found(hint, MatchStrategy.EXACT)

        if hint and "_" in hint:
            base_name = hint.split("_", 1)[1]
            if base_name in present:
                return self._found(base_name, MatchStrategy.BASE_NAME)

        if hint:
            # A hint ending in "_" leaves an empty needle, which matches the first file
            needle = hint.rsplit("_", 1)[-1].lower()
            for file_name in files:
                lowered = file_name.lower()
                if needle in lowered or _strip_image_extension(lowered) in needle:
                    return self._found(file_name, MatchStrategy.FUZZY)

        if len(files) == 1:
            return self._found(files[0], MatchStrategy.SINGLE)

        return None

    def _found(self, file_name: str, strategy: MatchStrategy) -> ImageMatch:
        return ImageMatch(file_name=file_name, path=self.folder / file_name, strategy=strategy)
