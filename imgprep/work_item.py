"""
WorkItem - One candidate source image, and the outcome of processing it.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .image_record import ImageRecord


@dataclass(frozen=True)
class WorkItem:
    """
    A source image queued for processing.

    Attributes:
        source_path: Path of the source image
        directory: Directory whose manifest the result belongs to
        name: Base name of the image (file name without extension)
    """
    source_path: str
    directory: str
    name: str

    @property
    def extension(self) -> str:
        """Extension of the source file, including the dot."""
        return os.path.splitext(self.source_path)[1]

    def derived_path(self, suffix: str, extension: str) -> str:
        """
        Path of an asset derived from this image.

        Example: derived_path('-thumbnail', '.jpg') -> <directory>/<name>-thumbnail.jpg
        """
        return os.path.join(self.directory, f"{self.name}{suffix}{extension}")


@dataclass
class ItemOutcome:
    """
    Terminal outcome of one work item: a record on success, an error on failure.
    """
    item: WorkItem
    record: Optional[ImageRecord] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.record is not None

    @property
    def directory(self) -> str:
        return self.item.directory

    @property
    def name(self) -> str:
        return self.item.name
