"""
Exceptions raised by the derivation pipeline.
"""

from typing import Optional


class ImgPrepError(Exception):
    """Base class for pipeline errors."""


class WalkError(ImgPrepError):
    """Traversal of the source tree failed; fatal to the run."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to walk {path}: {cause}")


class ImageEngineError(ImgPrepError):
    """Decode, colorspace conversion, resize or encode failed."""


class TilingError(ImageEngineError):
    """Tile pyramid generation failed."""


class EngineUnavailableError(ImgPrepError):
    """An external engine could not be initialized."""


class DerivationError(ImgPrepError):
    """
    Unrecoverable failure of a single work item.

    Attributes:
        item: The WorkItem that failed
        step: Name of the failed step (decode, normalize, thumbnail, slide, tiles)
        cause: Underlying exception
    """

    def __init__(self, item, step: str, cause: Optional[Exception] = None):
        self.item = item
        self.step = step
        self.cause = cause
        message = f"{step} failed for {item.source_path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ManifestWriteError(ImgPrepError):
    """Writing one directory's manifest failed."""

    def __init__(self, directory: str, cause: Exception):
        self.directory = directory
        self.cause = cause
        super().__init__(f"Failed to write manifest in {directory}: {cause}")
