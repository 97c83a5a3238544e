"""
Image asset derivation for browsable image trees.

Walks a directory tree and, for every image, generates a normalized JPEG, a
thumbnail, a display image and (for very large images) a deep-zoom tile
pyramid, then writes one images.json manifest per directory.
"""

__version__ = "1.0.0"

from .errors import (
    ImgPrepError,
    WalkError,
    ImageEngineError,
    TilingError,
    EngineUnavailableError,
    DerivationError,
    ManifestWriteError,
)
from .pipeline_config import PipelineConfig
from .image_record import ImageRecord
from .work_item import WorkItem, ItemOutcome
from .manifest import DirectoryManifest
from .classifier import PathClassifier, Verdict
from .item_queue import ItemQueue
from .walker import TreeWalker, DirectoryOpened, DirectorySealed
from .image_engine import JpegProfile, PillowImageEngine
from .tiling_engine import TilingEngine, VipsTilingEngine
from .derivation import DerivationEngine
from .worker_pool import WorkerPool
from .run_stats import RunStats
from .pipeline_progress import PipelineProgress
from .aggregator import DirectoryAggregator
from .pipeline import Pipeline
from .reporter import Reporter

__all__ = [
    "ImgPrepError",
    "WalkError",
    "ImageEngineError",
    "TilingError",
    "EngineUnavailableError",
    "DerivationError",
    "ManifestWriteError",
    "PipelineConfig",
    "ImageRecord",
    "WorkItem",
    "ItemOutcome",
    "DirectoryManifest",
    "PathClassifier",
    "Verdict",
    "ItemQueue",
    "TreeWalker",
    "DirectoryOpened",
    "DirectorySealed",
    "JpegProfile",
    "PillowImageEngine",
    "TilingEngine",
    "VipsTilingEngine",
    "DerivationEngine",
    "WorkerPool",
    "RunStats",
    "PipelineProgress",
    "DirectoryAggregator",
    "Pipeline",
    "Reporter",
]
