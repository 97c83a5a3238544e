"""
Pipeline - Wires the walker, worker pool and aggregator into one run.
"""

import logging
import os
import queue
import threading
from typing import Dict, List, Optional

from .aggregator import DirectoryAggregator
from .classifier import PathClassifier
from .derivation import DerivationEngine
from .image_engine import JpegProfile, PillowImageEngine
from .item_queue import ItemQueue
from .pipeline_config import PipelineConfig
from .pipeline_progress import PipelineProgress
from .run_stats import RunStats
from .tiling_engine import TilingEngine
from .walker import DirectoryOpened, TreeWalker
from .work_item import ItemOutcome, WorkItem
from .worker_pool import WorkerPool


class Pipeline:
    """
    Derives assets for every image under a root directory and writes one
    manifest per directory.

    Threads:
        walker: produces work items into the bounded item queue
        worker-N: derive assets and publish outcomes on the result stream
        caller: aggregates outcomes and writes manifests
    """

    def __init__(
        self,
        root: str,
        config: Optional[PipelineConfig] = None,
        image_engine: Optional[PillowImageEngine] = None,
        tiling_engine: Optional[TilingEngine] = None,
        progress: Optional[PipelineProgress] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            root: Root directory of the source tree
            config: Pipeline configuration (default: PipelineConfig())
            image_engine: Image engine (default: PillowImageEngine)
            tiling_engine: Tile pyramid generator; None disables tiling
            progress: Optional progress tracker
            logger: Optional logger instance
        """
        self.root = os.path.abspath(root)
        self.config = config or PipelineConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.image_engine = image_engine or PillowImageEngine(
            JpegProfile(quality=self.config.jpeg_quality),
            max_image_pixels=self.config.max_image_pixels,
            logger=self.logger,
        )
        self.tiling_engine = tiling_engine
        self.progress = progress
        self.classifier = PathClassifier.from_config(self.config)
        self.stats = RunStats()
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Stop producing new work; items already queued still complete."""
        self._stop_event.set()

    def run(self) -> RunStats:
        """
        Process the whole tree.

        Returns:
            RunStats for the run

        Raises:
            WalkError: If the traversal failed; raised after in-flight items
                have drained and every complete directory has been written
        """
        self.stats = RunStats()
        item_queue = ItemQueue(maxsize=self.config.queue_size)
        results: queue.Queue = queue.Queue()

        walker = self._create_walker()
        derivation = DerivationEngine(
            config=self.config,
            image_engine=self.image_engine,
            tiling_engine=self.tiling_engine,
            logger=self.logger,
        )
        pool = WorkerPool(
            derivation=derivation,
            item_queue=item_queue,
            results=results,
            workers=self.config.worker_count,
            logger=self.logger,
        )
        aggregator = DirectoryAggregator(
            stats=self.stats,
            progress=self.progress,
            manifest_name=self.config.manifest_name,
            on_failure=self._on_failure,
            logger=self.logger,
        )

        tiling_str = "" if derivation.tiling_engine and self.config.tiling_enabled else " (tiling disabled)"
        self.logger.info(f"Building image list for {self.root} with {pool.workers} workers{tiling_str}")

        walker_thread = threading.Thread(
            target=walker.run,
            args=(item_queue, results, self._stop_event),
            name='walker',
            daemon=True,
        )
        pool.start()
        walker_thread.start()

        aggregator.consume(results)

        walker_thread.join()
        pool.join()
        aggregator.finish()

        self.logger.info(
            f"Run complete: {self.stats.processed} processed, {self.stats.errors} errors, "
            f"{self.stats.manifests_written} manifests written "
            f"({self.stats.elapsed_seconds:.1f}s)"
        )

        if walker.error is not None:
            raise walker.error

        return self.stats

    def plan(self) -> Dict[str, List[WorkItem]]:
        """
        Walk the tree without processing anything.

        Returns:
            Mapping of directory -> work items, in walk order

        Raises:
            WalkError: If the traversal failed
        """
        plan: Dict[str, List[WorkItem]] = {}
        for event in self._create_walker().walk():
            if isinstance(event, DirectoryOpened):
                plan.setdefault(event.directory, [])
            elif isinstance(event, WorkItem):
                plan.setdefault(event.directory, []).append(event)
        return plan

    def _create_walker(self) -> TreeWalker:
        return TreeWalker(
            root=self.root,
            classifier=self.classifier,
            target_extension=self.config.target_extension,
            logger=self.logger,
        )

    def _on_failure(self, outcome: ItemOutcome) -> None:
        if self.config.fail_fast and not self._stop_event.is_set():
            self.logger.warning(f"Stopping after failure of {outcome.item.source_path} (fail-fast)")
            self.stop()
