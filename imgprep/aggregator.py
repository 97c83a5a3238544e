"""
DirectoryAggregator - Groups results by directory and writes each
directory's manifest once all of its images are accounted for.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import ManifestWriteError
from .manifest import DEFAULT_MANIFEST_NAME, DirectoryManifest
from .pipeline_progress import PipelineProgress
from .run_stats import RunStats
from .walker import DirectoryOpened, DirectorySealed
from .work_item import ItemOutcome
from .worker_pool import END_OF_STREAM


@dataclass
class DirectoryBucket:
    """
    Completeness tracking for one directory.

    Attributes:
        manifest: Records collected so far
        expected: Number of work items emitted for the directory, None until
            the walker has sealed it
        resolved: Number of items with a terminal outcome
        written: True once the manifest has been emitted
    """
    manifest: DirectoryManifest
    expected: Optional[int] = None
    resolved: int = 0
    written: bool = False

    @property
    def sealed(self) -> bool:
        return self.expected is not None

    @property
    def complete(self) -> bool:
        return self.sealed and self.resolved == self.expected


class DirectoryAggregator:
    """
    Sole owner of the per-directory buckets.

    Consumes the result stream (directory events from the walker, item
    outcomes from the workers) on a single thread. A directory's manifest is
    written exactly once, as soon as the directory is sealed and every item
    emitted for it has resolved.
    """

    def __init__(
        self,
        stats: Optional[RunStats] = None,
        progress: Optional[PipelineProgress] = None,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        on_failure: Optional[Callable[[ItemOutcome], None]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize aggregator.

        Args:
            stats: Run statistics to update
            progress: Optional progress tracker
            manifest_name: File name of the manifests
            on_failure: Called with every failed outcome
            logger: Optional logger instance
        """
        self.stats = stats or RunStats()
        self.progress = progress
        self.manifest_name = manifest_name
        self.on_failure = on_failure
        self.logger = logger or logging.getLogger(__name__)
        self.buckets: Dict[str, DirectoryBucket] = {}

    def consume(self, results: queue.Queue) -> None:
        """Handle messages from the result stream until it ends."""
        while True:
            message = results.get()
            if message is END_OF_STREAM:
                break
            self.handle(message)

    def handle(self, message) -> None:
        """Handle one message from the result stream."""
        if isinstance(message, ItemOutcome):
            self._resolve(message)
        elif isinstance(message, DirectorySealed):
            bucket = self._bucket(message.directory)
            bucket.expected = message.expected
            self.stats.total_items += message.expected
            self._emit_if_complete(bucket)
        elif isinstance(message, DirectoryOpened):
            self._bucket(message.directory)
        else:
            raise TypeError(f"Unexpected message on result stream: {message!r}")

    def finish(self) -> List[str]:
        """
        Report directories that never became complete.

        Their manifests are not written: the set of images they contain is
        unknown once the walk has been aborted or stopped.

        Returns:
            Directories left without a manifest
        """
        incomplete = [
            directory for directory, bucket in self.buckets.items()
            if not bucket.written
        ]
        for directory in incomplete:
            self.logger.warning(f"Not writing manifest for incompletely processed directory {directory}")
        self.stats.incomplete_directories = len(incomplete)
        return incomplete

    def _bucket(self, directory: str) -> DirectoryBucket:
        bucket = self.buckets.get(directory)
        if bucket is None:
            bucket = DirectoryBucket(
                manifest=DirectoryManifest(directory=directory, manifest_name=self.manifest_name)
            )
            self.buckets[directory] = bucket
            self.stats.directories += 1
        return bucket

    def _resolve(self, outcome: ItemOutcome) -> None:
        bucket = self._bucket(outcome.directory)
        bucket.resolved += 1

        if outcome.succeeded:
            record = outcome.record
            bucket.manifest.add_record(outcome.name, record)
            self.stats.processed += 1
            if record.has_display:
                self.stats.slides += 1
            if record.has_tiles:
                self.stats.tiled += 1
        else:
            self.stats.errors += 1
            self.stats.record_error(f"{outcome.item.source_path}: {outcome.error}")
            if self.on_failure:
                self.on_failure(outcome)

        if self.progress:
            self.progress.on_item_processed(outcome)
            self.progress.on_progress_update(self.stats)

        self._emit_if_complete(bucket)

    def _emit_if_complete(self, bucket: DirectoryBucket) -> None:
        if bucket.written or not bucket.complete:
            return
        bucket.written = True
        self._write(bucket.manifest)

    def _write(self, manifest: DirectoryManifest) -> None:
        self.logger.info(f"Saving JSON to {manifest.path}")
        try:
            manifest.save()
        except ManifestWriteError as e:
            self.logger.error(str(e))
            self.stats.manifest_errors += 1
            self.stats.record_error(str(e))
            return

        self.stats.manifests_written += 1
        if self.progress:
            self.progress.on_manifest_written(manifest.directory, manifest.total_images)
