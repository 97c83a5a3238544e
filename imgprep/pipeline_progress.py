"""
PipelineProgress - Tracks and displays pipeline progress.
"""

import logging
from typing import Optional

from .run_stats import RunStats
from .work_item import ItemOutcome


class PipelineProgress:
    """
    Tracks and displays progress with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 100,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each file as it's processed
            log_interval: Log summary progress every N images (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_item_processed(self, outcome: ItemOutcome) -> None:
        """Called when an item has been resolved."""
        if not self.show_files:
            return

        if outcome.succeeded:
            print(f"  [OK] {outcome.item.source_path} -> {outcome.record.format_status(outcome.name)}")
        else:
            print(f"  [ERROR] {outcome.item.source_path} -> {outcome.error or 'failed'}")

    def on_manifest_written(self, directory: str, count: int) -> None:
        """Called when a directory's manifest has been written."""
        if self.show_files:
            print(f"  [MANIFEST] {directory} ({count} images)")

    def on_progress_update(self, stats: RunStats) -> None:
        """
        Called after every resolved item to report overall progress.

        Args:
            stats: Current run statistics
        """
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done
            self.logger.info(
                f"Progress: {stats.processed} processed, {stats.errors} errors, "
                f"{stats.manifests_written} manifests ({stats.rate_per_minute:.1f}/min)"
            )

    def __call__(self, stats: RunStats) -> None:
        """Allow use as callback for stats updates."""
        self.on_progress_update(stats)
