"""
Reporter - Human-readable summaries of runs and dry-run plans.
"""

import logging
import os
import sys
from typing import Dict, List, Optional, TextIO

from .run_stats import RunStats
from .work_item import WorkItem


class Reporter:
    """
    Generates human-readable reports.
    """

    # Error lines listed in a summary before eliding the rest
    MAX_ERROR_LINES = 20

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def report_summary(self, stats: RunStats) -> None:
        """Print the summary of a finished run."""
        self._print("=" * 70)
        self._print("RUN SUMMARY")
        self._print("=" * 70)
        self._print()

        self._print("Images:")
        self._print(f"  Dispatched:           {stats.total_items:,}")
        self._print(f"  Processed:            {stats.processed:,}")
        self._print(f"  Errors:               {stats.errors:,}")
        self._print(f"  Display Images:       {stats.slides:,}")
        self._print(f"  Tile Pyramids:        {stats.tiled:,}")
        self._print()

        self._print("Directories:")
        self._print(f"  Visited:              {stats.directories:,}")
        self._print(f"  Manifests Written:    {stats.manifests_written:,}")
        self._print(f"  Manifest Errors:      {stats.manifest_errors:,}")
        self._print(f"  Incomplete:           {stats.incomplete_directories:,}")
        self._print()

        self._print(f"Time: {self._format_duration(stats.elapsed_seconds)} "
                    f"({stats.rate_per_minute:.1f}/min)")

        if stats.error_details:
            self._print()
            self._print("Errors:")
            self._print("-" * 70)
            for message in stats.error_details[:self.MAX_ERROR_LINES]:
                self._print(f"  {message}")
            hidden = len(stats.error_details) - self.MAX_ERROR_LINES
            if hidden > 0:
                self._print(f"  ... and {hidden:,} more")
            self._print("-" * 70)

        self._print()

    def report_plan(self, plan: Dict[str, List[WorkItem]]) -> None:
        """Print the work a run would perform, directory by directory."""
        total = sum(len(items) for items in plan.values())

        self._print("=" * 70)
        self._print("DRY RUN")
        self._print("=" * 70)
        self._print()

        for directory, items in plan.items():
            self._print(f"{directory} ({len(items)} images)")
            for item in items:
                self._print(f"  {item.name:<40} {os.path.basename(item.source_path)}")

        self._print()
        self._print(f"Directories: {len(plan):,}")
        self._print(f"Images:      {total:,}")
        self._print()
