"""
RunStats - Statistics for a pipeline run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class RunStats:
    """
    Statistics for a pipeline run.

    Attributes:
        total_items: Work items dispatched by the walker (known per sealed directory)
        processed: Images derived successfully
        errors: Images that failed
        slides: Display images generated
        tiled: Tile pyramids generated
        directories: Directories registered
        manifests_written: Manifests written
        manifest_errors: Manifests that could not be written
        incomplete_directories: Directories left without a manifest
        start_time: Start timestamp
        error_details: List of error messages
    """
    total_items: int = 0
    processed: int = 0
    errors: int = 0
    slides: int = 0
    tiled: int = 0
    directories: int = 0
    manifests_written: int = 0
    manifest_errors: int = 0
    incomplete_directories: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Processing rate in images per second."""
        if self.elapsed_seconds > 0:
            return self.completed_count / self.elapsed_seconds
        return 0.0

    @property
    def rate_per_minute(self) -> float:
        """Processing rate in images per minute."""
        return self.rate_per_second * 60

    @property
    def completed_count(self) -> int:
        """Total resolved (processed + errors)."""
        return self.processed + self.errors

    @property
    def pending_count(self) -> int:
        """Dispatched but not yet resolved, as far as currently known."""
        return max(self.total_items - self.completed_count, 0)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors or self.manifest_errors)

    def record_error(self, message: str) -> None:
        self.error_details.append(message)
