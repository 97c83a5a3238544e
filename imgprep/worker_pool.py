"""
WorkerPool - Fixed set of threads deriving assets for queued work items.
"""

import logging
import queue
import threading
from typing import List, Optional

from .derivation import DerivationEngine
from .errors import DerivationError
from .item_queue import ItemQueue
from .work_item import ItemOutcome, WorkItem

# Put on the result stream once every worker has exited
END_OF_STREAM = object()


class WorkerPool:
    """
    Pulls work items off the item queue and publishes one ItemOutcome per
    item on the result stream.

    Workers exit once the item queue is closed and drained; the last one to
    exit closes the result stream with END_OF_STREAM.
    """

    def __init__(
        self,
        derivation: DerivationEngine,
        item_queue: ItemQueue,
        results: queue.Queue,
        workers: int,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize worker pool.

        Args:
            derivation: Engine run for every item
            item_queue: Source of work items
            results: Result stream receiving ItemOutcomes
            workers: Number of worker threads
            logger: Optional logger instance
        """
        if workers <= 0:
            raise ValueError("workers must be positive")

        self.derivation = derivation
        self.item_queue = item_queue
        self.results = results
        self.workers = workers
        self.logger = logger or logging.getLogger(__name__)
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._running = 0

    def start(self) -> None:
        """Start the worker threads."""
        if self._threads:
            raise RuntimeError("WorkerPool already started")

        self._running = self.workers
        for index in range(self.workers):
            thread = threading.Thread(
                target=self._run,
                name=f"worker-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        self.logger.debug(f"Started {self.workers} workers")

    def join(self) -> None:
        """Wait for every worker to exit."""
        for thread in self._threads:
            thread.join()

    def process(self, item: WorkItem) -> ItemOutcome:
        """Derive one item; failures become failed outcomes instead of exceptions."""
        self.logger.info(f"Processing {item.source_path}")
        try:
            record = self.derivation.derive(item)
        except DerivationError as e:
            self.logger.error(f"Error processing {item.source_path}: {e}")
            return ItemOutcome(item=item, error=e)
        except Exception as e:
            self.logger.exception(f"Unexpected error processing {item.source_path}: {e}")
            return ItemOutcome(item=item, error=e)

        return ItemOutcome(item=item, record=record)

    def _run(self) -> None:
        try:
            while True:
                item = self.item_queue.get()
                if item is None:
                    break
                self.results.put(self.process(item))
        finally:
            with self._lock:
                self._running -= 1
                last = self._running == 0
            if last:
                self.results.put(END_OF_STREAM)
