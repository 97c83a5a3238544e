"""
TreeWalker - Walks the source tree and produces work items.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Union

from .classifier import PathClassifier, Verdict
from .errors import WalkError
from .item_queue import ItemQueue
from .work_item import WorkItem


@dataclass(frozen=True)
class DirectoryOpened:
    """A directory was accepted; its manifest bucket exists from now on."""
    directory: str


@dataclass(frozen=True)
class DirectorySealed:
    """Every work item of a directory has been emitted."""
    directory: str
    expected: int


WalkEvent = Union[DirectoryOpened, WorkItem, DirectorySealed]


class TreeWalker:
    """
    Depth-first, lexically ordered traversal of a source tree.

    For each directory, walk() yields the DirectoryOpened events of its
    accepted subdirectories and its WorkItems, then a DirectorySealed event,
    then descends into the subdirectories.
    """

    JPEG_EXTENSIONS = ('.jpg', '.jpeg')

    def __init__(
        self,
        root: str,
        classifier: PathClassifier,
        target_extension: str = '.jpg',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize walker.

        Args:
            root: Root directory of the source tree
            classifier: Classifier applied to every entry
            target_extension: Extension of generated images; a source already
                using it wins base-name collisions
            logger: Optional logger instance
        """
        self.root = os.path.abspath(root)
        self.classifier = classifier
        self.target_extension = target_extension
        self.logger = logger or logging.getLogger(__name__)
        self.error: Optional[WalkError] = None
        self.items_emitted = 0
        self.stopped = False

    def walk(self) -> Iterator[WalkEvent]:
        """
        Yield walk events for the whole tree.

        Raises:
            WalkError: If a directory cannot be read
        """
        yield DirectoryOpened(self.root)
        yield from self._walk_directory(self.root)

    def run(
        self,
        item_queue: ItemQueue,
        events: queue.Queue,
        stop_event: Optional[threading.Event] = None
    ) -> None:
        """
        Feed the pipeline: work items onto the item queue, directory events
        onto the result stream.

        Always closes the item queue. A traversal failure is recorded in
        self.error rather than raised, so the workers drain normally.
        """
        try:
            for event in self.walk():
                if isinstance(event, WorkItem):
                    if not item_queue.put(event, stop_event):
                        self.stopped = True
                        break
                    self.items_emitted += 1
                else:
                    events.put(event)
        except WalkError as e:
            self.error = e
            self.logger.error(f"Walk aborted: {e}")
        finally:
            item_queue.close()

        if self.stopped:
            self.logger.info(f"Walk stopped after {self.items_emitted} items")
        else:
            self.logger.debug(f"Walk finished: {self.items_emitted} items")

    def _walk_directory(self, directory: str) -> Iterator[WalkEvent]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)

            files: List[os.DirEntry] = []
            subdirs: List[str] = []
            for entry in entries:
                is_dir = self._entry_is_dir(entry)
                if is_dir is None:
                    self.logger.debug(f"Ignoring {entry.path}")
                    continue

                verdict = self.classifier.classify(entry.name, is_dir)
                if verdict is Verdict.SKIP:
                    self.logger.debug(f"Skipping {entry.path}")
                elif verdict is Verdict.PRUNE:
                    self.logger.debug(f"Pruning tile directory {entry.path}")
                elif is_dir:
                    subdirs.append(entry.path)
                else:
                    files.append(entry)
        except OSError as e:
            raise WalkError(directory, e) from e

        for subdir in subdirs:
            yield DirectoryOpened(subdir)

        items = self._select_items(directory, files)
        yield from items
        yield DirectorySealed(directory, len(items))

        for subdir in subdirs:
            yield from self._walk_directory(subdir)

    def _entry_is_dir(self, entry: os.DirEntry) -> Optional[bool]:
        """True for directories, False for regular files, None for anything else."""
        if entry.is_dir(follow_symlinks=False):
            return True
        if entry.is_symlink() and entry.is_dir():
            # Linked directories are not followed
            return None
        if entry.is_file():
            return False
        return None

    def _select_items(self, directory: str, files: List[os.DirEntry]) -> List[WorkItem]:
        """
        Build one WorkItem per base name.

        When several files share a base name (photo.png and photo.jpg), the
        file already using the target extension wins, then other JPEG
        extensions, then the lexically first name.
        """
        by_name: Dict[str, List[os.DirEntry]] = {}
        for entry in files:
            name = self.classifier.base_name(entry.name)
            by_name.setdefault(name, []).append(entry)

        items = []
        for name in sorted(by_name):
            candidates = sorted(by_name[name], key=self._preference)
            chosen = candidates[0]
            for other in candidates[1:]:
                message = f"Skipping {other.path}: name '{name}' is already provided by {chosen.name}"
                if self._preference(chosen)[0] == 0 and self._preference(other)[0] == 2:
                    # Normalized copy from an earlier run
                    self.logger.debug(message)
                else:
                    self.logger.warning(message)
            items.append(WorkItem(source_path=chosen.path, directory=directory, name=name))

        return items

    def _preference(self, entry: os.DirEntry) -> tuple:
        ext = os.path.splitext(entry.name)[1]
        if ext == self.target_extension:
            rank = 0
        elif ext.lower() in self.JPEG_EXTENSIONS:
            rank = 1
        else:
            rank = 2
        return (rank, entry.name)
