"""
PathClassifier - Decides what to do with each entry of the source tree.
"""

import enum
import os
from typing import Iterable

from .pipeline_config import DEFAULT_IGNORE_SUBSTRINGS, PipelineConfig


class Verdict(enum.Enum):
    """Classification of a filesystem entry."""
    SKIP = 'skip'      # ignore; a skipped directory is not descended
    PRUNE = 'prune'    # directory only: not descended, no manifest
    ACCEPT = 'accept'  # file: work item; directory: manifest bucket, descend


class PathClassifier:
    """
    Classifies filesystem entries by name.

    Rules, in order:
        1. Name contains an ignore substring (generated artifacts) -> SKIP
        2. Directory ending with the tile directory suffix -> PRUNE
        3. Any other directory -> ACCEPT
        4. Any other file -> ACCEPT
    """

    def __init__(
        self,
        ignore_substrings: Iterable[str] = DEFAULT_IGNORE_SUBSTRINGS,
        tile_dir_suffix: str = '_files'
    ):
        self.ignore_substrings = tuple(ignore_substrings)
        self.tile_dir_suffix = tile_dir_suffix

    @classmethod
    def from_config(cls, config: PipelineConfig) -> 'PathClassifier':
        return cls(config.ignore_substrings, config.tile_dir_suffix)

    def classify(self, name: str, is_dir: bool) -> Verdict:
        """
        Classify one entry.

        Args:
            name: Entry name (not the full path)
            is_dir: True if the entry is a directory
        """
        if any(marker in name for marker in self.ignore_substrings):
            return Verdict.SKIP

        if is_dir and name.endswith(self.tile_dir_suffix):
            return Verdict.PRUNE

        return Verdict.ACCEPT

    @staticmethod
    def base_name(name: str) -> str:
        """Strip the final extension: 'a.b.png' -> 'a.b'."""
        return os.path.splitext(name)[0]
