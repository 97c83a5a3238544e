"""
Tile pyramid generation for deep-zoom viewers.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from typing import Optional

import sh

from .errors import EngineUnavailableError, TilingError


class TilingEngine(ABC):
    """
    Interface of tile pyramid generators.

    generate(source, base) writes the pyramid to '<base>_files/' and a
    '<base>.dzi' descriptor next to it.
    """

    TILE_DIR_SUFFIX = '_files'
    SIDECAR_EXTENSION = '.dzi'

    @abstractmethod
    def generate(self, source_path: str, output_base: str) -> str:
        """
        Generate a tile pyramid.

        Args:
            source_path: Full-size source image
            output_base: Output path without suffix, e.g. /photos/a/img

        Returns:
            Path of the tile directory

        Raises:
            TilingError: If generation fails
        """

    def tiles_path(self, output_base: str) -> str:
        return output_base + self.TILE_DIR_SUFFIX

    def sidecar_path(self, output_base: str) -> str:
        return output_base + self.SIDECAR_EXTENSION


class VipsTilingEngine(TilingEngine):
    """
    Generates tile pyramids by running 'vips dzsave'.
    """

    def __init__(self, binary: str = 'vips', logger: Optional[logging.Logger] = None):
        """
        Initialize the engine.

        Args:
            binary: Name or path of the vips executable
            logger: Optional logger instance

        Raises:
            EngineUnavailableError: If the executable cannot be found
        """
        self.binary = binary
        self.logger = logger or logging.getLogger(__name__)
        try:
            self._vips = sh.Command(binary)
        except sh.CommandNotFound as e:
            raise EngineUnavailableError(f"vips executable not found: {binary}") from e

    def generate(self, source_path: str, output_base: str) -> str:
        tiles = self.tiles_path(output_base)

        try:
            if os.path.isdir(tiles):
                # Stale pyramid from an earlier run
                shutil.rmtree(tiles)
            self.logger.debug(f"vips dzsave {source_path} {output_base} --centre")
            self._vips('dzsave', source_path, output_base, '--centre')
        except sh.ErrorReturnCode as e:
            stderr = e.stderr.decode('utf-8', errors='replace').strip()
            raise TilingError(f"vips dzsave failed for {source_path}: {stderr}") from e
        except OSError as e:
            raise TilingError(f"Cannot generate tiles for {source_path}: {e}") from e

        return tiles
