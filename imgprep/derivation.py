"""
DerivationEngine - Produces the derived assets of one source image.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, Dict, Optional, Tuple

from .errors import DerivationError, ImageEngineError
from .image_engine import JpegProfile, PillowImageEngine
from .image_record import ImageRecord
from .pipeline_config import PipelineConfig
from .tiling_engine import TilingEngine
from .work_item import WorkItem


class DerivationEngine:
    """
    Turns one WorkItem into an ImageRecord.

    Steps:
        1. Decode the source
        2. Normalize non-JPEG sources to '<name>.jpg'
        3. In parallel: thumbnail (always), display image (large sources),
           tile pyramid (very large sources)
    """

    THUMBNAIL_SUFFIX = '-thumbnail'
    DISPLAY_SUFFIX = '-display'

    def __init__(
        self,
        config: PipelineConfig,
        image_engine: PillowImageEngine,
        tiling_engine: Optional[TilingEngine] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize derivation engine.

        Args:
            config: Pipeline configuration (thresholds, sizes, JPEG quality)
            image_engine: Decoder/resampler/encoder
            tiling_engine: Tile pyramid generator; None disables tiling
            logger: Optional logger instance
        """
        self.config = config
        self.engine = image_engine
        self.tiling_engine = tiling_engine
        self.profile = JpegProfile(quality=config.jpeg_quality)
        self.logger = logger or logging.getLogger(__name__)

    def needs_slide(self, width: int, height: int) -> bool:
        return width > self.config.slide_height or height > self.config.slide_height

    def needs_tiles(self, width: int, height: int) -> bool:
        if self.tiling_engine is None or not self.config.tiling_enabled:
            return False
        return width > self.config.tile_min_dimension or height > self.config.tile_min_dimension

    def derive(self, item: WorkItem) -> ImageRecord:
        """
        Generate every derived asset of an image.

        Returns:
            The populated ImageRecord

        Raises:
            DerivationError: If any step fails; the record is then discarded
        """
        ext = self.config.target_extension
        thumb_path = item.derived_path(self.THUMBNAIL_SUFFIX, ext)
        display_path = item.derived_path(self.DISPLAY_SUFFIX, ext)

        try:
            image = self.engine.decode(item.source_path)
        except ImageEngineError as e:
            raise DerivationError(item, 'decode', e) from e

        try:
            width, height = image.size
            full_path = self._full_asset(item, image)

            tasks: Dict[str, Callable] = {
                'thumbnail': partial(
                    self._resample, full_path, thumb_path, self.config.thumbnail_height
                ),
            }
            if self.needs_slide(width, height):
                tasks['slide'] = partial(
                    self._resample, full_path, display_path, self.config.slide_height
                )
            if self.needs_tiles(width, height):
                tasks['tiles'] = partial(self._generate_tiles, item)

            results = self._run_group(item, tasks)
        finally:
            image.close()

        record = ImageRecord(
            full_path=full_path,
            thumb_path=thumb_path,
            width=width,
            height=height,
        )

        # The display image, when present, is what viewers size against
        if 'slide' in results:
            record.display_path = display_path
            record.width, record.height = results['slide']

        # Tile viewers need the true source resolution
        if 'tiles' in results:
            record.tiles = results['tiles']
            record.max_width = width
            record.max_height = height

        return record

    def _full_asset(self, item: WorkItem, image) -> str:
        """Return the full-size JPEG path, converting the source if it is not a JPEG."""
        if self.engine.is_jpeg(image):
            return item.source_path

        full_path = item.derived_path('', self.config.target_extension)
        if full_path == item.source_path:
            # Converting would overwrite the source
            self.logger.warning(
                f"{item.source_path} is {image.format or 'not a JPEG'} despite its name; "
                f"using it as is"
            )
            return item.source_path

        self.logger.info(f"Retyping image to jpg: {item.source_path}")
        try:
            converted = self.engine.to_srgb(image)
            try:
                data = self.engine.encode_jpeg(converted, self.profile)
            finally:
                if converted is not image:
                    converted.close()
            self._write(full_path, data)
        except (ImageEngineError, OSError, ValueError) as e:
            raise DerivationError(item, 'normalize', e) from e

        return full_path

    def _run_group(self, item: WorkItem, tasks: Dict[str, Callable]) -> dict:
        """
        Run independent steps concurrently and wait for all of them.

        Returns:
            Mapping of step name -> step result

        Raises:
            DerivationError: For the first failed step, after every step has finished
        """
        with ThreadPoolExecutor(max_workers=len(tasks)) as group:
            futures = {name: group.submit(task) for name, task in tasks.items()}

        results = {}
        failed_step = None
        failure = None
        for name, future in futures.items():
            error = future.exception()
            if error is None:
                results[name] = future.result()
            elif failure is None:
                failed_step, failure = name, error
            else:
                self.logger.debug(f"{name} also failed for {item.source_path}: {error}")

        if failure is not None:
            raise DerivationError(item, failed_step, failure) from failure

        return results

    def _resample(self, source_path: str, dest_path: str, height: int) -> Tuple[int, int]:
        """Write a JPEG of source_path resampled to height; returns its size."""
        image = self.engine.thumbnail_from_path(source_path, self.config.max_width, height)
        try:
            data = self.engine.encode_jpeg(image, self.profile)
            size = image.size
        finally:
            image.close()

        self._write(dest_path, data)
        return size

    def _generate_tiles(self, item: WorkItem) -> str:
        output_base = os.path.join(item.directory, item.name)
        self.logger.info(f"Generating tiles for {item.source_path}")
        tiles = self.tiling_engine.generate(item.source_path, output_base)

        sidecar = self.tiling_engine.sidecar_path(output_base)
        try:
            os.remove(sidecar)
        except OSError as e:
            self.logger.warning(f"Could not remove {sidecar}: {e}")

        return tiles

    @staticmethod
    def _write(path: str, data: bytes) -> None:
        with open(path, 'wb') as f:
            f.write(data)
