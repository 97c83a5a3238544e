"""
PipelineConfig - Tunables for a derivation run.
"""

import os
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

DEFAULT_IGNORE_SUBSTRINGS = (
    '.DS_Store',
    'thumbnail',
    'display',
    'html',
    'dzi',
    'json',
    'xml',
)


@dataclass
class PipelineConfig:
    """
    Configuration for one pipeline run.

    Attributes:
        thumbnail_height: Height of the grid thumbnail
        slide_height: Height of the display image, and the source size above
            which one is generated
        tile_min_dimension: Source size above which a tile pyramid is generated
        max_width: Width cap used when resampling to a fixed height
        workers: Number of worker threads (None = number of CPUs)
        queue_size: Capacity of the bounded work item queue
        fail_fast: Stop producing work after the first failed image
        tiling_enabled: Generate tile pyramids for very large images
        vips_binary: Name or path of the vips executable used for tiling
        manifest_name: File name of the per-directory manifest
        target_extension: Extension of every generated image
        jpeg_quality: JPEG quality used for every generated image
        tile_dir_suffix: Suffix of tile pyramid directories
        ignore_substrings: Entries whose name contains any of these are skipped
        max_image_pixels: Largest image the decoder accepts (None = unlimited)
    """
    thumbnail_height: int = 400
    slide_height: int = 2000
    tile_min_dimension: int = 4100
    max_width: int = 32767
    workers: Optional[int] = None
    queue_size: int = 100
    fail_fast: bool = False
    tiling_enabled: bool = True
    vips_binary: str = 'vips'
    manifest_name: str = 'images.json'
    target_extension: str = '.jpg'
    jpeg_quality: int = 75
    tile_dir_suffix: str = '_files'
    ignore_substrings: Tuple[str, ...] = DEFAULT_IGNORE_SUBSTRINGS
    max_image_pixels: Optional[int] = None

    ENV_PREFIX = 'IMGPREP_'

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """
        Create configuration from IMGPREP_* environment variables.

        Unset variables keep their defaults. Raises ValueError if a numeric
        variable cannot be parsed.
        """
        config = cls()
        int_fields = (
            'thumbnail_height',
            'slide_height',
            'tile_min_dimension',
            'workers',
            'queue_size',
            'jpeg_quality',
            'max_image_pixels',
        )
        for name in int_fields:
            value = os.environ.get(cls.ENV_PREFIX + name.upper())
            if value:
                try:
                    setattr(config, name, int(value))
                except ValueError:
                    raise ValueError(
                        f"{cls.ENV_PREFIX + name.upper()} must be an integer, got {value!r}"
                    )

        vips_binary = os.environ.get(cls.ENV_PREFIX + 'VIPS_BINARY')
        if vips_binary:
            config.vips_binary = vips_binary

        return config

    def with_overrides(self, **overrides) -> 'PipelineConfig':
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @property
    def worker_count(self) -> int:
        """Effective number of worker threads."""
        if self.workers:
            return self.workers
        return os.cpu_count() or 1

    def validate(self) -> List[str]:
        """
        Check the configuration.

        Returns:
            List of error messages, empty if the configuration is usable
        """
        errors = []

        if self.thumbnail_height <= 0:
            errors.append("thumbnail_height must be positive")
        if self.slide_height <= self.thumbnail_height:
            errors.append("slide_height must be larger than thumbnail_height")
        if self.tile_min_dimension < self.slide_height:
            errors.append("tile_min_dimension must not be smaller than slide_height")
        if self.max_width <= 0:
            errors.append("max_width must be positive")
        if self.workers is not None and self.workers <= 0:
            errors.append("workers must be positive")
        if self.queue_size <= 0:
            errors.append("queue_size must be positive")
        if not 1 <= self.jpeg_quality <= 95:
            errors.append("jpeg_quality must be between 1 and 95")
        if self.max_image_pixels is not None and self.max_image_pixels <= 0:
            errors.append("max_image_pixels must be positive")
        if not self.target_extension.startswith('.'):
            errors.append("target_extension must start with '.'")

        return errors
