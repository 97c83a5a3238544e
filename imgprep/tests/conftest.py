"""
Pytest fixtures for imgprep tests.
"""

import os
import stat
import threading

import pytest

from imgprep.errors import TilingError
from imgprep.tiling_engine import TilingEngine


class FakeTilingEngine(TilingEngine):
    """Tiling engine writing a minimal pyramid layout instead of running vips."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []
        self._lock = threading.Lock()

    def generate(self, source_path, output_base):
        with self._lock:
            self.calls.append((source_path, output_base))
        if self.fail:
            raise TilingError(f"tiling failed for {source_path}")

        tiles = self.tiles_path(output_base)
        os.makedirs(os.path.join(tiles, '0'), exist_ok=True)
        with open(os.path.join(tiles, '0', '0_0.jpeg'), 'wb') as f:
            f.write(b'tile')
        with open(self.sidecar_path(output_base), 'w') as f:
            f.write('<Image/>')
        return tiles


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')


@pytest.fixture
def small_config():
    """
    Fixture providing a configuration with small thresholds.

    thumbnail 40px, display image above 100px, tiles above 200px.
    """
    from imgprep.pipeline_config import PipelineConfig

    return PipelineConfig(
        thumbnail_height=40,
        slide_height=100,
        tile_min_dimension=200,
        workers=2,
        queue_size=4,
    )


@pytest.fixture
def image_engine(logger):
    """Fixture providing a Pillow image engine."""
    from imgprep.image_engine import PillowImageEngine
    return PillowImageEngine(logger=logger)


@pytest.fixture
def fake_tiling_engine():
    """Fixture providing a tiling engine that does not need vips."""
    return FakeTilingEngine()


@pytest.fixture
def make_image():
    """
    Fixture providing a factory writing a test image to disk.

    Usage: make_image(path, (width, height), format='PNG', mode='RGB')
    """
    from PIL import Image

    def _make(path, size, format=None, mode='RGB', color='red'):
        path = str(path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if format is None:
            format = 'PNG' if path.lower().endswith('.png') else 'JPEG'
        if mode == 'RGBA':
            color = (255, 0, 0, 128)
        img = Image.new(mode, size, color=color)
        img.save(path, format=format)
        return path

    return _make


@pytest.fixture
def fake_vips(tmp_path):
    """
    Fixture providing a fake 'vips' executable.

    It handles 'dzsave SOURCE BASE --centre' by creating BASE_files/ and
    BASE.dzi.
    """
    script = tmp_path / 'bin' / 'vips'
    script.parent.mkdir()
    script.write_text(
        '#!/bin/sh\n'
        'mkdir -p "$3_files/0"\n'
        ': > "$3_files/0/0_0.jpeg"\n'
        ': > "$3.dzi"\n'
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def failing_vips(tmp_path):
    """Fixture providing a 'vips' executable that always fails."""
    script = tmp_path / 'failbin' / 'vips'
    script.parent.mkdir()
    script.write_text('#!/bin/sh\necho "dzsave: unable to write" >&2\nexit 1\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def sample_tree(tmp_path, make_image):
    """
    Fixture providing a small source tree.

    photos/
        big.png          600x400  -> normalized, display, tiles
        medium.jpg       150x120  -> display
        small.jpg         60x30   -> thumbnail only
        .DS_Store
        notes-thumbnail.jpg       (skipped: generated artifact name)
        old_files/                (pruned: tile directory)
        nested/
            deep.jpg      80x40
        empty/
    """
    root = tmp_path / 'photos'
    make_image(root / 'big.png', (600, 400))
    make_image(root / 'medium.jpg', (150, 120))
    make_image(root / 'small.jpg', (60, 30))
    make_image(root / 'notes-thumbnail.jpg', (10, 10))
    make_image(root / 'old_files' / 'tile.jpg', (10, 10))
    make_image(root / 'nested' / 'deep.jpg', (80, 40))
    (root / 'empty').mkdir()
    (root / '.DS_Store').write_bytes(b'\x00')
    return str(root)


@pytest.fixture
def failing_tiling_engine():
    """Fixture providing a tiling engine whose every run fails."""
    return FakeTilingEngine(fail=True)
