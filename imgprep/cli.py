"""
Command Line Interface for image asset derivation.
"""

import argparse
import logging
import os
from typing import List, Optional

from .errors import EngineUnavailableError, WalkError
from .image_engine import JpegProfile, PillowImageEngine
from .pipeline import Pipeline
from .pipeline_config import PipelineConfig
from .pipeline_progress import PipelineProgress
from .reporter import Reporter
from .tiling_engine import VipsTilingEngine


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(threadName)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('PIL').setLevel(logging.WARNING)
    logging.getLogger('sh').setLevel(logging.WARNING)

    return logging.getLogger('imgprep')


def get_config(args: argparse.Namespace) -> PipelineConfig:
    """Get configuration from environment and CLI overrides."""
    config = PipelineConfig.from_env()
    config = config.with_overrides(
        thumbnail_height=args.thumbnail_height,
        slide_height=args.slide_height,
        tile_min_dimension=args.tile_min_dimension,
        workers=args.workers,
        queue_size=args.queue_size,
        vips_binary=args.vips_binary,
        max_image_pixels=args.max_image_pixels,
    )

    if args.fail_fast:
        config.fail_fast = True
    if args.no_tiles:
        config.tiling_enabled = False

    return config


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='imgprep',
        description='Generate thumbnails, display images, tile pyramids and '
                    'images.json manifests for a directory tree of images',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Generated files, next to each source image:
  <name>.jpg            normalized full-size copy (non-JPEG sources)
  <name>-thumbnail.jpg  grid thumbnail
  <name>-display.jpg    display image (large sources)
  <name>_files/         deep-zoom tiles (very large sources, needs vips)
  images.json           one manifest per directory

Environment:
  IMGPREP_THUMBNAIL_HEIGHT, IMGPREP_SLIDE_HEIGHT, IMGPREP_TILE_MIN_DIMENSION,
  IMGPREP_WORKERS, IMGPREP_QUEUE_SIZE, IMGPREP_JPEG_QUALITY, IMGPREP_VIPS_BINARY,
  IMGPREP_MAX_IMAGE_PIXELS
"""
    )

    parser.add_argument('root', help='Root directory to process')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    parser.add_argument('--show-files', action='store_true',
                        help='Print each file as processed with result')
    parser.add_argument('-n', '--dry-run', action='store_true',
                        help='List the images that would be processed')
    parser.add_argument('-w', '--workers', type=int, metavar='N',
                        help='Worker threads (default: number of CPUs)')
    parser.add_argument('--queue-size', type=int, metavar='N',
                        help='Capacity of the work queue (default: 100)')
    parser.add_argument('--fail-fast', action='store_true',
                        help='Stop queueing images after the first failure')
    parser.add_argument('--no-tiles', action='store_true',
                        help='Never generate tile pyramids')
    parser.add_argument('--thumbnail-height', type=int, metavar='PX',
                        help='Thumbnail height (default: 400)')
    parser.add_argument('--slide-height', type=int, metavar='PX',
                        help='Display image height and threshold (default: 2000)')
    parser.add_argument('--tile-min-dimension', type=int, metavar='PX',
                        help='Size above which tiles are generated (default: 4100)')
    parser.add_argument('--vips-binary', metavar='PATH',
                        help='vips executable used for tiling (default: vips)')
    parser.add_argument('--max-image-pixels', type=int, metavar='N',
                        help='Refuse to decode images larger than N pixels (default: no limit)')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)
    logger = setup_logging(parsed_args.verbose)

    try:
        config = get_config(parsed_args)
    except ValueError as e:
        logger.error(str(e))
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    if not os.path.isdir(parsed_args.root):
        logger.error(f"Not a directory: {parsed_args.root}")
        return 1

    image_engine = PillowImageEngine(
        JpegProfile(quality=config.jpeg_quality),
        max_image_pixels=config.max_image_pixels,
        logger=logger,
    )

    tiling_engine = None
    if config.tiling_enabled and not parsed_args.dry_run:
        try:
            tiling_engine = VipsTilingEngine(config.vips_binary, logger=logger)
        except EngineUnavailableError as e:
            logger.error(f"{e} (use --no-tiles to skip tile generation)")
            return 1

    progress = None
    if not parsed_args.quiet:
        progress = PipelineProgress(show_files=parsed_args.show_files, logger=logger)

    pipeline = Pipeline(
        root=parsed_args.root,
        config=config,
        image_engine=image_engine,
        tiling_engine=tiling_engine,
        progress=progress,
        logger=logger,
    )
    reporter = Reporter()

    if parsed_args.dry_run:
        try:
            plan = pipeline.plan()
        except WalkError as e:
            logger.error(str(e))
            return 1
        reporter.report_plan(plan)
        return 0

    try:
        stats = pipeline.run()
    except WalkError as e:
        logger.error(f"Run failed: {e}")
        if not parsed_args.quiet:
            reporter.report_summary(pipeline.stats)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if not parsed_args.quiet:
        print()
        reporter.report_summary(stats)

    return 1 if stats.has_errors else 0
