"""
Send label slabs described by a JSON configuration to the destination.

Each slab of --blocksize Z planes is assembled from the configured source
directories, cut into tiles of at most --tile-size voxels on a side and
POSTed to {URI}/{x}_{y}_{z}. With --zarr, tiles are written to a local zarr
array instead.
"""

import argparse
import logging
import sys

from labelimport.config import DEFAULT_BLOCK_SIZE, load_config
from labelimport.core.errors import ConfigurationError, LabelImportError
from labelimport.core.tiler import DEFAULT_TILE_EDGE
from labelimport.io.sink import HTTPSink, ZarrSink
from labelimport.processing.pipeline import import_volume

logger = logging.getLogger(__name__)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add arguments to the parser.

    Args:
        parser: ArgumentParser instance
    """
    parser.add_argument("config", help="JSON configuration giving the slabs to import and their Z range")
    parser.add_argument("--blocksize", type=int, default=DEFAULT_BLOCK_SIZE,
                        help="Number of Z slices combined to form each label slab (default: %(default)s)")
    parser.add_argument("--tile-size", type=int, default=DEFAULT_TILE_EDGE,
                        help="Maximum X and Y edge of each transferred tile (default: %(default)s)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Assemble and tile every slab but don't send any data")
    parser.add_argument("--workers", type=int, default=1,
                        help="Number of slabs processed concurrently (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=60.0,
                        help="Seconds to wait for each request (default: %(default)s)")
    parser.add_argument("--method", choices=["POST", "PUT"], default="POST",
                        help="HTTP method used to send tiles (default: %(default)s)")
    parser.add_argument("--zarr",
                        help="Write tiles to this local zarr path instead of the configured URI")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")


def main(args: argparse.Namespace) -> int:
    """
    Run the import.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    try:
        config = load_config(args.config)
        extent = config.validate(block_size=args.blocksize)
        if args.tile_size <= 0:
            raise ConfigurationError(f"--tile-size must be positive, got {args.tile_size}")
        if args.workers <= 0:
            raise ConfigurationError(f"--workers must be positive, got {args.workers}")

        sink = None
        if args.dry_run:
            logger.info("Dry run, no data will be sent")
        elif args.zarr:
            sink = ZarrSink(args.zarr, extent, args.tile_size)
        else:
            if not config.uri:
                logger.error("Configuration has no URI to send data to")
                return 1
            sink = HTTPSink(config.uri, method=args.method, timeout=args.timeout, pool_size=args.workers)

        try:
            result = import_volume(
                extent,
                config.directories,
                sink=sink,
                max_edge=args.tile_size,
                dry_run=args.dry_run,
                num_workers=args.workers,
                progress=not args.no_progress
            )
        finally:
            if sink is not None:
                sink.close()

        logger.info(f"Import completed: {result}")
        return 0

    except LabelImportError as e:
        logger.error(f"Import failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error during import: {e}")
        import traceback
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    add_arguments(parser)
    args = parser.parse_args()
    sys.exit(main(args))
