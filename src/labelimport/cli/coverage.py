"""
Check a configuration and report which source directories feed each slab.

No data is read or sent. With --check-files, the artifact expected for
every contributing source is looked up on disk.
"""

import argparse
import logging
import sys

from labelimport.config import DEFAULT_BLOCK_SIZE, load_config
from labelimport.core.errors import ConfigurationError
from labelimport.processing.pipeline import coverage_report

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
    parser.add_argument("--check-files", action="store_true",
                        help="Fail if any contributing source file is missing")


def main(args: argparse.Namespace) -> int:
    """
    Validate the configuration and log the sources of every slab.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    try:
        config = load_config(args.config)
        extent = config.validate(block_size=args.blocksize)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    report = coverage_report(extent, config.directories, check_files=args.check_files)

    missing = 0
    empty = 0
    for slab in report:
        if not slab["sources"]:
            empty += 1
            logger.info(f"Slab {slab['beg_z']} -> {slab['end_z']}: no sources, zero-filled")
            continue
        for entry in slab["sources"]:
            status = ""
            if args.check_files and not entry["exists"]:
                missing += 1
                status = " (MISSING)"
            logger.info(f"Slab {slab['beg_z']} -> {slab['end_z']}: planes {entry['beg_z']} -> {entry['end_z']} "
                        f"from {entry['filename']}{status}")
        if slab["uncovered_planes"]:
            logger.info(f"Slab {slab['beg_z']} -> {slab['end_z']}: {slab['uncovered_planes']} planes zero-filled")

    logger.info(f"{len(report)} slabs, {empty} without any source")
    if missing:
        logger.error(f"{missing} source files are missing")
        return 1
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    add_arguments(parser)
    args = parser.parse_args()
    sys.exit(main(args))
