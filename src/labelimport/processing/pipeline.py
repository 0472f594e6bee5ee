"""
Driver that imports a label volume slab by slab.

Each slab is assembled from its source directories, cut into tiles and every
tile is handed to the sink before the slab buffer is reused. Slabs can be
processed by a pool of worker threads, each owning its own slab buffer.
The first failure stops the whole import.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from labelimport.core.assembler import SlabAssembler, SlabBufferPool, SourceReaderFunc
from labelimport.core.errors import ConfigurationError, LabelImportError, TransportError
from labelimport.core.geometry import SourceRange, VolumeExtent, plan_slab
from labelimport.core.tiler import DEFAULT_TILE_EDGE, Tile, iter_tiles
from labelimport.io.sink import Sink

logger = logging.getLogger(__name__)


class ImportAborted(LabelImportError):
    """Raised inside a worker when another worker has already failed."""


def send_tile(sink: Sink, tile: Tile) -> int:
    """
    Hand one tile to the sink.

    Returns:
        Number of bytes sent

    Raises:
        TransportError: If the sink reports anything but success
    """
    buffer = tile.tobytes()
    outcome = sink.send(buffer, tile.ox, tile.oy, tile.oz)
    if not outcome.ok:
        raise TransportError(
            f"Sink rejected tile at {tile.offset} with status {outcome.status_code}",
            status_code=outcome.status_code,
            offset=tile.offset
        )
    return len(buffer)


def process_slab(assembler: SlabAssembler,
                 slab_beg_z: int,
                 sink: Optional[Sink],
                 max_edge: int = DEFAULT_TILE_EDGE,
                 dry_run: bool = False,
                 buffer_pool: Optional[SlabBufferPool] = None,
                 abort: Optional[threading.Event] = None) -> Dict[str, Any]:
    """
    Assemble one slab and send all of its tiles.

    Args:
        assembler: Slab assembler for the volume
        slab_beg_z: First Z plane of the slab
        sink: Destination for tiles, unused in dry-run mode
        max_edge: Maximum tile edge in voxels
        dry_run: Log tiles instead of sending them
        buffer_pool: Pool to borrow the slab buffer from
        abort: Event set when the import has failed elsewhere

    Returns:
        Dict with tile and byte counts for the slab
    """
    logger.info(f"Processing slab starting at {slab_beg_z} ...")
    pool = buffer_pool or SlabBufferPool(assembler.extent, size=1)
    stats = {"tiles": 0, "tiles_sent": 0, "bytes_sent": 0, "empty": False}

    if abort is not None and abort.is_set():
        raise ImportAborted(f"Slab @ {slab_beg_z} abandoned after failure elsewhere")

    with pool.checkout() as buffer:
        slab = assembler.assemble(slab_beg_z, buffer)
        stats["empty"] = slab.is_empty

        for tile in iter_tiles(slab.data, slab_beg_z, max_edge):
            if abort is not None and abort.is_set():
                raise ImportAborted(f"Slab @ {slab_beg_z} abandoned after failure elsewhere")
            stats["tiles"] += 1
            if dry_run:
                logger.info(f"Dry run, skipping tile {tile.width}x{tile.height}x{tile.thickness} at {tile.offset}")
                continue
            stats["bytes_sent"] += send_tile(sink, tile)
            stats["tiles_sent"] += 1
            logger.debug(f"Sent tile at {tile.offset}")

    return stats


def _process_slab_logged(assembler, slab_beg_z, sink, max_edge, dry_run, buffer_pool, abort):
    try:
        return process_slab(assembler, slab_beg_z, sink, max_edge, dry_run, buffer_pool, abort)
    except ImportAborted:
        raise
    except TransportError as e:
        logger.error(f"Error processing slab @ {slab_beg_z}, tile {e.offset}: {e}")
        raise
    except Exception as e:
        logger.error(f"Error processing slab @ {slab_beg_z}: {e}")
        raise


def import_volume(extent: VolumeExtent,
                  sources: Sequence[SourceRange],
                  sink: Optional[Sink] = None,
                  max_edge: int = DEFAULT_TILE_EDGE,
                  dry_run: bool = False,
                  num_workers: int = 1,
                  progress: bool = True,
                  reader: Optional[SourceReaderFunc] = None) -> Dict[str, Any]:
    """
    Import every slab of the volume from beg_z through end_z.

    Args:
        extent: Volume geometry
        sources: Validated source ranges in ascending Z order
        sink: Destination for tiles, required unless dry_run is set
        max_edge: Maximum tile edge in voxels
        dry_run: Run assembly and tiling but skip every sink call
        num_workers: Number of slabs processed concurrently
        progress: Show a progress bar over slabs
        reader: Function loading a source artifact, defaults to gzip files

    Returns:
        Dict with statistics about the import

    Raises:
        LabelImportError: The first failure from any slab
    """
    if sink is None and not dry_run:
        raise ValueError("A sink is required unless dry_run is set")
    if num_workers <= 0:
        raise ValueError(f"num_workers must be positive, got {num_workers}")
    if max_edge <= 0:
        raise ConfigurationError(f"Tile edge must be positive, got {max_edge}")

    assembler = SlabAssembler(extent, sources, reader=reader)
    slab_starts = extent.slab_starts()
    buffer_pool = SlabBufferPool(extent, size=min(num_workers, len(slab_starts)))
    abort = threading.Event()

    logger.info(f"Importing {len(slab_starts)} slabs of {extent.size_x}x{extent.size_y}x{extent.thickness} "
                f"with {num_workers} workers{' (dry run)' if dry_run else ''}")

    result = {
        "status": "completed",
        "dry_run": dry_run,
        "slabs": 0,
        "empty_slabs": 0,
        "tiles": 0,
        "tiles_sent": 0,
        "bytes_sent": 0
    }

    def accumulate(stats: Dict[str, Any]) -> None:
        result["slabs"] += 1
        result["empty_slabs"] += int(stats["empty"])
        result["tiles"] += stats["tiles"]
        result["tiles_sent"] += stats["tiles_sent"]
        result["bytes_sent"] += stats["bytes_sent"]

    tic = time.time()
    with tqdm(total=len(slab_starts), desc="Slabs", unit="slab", disable=not progress) as bar:
        if num_workers == 1:
            for slab_beg_z in slab_starts:
                accumulate(_process_slab_logged(assembler, slab_beg_z, sink, max_edge, dry_run, buffer_pool, None))
                bar.update(1)
        else:
            with ThreadPoolExecutor(max_workers=num_workers) as executor:
                futures = [
                    executor.submit(_process_slab_logged, assembler, slab_beg_z, sink,
                                    max_edge, dry_run, buffer_pool, abort)
                    for slab_beg_z in slab_starts
                ]
                try:
                    for future in as_completed(futures):
                        accumulate(future.result())
                        bar.update(1)
                except BaseException:
                    abort.set()
                    for future in futures:
                        future.cancel()
                    raise

    elapsed = time.time() - tic
    result["elapsed"] = elapsed
    logger.info(f"Imported {result['slabs']} slabs, {result['tiles_sent']}/{result['tiles']} tiles sent "
                f"({result['bytes_sent']} bytes) in {elapsed:.2f}s")
    return result


def coverage_report(extent: VolumeExtent,
                    sources: Sequence[SourceRange],
                    check_files: bool = False) -> List[Dict[str, Any]]:
    """
    Describe which sources feed each slab without reading any data.

    Args:
        extent: Volume geometry
        sources: Validated source ranges in ascending Z order
        check_files: Also check that each contributing artifact exists

    Returns:
        One dict per slab with its Z range, contributing sources and the
        number of planes no source covers
    """
    report = []
    for slab_beg_z in extent.slab_starts():
        plan = plan_slab(extent, sources, slab_beg_z)
        entries = []
        for source, overlap in plan:
            entry = {
                "path": source.path,
                "filename": str(source.filename_for(slab_beg_z)),
                "beg_z": overlap.beg_z,
                "end_z": overlap.end_z
            }
            if check_files:
                entry["exists"] = source.filename_for(slab_beg_z).exists()
            entries.append(entry)
        report.append({
            "beg_z": slab_beg_z,
            "end_z": extent.slab_end(slab_beg_z),
            "sources": entries,
            "uncovered_planes": extent.thickness - sum(overlap.length for _, overlap in plan)
        })
    return report


__all__ = [
    'ImportAborted',
    'send_tile',
    'process_slab',
    'import_volume',
    'coverage_report'
]
