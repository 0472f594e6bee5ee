"""
Reading of gzip-compressed label slabs from source directories.
"""

import gzip
import logging
import zlib

import numpy as np

from labelimport.core.errors import DecompressionError, SizeMismatch, SourceError, SourceNotFound
from labelimport.core.geometry import LABEL_DTYPE, SourceRange, VolumeExtent

logger = logging.getLogger(__name__)


def decompress_slab(compressed: bytes, path: str, extent: VolumeExtent) -> np.ndarray:
    """
    Decompress a slab and check it against the volume geometry.

    Args:
        compressed: Raw gzip stream
        path: Path the stream was read from, used in error messages
        extent: Volume geometry the slab must match

    Returns:
        Read-only uint64 array of shape (thickness, size_y, size_x)

    Raises:
        DecompressionError: If the gzip stream is truncated or malformed
        SizeMismatch: If the decompressed length differs from one slab
    """
    try:
        data = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as e:
        raise DecompressionError(f"Could not decompress {path}: {e}", path=path) from e

    if len(data) != extent.slab_bytes:
        raise SizeMismatch(path, extent.slab_bytes, len(data))

    return np.frombuffer(data, dtype=LABEL_DTYPE).reshape(extent.slab_shape)


def read_source(source: SourceRange, slab_beg_z: int, extent: VolumeExtent) -> np.ndarray:
    """
    Load the artifact of a source directory for the slab starting at slab_beg_z.

    The whole file is decompressed and validated before anything is returned,
    so a corrupt artifact never reaches a slab buffer.

    Args:
        source: Source directory description
        slab_beg_z: First Z plane of the slab
        extent: Volume geometry

    Returns:
        Read-only uint64 array of shape (thickness, size_y, size_x)

    Raises:
        SourceNotFound: If the artifact does not exist
        DecompressionError: If the gzip stream is truncated or malformed
        SizeMismatch: If the decompressed length differs from one slab
    """
    filename = source.filename_for(slab_beg_z)
    logger.info(f"Getting data for Z {slab_beg_z} -> {extent.slab_end(slab_beg_z)} from {filename} ...")

    try:
        with open(filename, 'rb') as f:
            compressed = f.read()
    except FileNotFoundError as e:
        raise SourceNotFound(f"Source file not found: {filename}", path=str(filename)) from e
    except OSError as e:
        raise SourceError(f"Could not read {filename}: {e}", path=str(filename)) from e

    return decompress_slab(compressed, str(filename), extent)


__all__ = [
    'decompress_slab',
    'read_source'
]
