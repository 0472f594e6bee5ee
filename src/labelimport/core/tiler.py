"""
Partitioning of assembled slabs into bounded-size tiles.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

import numpy as np

from .geometry import BYTES_PER_VOXEL, LABEL_DTYPE, tile_grid

logger = logging.getLogger(__name__)

DEFAULT_TILE_EDGE = 1024


@dataclass
class Tile:
    """A rectangular XY region of a slab spanning its full thickness."""
    ox: int
    oy: int
    oz: int
    width: int
    height: int
    data: np.ndarray

    @property
    def offset(self) -> Tuple[int, int, int]:
        return (self.ox, self.oy, self.oz)

    @property
    def thickness(self) -> int:
        return self.data.shape[0]

    @property
    def nbytes(self) -> int:
        return self.width * self.height * self.thickness * BYTES_PER_VOXEL

    def tobytes(self) -> bytes:
        """Tile voxels in z, y, x order with x varying fastest."""
        return self.data.tobytes(order='C')


def iter_tiles(slab_data: np.ndarray, slab_beg_z: int, max_edge: int = DEFAULT_TILE_EDGE) -> Iterator[Tile]:
    """
    Lazily cut a slab into tiles covering its whole XY extent.

    Each tile owns a freshly allocated buffer filled row by row from the
    slab, so the slab buffer can be reused once iteration finishes.

    Args:
        slab_data: Slab array of shape (thickness, size_y, size_x)
        slab_beg_z: First Z plane of the slab, used as the tile Z offset
        max_edge: Maximum tile edge in voxels

    Yields:
        Tiles in row-major order
    """
    thickness, size_y, size_x = slab_data.shape
    for ox, oy, width, height in tile_grid(size_x, size_y, max_edge):
        buffer = np.empty((thickness, height, width), dtype=LABEL_DTYPE)
        buffer[...] = slab_data[:, oy:oy + height, ox:ox + width]
        yield Tile(ox=ox, oy=oy, oz=slab_beg_z, width=width, height=height, data=buffer)


def reassemble(tiles: Iterable[Tile], shape: Tuple[int, int, int]) -> np.ndarray:
    """
    Rebuild a slab array from its tiles.

    Args:
        tiles: Tiles produced by iter_tiles
        shape: Slab shape (thickness, size_y, size_x)

    Returns:
        Slab array with every tile written at its XY offset
    """
    slab = np.zeros(shape, dtype=LABEL_DTYPE)
    for tile in tiles:
        slab[:, tile.oy:tile.oy + tile.height, tile.ox:tile.ox + tile.width] = tile.data
    return slab


__all__ = [
    'DEFAULT_TILE_EDGE',
    'Tile',
    'iter_tiles',
    'reassemble'
]
