"""
Tests for cutting slabs into tiles.
"""

import types

import numpy as np
import pytest

from labelimport.core.geometry import BYTES_PER_VOXEL, LABEL_DTYPE
from labelimport.core.tiler import iter_tiles, reassemble


def random_slab(shape, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 2**63, size=shape, dtype=np.uint64).astype(LABEL_DTYPE)


@pytest.mark.parametrize("shape,max_edge", [
    ((3, 7, 10), 4),
    ((4, 16, 16), 8),
    ((2, 5, 3), 1024),
    ((1, 9, 13), 1),
])
def test_tiles_reassemble_to_slab(shape, max_edge):
    slab = random_slab(shape)
    tiles = list(iter_tiles(slab, 64, max_edge))
    assert reassemble(tiles, shape).tobytes() == slab.tobytes()


def test_tile_offsets_and_sizes():
    slab = random_slab((2, 1000, 1500))
    tiles = list(iter_tiles(slab, 13184, 1024))

    assert [t.offset for t in tiles] == [(0, 0, 13184), (1024, 0, 13184)]
    assert [(t.width, t.height) for t in tiles] == [(1024, 1000), (476, 1000)]
    assert tiles[1].nbytes == 476 * 1000 * 2 * BYTES_PER_VOXEL
    assert len(tiles[1].tobytes()) == tiles[1].nbytes


def test_tile_byte_layout():
    thickness, size_y, size_x = 3, 7, 10
    slab = random_slab((thickness, size_y, size_x), seed=1)
    slab_bytes = slab.tobytes()

    for tile in iter_tiles(slab, 0, 4):
        tile_bytes = tile.tobytes()
        for z in range(thickness):
            for y in range(tile.height):
                for x in range(tile.width):
                    ti = ((z * tile.height + y) * tile.width + x) * 8
                    si = ((z * size_y + tile.oy + y) * size_x + tile.ox + x) * 8
                    assert tile_bytes[ti:ti + 8] == slab_bytes[si:si + 8]


def test_tiles_are_lazy_and_independent():
    slab = random_slab((2, 8, 8))
    original = slab.copy()
    tiles = iter_tiles(slab, 0, 4)
    assert isinstance(tiles, types.GeneratorType)

    first = next(tiles)
    slab.fill(0)
    np.testing.assert_array_equal(first.data, original[:, 0:4, 0:4])
    assert first.data.flags['C_CONTIGUOUS']
