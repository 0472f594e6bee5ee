"""
Core geometry, slab assembly and tiling.
"""

from .errors import (
    LabelImportError,
    ConfigurationError,
    SourceError,
    SourceNotFound,
    DecompressionError,
    SizeMismatch,
    TransportError
)
from .geometry import (
    VolumeExtent,
    ZRange,
    SourceRange,
    intersect,
    tile_grid,
    validate_sources,
    plan_slab
)
from .assembler import AssembledSlab, SlabBufferPool, SlabAssembler
from .tiler import Tile, iter_tiles, reassemble

__all__ = [
    'LabelImportError',
    'ConfigurationError',
    'SourceError',
    'SourceNotFound',
    'DecompressionError',
    'SizeMismatch',
    'TransportError',
    'VolumeExtent',
    'ZRange',
    'SourceRange',
    'intersect',
    'tile_grid',
    'validate_sources',
    'plan_slab',
    'AssembledSlab',
    'SlabBufferPool',
    'SlabAssembler',
    'Tile',
    'iter_tiles',
    'reassemble'
]
