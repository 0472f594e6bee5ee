"""
labelimport: import Z-sliced label volumes into a remote volumetric store.
"""

__version__ = "0.1.0"

# Import key functionality for package-level access
from .core.errors import (
    LabelImportError,
    ConfigurationError,
    SourceNotFound,
    DecompressionError,
    SizeMismatch,
    TransportError
)
from .core.geometry import VolumeExtent, SourceRange, intersect, tile_grid
from .core.assembler import SlabAssembler
from .core.tiler import iter_tiles
from .config import ImportConfig, load_config
from .io.sink import HTTPSink, ZarrSink
from .processing.pipeline import import_volume, coverage_report
