"""
Geometry of the label volume: extent, source Z coverage, slabs and tile grids.

Pure computation, no I/O. All Z ranges are inclusive on both ends, matching
the way source directories are described in the import configuration.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Labels are 64-bit unsigned integers
BYTES_PER_VOXEL = 8
LABEL_DTYPE = '<u8'


@dataclass(frozen=True)
class VolumeExtent:
    """Size of the destination volume and the thickness of each slab."""
    size_x: int
    size_y: int
    thickness: int
    beg_z: int
    end_z: int

    def __post_init__(self):
        if self.size_x <= 0 or self.size_y <= 0:
            raise ConfigurationError(f"Volume XY size must be positive, got {self.size_x} x {self.size_y}")
        if self.thickness <= 0:
            raise ConfigurationError(f"Slab thickness must be positive, got {self.thickness}")
        if self.beg_z > self.end_z:
            raise ConfigurationError(f"Volume Z range is inverted: {self.beg_z} -> {self.end_z}")

    @property
    def plane_bytes(self) -> int:
        return self.size_x * self.size_y * BYTES_PER_VOXEL

    @property
    def slab_bytes(self) -> int:
        """Number of bytes in one uncompressed slab."""
        return self.plane_bytes * self.thickness

    @property
    def slab_shape(self) -> Tuple[int, int, int]:
        """Shape of a slab buffer in (z, y, x) order."""
        return (self.thickness, self.size_y, self.size_x)

    def slab_starts(self) -> List[int]:
        """Starting Z of every slab from beg_z through end_z."""
        return list(range(self.beg_z, self.end_z + 1, self.thickness))

    def slab_end(self, slab_beg_z: int) -> int:
        return slab_beg_z + self.thickness - 1


@dataclass(frozen=True)
class ZRange:
    """Inclusive range of Z planes."""
    beg_z: int
    end_z: int

    @property
    def length(self) -> int:
        return self.end_z - self.beg_z + 1

    def planes(self, origin: int) -> slice:
        """Plane indices of this range within a buffer starting at origin."""
        return slice(self.beg_z - origin, self.end_z - origin + 1)


@dataclass(frozen=True)
class SourceRange:
    """
    A directory of compressed slab files covering an inclusive Z range.

    The template is a printf-style pattern with a single integer placeholder
    that is filled with the starting Z of the slab, e.g.
    ``bodies-z%05d-18534x10786x32.gz``.
    """
    path: str
    template: str
    beg_z: int
    end_z: int

    @property
    def z_range(self) -> ZRange:
        return ZRange(self.beg_z, self.end_z)

    def filename_for(self, slab_beg_z: int) -> Path:
        """Path of the artifact holding the slab that starts at slab_beg_z."""
        return Path(self.path) / (self.template % slab_beg_z)


def intersect(slab_beg_z: int, thickness: int, source: SourceRange) -> Optional[ZRange]:
    """
    Overlap between a slab and the Z coverage of a source.

    Args:
        slab_beg_z: First Z plane of the slab
        thickness: Number of planes in the slab
        source: Source range to intersect with

    Returns:
        The overlapping inclusive Z range, or None if they are disjoint
    """
    slab_end_z = slab_beg_z + thickness - 1
    if slab_beg_z > source.end_z or slab_end_z < source.beg_z:
        return None
    return ZRange(max(slab_beg_z, source.beg_z), min(slab_end_z, source.end_z))


def tile_grid(extent_x: int, extent_y: int, max_edge: int) -> Iterator[Tuple[int, int, int, int]]:
    """
    Partition an XY extent into tiles no larger than max_edge on a side.

    Tiles are produced row-major: every tile of one Y band before the next
    band. The last tile in each dimension is clipped to the remaining extent.

    Args:
        extent_x: Width of the region in voxels
        extent_y: Height of the region in voxels
        max_edge: Maximum tile edge in voxels

    Yields:
        (ox, oy, width, height) for each tile
    """
    if max_edge <= 0:
        raise ConfigurationError(f"Tile edge must be positive, got {max_edge}")
    if extent_x <= 0 or extent_y <= 0:
        raise ConfigurationError(f"Tile grid extent must be positive, got {extent_x} x {extent_y}")

    for oy in range(0, extent_y, max_edge):
        height = min(max_edge, extent_y - oy)
        for ox in range(0, extent_x, max_edge):
            width = min(max_edge, extent_x - ox)
            yield ox, oy, width, height


def validate_sources(sources: Sequence[SourceRange]) -> None:
    """
    Check that source ranges are well formed, ascending and non-overlapping.

    Args:
        sources: Source ranges in configured order

    Raises:
        ConfigurationError: If any range is empty, inverted, out of order or
            overlaps its predecessor, or if a template cannot be formatted
    """
    if not sources:
        raise ConfigurationError("Found no source directories")

    previous = None
    for source in sources:
        if source.end_z < source.beg_z:
            raise ConfigurationError(
                f"Directory {source.path!r} has bad Z range: {source.beg_z} -> {source.end_z}"
            )
        if previous is not None and source.beg_z <= previous.end_z:
            raise ConfigurationError(
                f"Directory {source.path!r} is not in order. BegZ {source.beg_z} is <= "
                f"previous directory EndZ {previous.end_z}"
            )
        try:
            source.template % source.beg_z
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Directory {source.path!r} has bad filename template {source.template!r}: {e}"
            ) from e
        previous = source


def plan_slab(extent: VolumeExtent,
              sources: Sequence[SourceRange],
              slab_beg_z: int) -> List[Tuple[SourceRange, ZRange]]:
    """
    Sources that contribute planes to a slab, in configured order.

    Stops as soon as the contributing ranges cover the whole slab.

    Returns:
        List of (source, overlapping Z range) pairs
    """
    plan = []
    filled = 0
    for source in sources:
        overlap = intersect(slab_beg_z, extent.thickness, source)
        if overlap is None:
            continue
        plan.append((source, overlap))
        filled += overlap.length
        if filled >= extent.thickness:
            break
    return plan


__all__ = [
    'BYTES_PER_VOXEL',
    'LABEL_DTYPE',
    'VolumeExtent',
    'ZRange',
    'SourceRange',
    'intersect',
    'tile_grid',
    'validate_sources',
    'plan_slab'
]
