"""
Assembly of destination slabs from one or more source directories.

A destination slab may straddle the boundary between two source directories.
Each contributing source supplies only the planes inside its own Z range, and
planes covered by no source stay zero.
"""

import contextlib
import logging
import queue
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError
from .geometry import LABEL_DTYPE, SourceRange, VolumeExtent, ZRange, plan_slab

logger = logging.getLogger(__name__)

SourceReaderFunc = Callable[[SourceRange, int, VolumeExtent], np.ndarray]


def _default_reader(source: SourceRange, slab_beg_z: int, extent: VolumeExtent) -> np.ndarray:
    from labelimport.io.reader import read_source
    return read_source(source, slab_beg_z, extent)


@dataclass
class AssembledSlab:
    """A fully populated slab buffer and the sources that filled it."""
    beg_z: int
    data: np.ndarray
    filled_planes: int = 0
    sources: List[Tuple[SourceRange, ZRange]] = field(default_factory=list)

    @property
    def thickness(self) -> int:
        return self.data.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.filled_planes == 0

    @property
    def is_complete(self) -> bool:
        return self.filled_planes >= self.thickness


class SlabBufferPool:
    """
    Bounded pool of slab buffers shared by workers.

    A buffer is owned by exactly one worker between checkout and checkin.
    """
    def __init__(self, extent: VolumeExtent, size: int = 1):
        if size <= 0:
            raise ConfigurationError(f"Buffer pool size must be positive, got {size}")
        self.extent = extent
        self.size = size
        self._buffers = queue.Queue(maxsize=size)
        for _ in range(size):
            self._buffers.put(np.zeros(extent.slab_shape, dtype=LABEL_DTYPE))

    @contextlib.contextmanager
    def checkout(self) -> Iterator[np.ndarray]:
        """Borrow a buffer for the duration of the block."""
        buffer = self._buffers.get()
        try:
            yield buffer
        finally:
            self._buffers.put(buffer)


class SlabAssembler:
    """
    Builds destination slabs by stitching planes from source artifacts.

    Args:
        extent: Volume geometry
        sources: Validated source ranges in ascending Z order
        reader: Function loading one source artifact for a slab start
    """
    def __init__(self,
                 extent: VolumeExtent,
                 sources: Sequence[SourceRange],
                 reader: Optional[SourceReaderFunc] = None):
        self.extent = extent
        self.sources = list(sources)
        self.reader = reader or _default_reader

    def assemble(self, slab_beg_z: int, buffer: Optional[np.ndarray] = None) -> AssembledSlab:
        """
        Assemble the slab starting at slab_beg_z.

        Args:
            slab_beg_z: First Z plane of the slab
            buffer: Slab buffer to fill. It is zeroed before use. A new
                buffer is allocated when omitted.

        Returns:
            The assembled slab backed by buffer
        """
        if buffer is None:
            buffer = np.zeros(self.extent.slab_shape, dtype=LABEL_DTYPE)
        elif buffer.shape != self.extent.slab_shape:
            raise ValueError(f"Slab buffer has shape {buffer.shape}, expected {self.extent.slab_shape}")
        else:
            buffer.fill(0)

        slab = AssembledSlab(beg_z=slab_beg_z, data=buffer)

        for source, overlap in plan_slab(self.extent, self.sources, slab_beg_z):
            source_data = self.reader(source, slab_beg_z, self.extent)

            # Source and slab share the same plane layout, so the offsets match
            planes = overlap.planes(slab_beg_z)
            buffer[planes] = source_data[planes]

            slab.filled_planes += overlap.length
            slab.sources.append((source, overlap))
            logger.debug(f"Copied planes {overlap.beg_z} -> {overlap.end_z} from {source.path}")

            if slab.is_complete:
                break

        if slab.is_empty:
            logger.info(f"Slab @ {slab_beg_z} has no contributing sources, emitting zeros")
        elif not slab.is_complete:
            logger.info(f"Slab @ {slab_beg_z} filled {slab.filled_planes}/{self.extent.thickness} planes")

        return slab


__all__ = [
    'AssembledSlab',
    'SlabBufferPool',
    'SlabAssembler'
]
