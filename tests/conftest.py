"""
Shared fixtures: small synthetic label volumes written as gzip slabs.
"""

import gzip
import sys
import threading
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Add source root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from labelimport.core.geometry import LABEL_DTYPE, SourceRange, VolumeExtent, intersect
from labelimport.io.sink import SendOutcome, Sink


def synthetic_slab(extent: VolumeExtent, slab_beg_z: int, tag: int) -> np.ndarray:
    """Slab whose voxels encode (tag, absolute z, y, x) so every byte is traceable."""
    z, y, x = np.indices(extent.slab_shape, dtype=np.uint64)
    z = z + np.uint64(slab_beg_z)
    return ((np.uint64(tag) << np.uint64(40)) | (z << np.uint64(20)) | (y << np.uint64(10)) | x).astype(LABEL_DTYPE)


def write_gzip(path: Path, payload: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(gzip.compress(payload))
    return path


def populate(extent: VolumeExtent, sources):
    """Write one artifact per source for every slab that source intersects."""
    for tag, source in enumerate(sources, start=1):
        for slab_beg_z in extent.slab_starts():
            if intersect(slab_beg_z, extent.thickness, source) is None:
                continue
            write_gzip(source.filename_for(slab_beg_z), synthetic_slab(extent, slab_beg_z, tag).tobytes())


def expected_slab(extent: VolumeExtent, sources, slab_beg_z: int) -> np.ndarray:
    """Slab as it should look after assembly."""
    slab = np.zeros(extent.slab_shape, dtype=LABEL_DTYPE)
    for tag, source in enumerate(sources, start=1):
        data = synthetic_slab(extent, slab_beg_z, tag)
        for plane, z in enumerate(range(slab_beg_z, slab_beg_z + extent.thickness)):
            if source.beg_z <= z <= source.end_z:
                slab[plane] = data[plane]
    return slab


class RecordingSink(Sink):
    """Sink that keeps every tile it receives."""
    def __init__(self, status_code: int = 200, fail_at: int = None):
        self.calls = []
        self.status_code = status_code
        self.fail_at = fail_at
        self.lock = threading.Lock()

    def send(self, buffer, offset_x, offset_y, offset_z):
        with self.lock:
            self.calls.append(((offset_x, offset_y, offset_z), bytes(buffer)))
            if self.fail_at is not None and len(self.calls) > self.fail_at:
                return SendOutcome(ok=False, status_code=self.status_code)
        return SendOutcome(ok=True, status_code=self.status_code)


@pytest.fixture
def extent():
    # Three slabs: 0-3, 4-7, 8-11
    return VolumeExtent(size_x=5, size_y=3, thickness=4, beg_z=0, end_z=11)


@pytest.fixture
def volume(tmp_path, extent):
    """Two source directories, the first ending inside slab 4-7, the second ending inside slab 8-11."""
    sources = [
        SourceRange(path=str(tmp_path / "a"), template="labels-z%05d.gz", beg_z=0, end_z=5),
        SourceRange(path=str(tmp_path / "b"), template="labels-z%05d.gz", beg_z=6, end_z=9),
    ]
    populate(extent, sources)
    return SimpleNamespace(
        extent=extent,
        sources=sources,
        expected=lambda slab_beg_z: expected_slab(extent, sources, slab_beg_z)
    )


@pytest.fixture
def recording_sink():
    return RecordingSink()
