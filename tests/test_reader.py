"""
Tests for reading and validating compressed source slabs.
"""

import gzip

import numpy as np
import pytest

from conftest import synthetic_slab, write_gzip
from labelimport.core.errors import DecompressionError, SizeMismatch, SourceNotFound
from labelimport.core.geometry import SourceRange
from labelimport.io.reader import decompress_slab, read_source


@pytest.fixture
def source(tmp_path):
    return SourceRange(path=str(tmp_path), template="bodies-z%05d-5x3x4.gz", beg_z=0, end_z=100)


def test_read_source(source, extent):
    data = synthetic_slab(extent, 8, tag=1)
    write_gzip(source.filename_for(8), data.tobytes())

    loaded = read_source(source, 8, extent)
    assert loaded.shape == extent.slab_shape
    assert loaded.dtype == np.dtype('<u8')
    np.testing.assert_array_equal(loaded, data)


def test_read_source_uses_slab_start_in_name(source, extent, tmp_path):
    write_gzip(tmp_path / "bodies-z00004-5x3x4.gz", synthetic_slab(extent, 4, tag=1).tobytes())
    assert read_source(source, 4, extent).shape == extent.slab_shape


def test_missing_source(source, extent):
    with pytest.raises(SourceNotFound) as excinfo:
        read_source(source, 12, extent)
    assert isinstance(excinfo.value, FileNotFoundError)
    assert excinfo.value.path.endswith("bodies-z00012-5x3x4.gz")


def test_truncated_stream(source, extent):
    compressed = gzip.compress(synthetic_slab(extent, 0, tag=1).tobytes())
    source.filename_for(0).write_bytes(compressed[:len(compressed) // 2])

    with pytest.raises(DecompressionError):
        read_source(source, 0, extent)


def test_malformed_stream(source, extent):
    source.filename_for(0).write_bytes(b"this is not a gzip stream")

    with pytest.raises(DecompressionError):
        read_source(source, 0, extent)


@pytest.mark.parametrize("delta", [-1, 1, -8, 8])
def test_size_mismatch(source, extent, delta):
    payload = bytes(extent.slab_bytes + delta)
    write_gzip(source.filename_for(0), payload)

    with pytest.raises(SizeMismatch) as excinfo:
        read_source(source, 0, extent)
    assert excinfo.value.expected == extent.slab_bytes
    assert excinfo.value.actual == extent.slab_bytes + delta


def test_decompress_slab_multi_member(extent):
    data = synthetic_slab(extent, 0, tag=3).tobytes()
    half = len(data) // 2
    compressed = gzip.compress(data[:half]) + gzip.compress(data[half:])

    loaded = decompress_slab(compressed, "<memory>", extent)
    assert loaded.tobytes() == data
