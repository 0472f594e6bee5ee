"""
Tests for the HTTP and zarr tile sinks.
"""

from types import SimpleNamespace

import numpy as np
import pytest
import requests

from conftest import synthetic_slab
from labelimport.core.errors import TransportError
from labelimport.core.geometry import LABEL_DTYPE, VolumeExtent
from labelimport.io.sink import HTTPSink, ZarrSink


class FakeSession:
    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []
        self.closed = False

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.requests.append(SimpleNamespace(method=method, url=url, data=data, headers=headers, timeout=timeout))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(status_code=self.status_code)

    def close(self):
        self.closed = True


def test_http_sink_posts_tile():
    session = FakeSession()
    sink = HTTPSink("http://emdata:7000/api/node/653/labels/raw/0_1_2/18534_10786_32/",
                    timeout=5.0, session=session)

    outcome = sink.send(b"\x01" * 16, 1024, 2048, 13184)

    assert outcome.ok
    assert outcome.status_code == 200
    request = session.requests[0]
    assert request.method == "POST"
    assert request.url == "http://emdata:7000/api/node/653/labels/raw/0_1_2/18534_10786_32/1024_2048_13184"
    assert request.data == b"\x01" * 16
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert request.timeout == 5.0


def test_http_sink_put():
    session = FakeSession(status_code=204)
    sink = HTTPSink("http://host/raw", method="put", session=session)
    assert sink.send(b"", 0, 0, 0).ok
    assert session.requests[0].method == "PUT"


def test_http_sink_bad_status():
    sink = HTTPSink("http://host/raw", session=FakeSession(status_code=500))
    outcome = sink.send(b"", 0, 0, 0)
    assert not outcome.ok
    assert outcome.status_code == 500


def test_http_sink_timeout_is_retryable():
    sink = HTTPSink("http://host/raw", session=FakeSession(error=requests.Timeout("slow")))
    with pytest.raises(TransportError) as excinfo:
        sink.send(b"", 0, 0, 32)
    assert excinfo.value.retryable
    assert excinfo.value.offset == (0, 0, 32)


def test_http_sink_connection_error():
    sink = HTTPSink("http://host/raw", session=FakeSession(error=requests.ConnectionError("refused")))
    with pytest.raises(TransportError) as excinfo:
        sink.send(b"", 0, 0, 0)
    assert not excinfo.value.retryable


def test_http_sink_rejects_method():
    with pytest.raises(ValueError):
        HTTPSink("http://host/raw", method="GET", session=FakeSession())


def test_http_sink_close():
    session = FakeSession()
    with HTTPSink("http://host/raw", session=session):
        pass
    assert session.closed


@pytest.fixture
def zarr_extent():
    return VolumeExtent(size_x=5, size_y=3, thickness=4, beg_z=8, end_z=15)


def test_zarr_sink_writes_tile(tmp_path, zarr_extent):
    sink = ZarrSink(str(tmp_path / "out.zarr"), zarr_extent, max_edge=4)
    assert sink.array.shape == (8, 3, 5)

    slab = synthetic_slab(zarr_extent, 12, tag=1)
    tile = np.ascontiguousarray(slab[:, :, 4:5])
    assert sink.send(tile.tobytes(), 4, 0, 12).ok

    np.testing.assert_array_equal(sink.array[4:8, 0:3, 4:5], tile)
    assert not np.any(sink.array[0:4, :, :])
    assert list(sink.array.attrs["voxel_offset"]) == [0, 0, 8]


def test_zarr_sink_rejects_wrong_length(tmp_path, zarr_extent):
    sink = ZarrSink(str(tmp_path / "out.zarr"), zarr_extent, max_edge=4)
    with pytest.raises(TransportError):
        sink.send(bytes(8), 0, 0, 8)


def test_zarr_sink_rejects_outside_offset(tmp_path, zarr_extent):
    sink = ZarrSink(str(tmp_path / "out.zarr"), zarr_extent, max_edge=4)
    tile = np.zeros((4, 3, 4), dtype=LABEL_DTYPE)
    with pytest.raises(TransportError):
        sink.send(tile.tobytes(), 0, 0, 16)
