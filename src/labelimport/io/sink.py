"""
Destinations that accept tiles addressed by a 3D voxel offset.

HTTPSink posts each tile to a volumetric store such as DVID, ZarrSink writes
tiles into a local zarr array for staging or verification.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import requests
import zarr
from requests.adapters import HTTPAdapter

from labelimport.core.errors import TransportError
from labelimport.core.geometry import BYTES_PER_VOXEL, LABEL_DTYPE, VolumeExtent

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    """Result of handing one tile to a sink."""
    ok: bool
    status_code: Optional[int] = None


class Sink(ABC):
    '''
    A destination for tiles. Implementations must allow concurrent send calls.
    '''
    @abstractmethod
    def send(self, buffer: bytes, offset_x: int, offset_y: int, offset_z: int) -> SendOutcome:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> 'Sink':
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def create_session(pool_size: int = 1) -> requests.Session:
    """
    Create a requests session whose connection pool fits the worker count.

    Args:
        pool_size: Maximum number of concurrent connections per host

    Returns:
        Session without automatic retries
    """
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class HTTPSink(Sink):
    """
    Sends tiles to ``{base_uri}/{x}_{y}_{z}`` as octet-stream bodies.

    Args:
        base_uri: Base address of the destination data instance
        method: HTTP method, POST or PUT
        timeout: Seconds to wait for each request
        pool_size: Connection pool size, at least the number of workers
        session: Existing session to use instead of creating one
    """
    def __init__(self,
                 base_uri: str,
                 method: str = "POST",
                 timeout: float = 60.0,
                 pool_size: int = 1,
                 session: Optional[requests.Session] = None):
        method = method.upper()
        if method not in ("POST", "PUT"):
            raise ValueError(f"Unsupported HTTP method: {method}")
        self.base_uri = base_uri.rstrip('/')
        self.method = method
        self.timeout = timeout
        self.session = session or create_session(pool_size)

    def url_for(self, offset_x: int, offset_y: int, offset_z: int) -> str:
        return f"{self.base_uri}/{offset_x}_{offset_y}_{offset_z}"

    def send(self, buffer: bytes, offset_x: int, offset_y: int, offset_z: int) -> SendOutcome:
        url = self.url_for(offset_x, offset_y, offset_z)
        offset = (offset_x, offset_y, offset_z)
        logger.debug(f"{self.method}ing: {url}")

        try:
            response = self.session.request(
                self.method,
                url,
                data=buffer,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise TransportError(f"Timed out after {self.timeout}s sending to {url}: {e}",
                                 offset=offset, retryable=True) from e
        except requests.RequestException as e:
            raise TransportError(f"Could not send to {url}: {e}", offset=offset) from e

        ok = 200 <= response.status_code < 300
        if not ok:
            logger.error(f"Received bad status from {self.method} on {url}: {response.status_code}")
        return SendOutcome(ok=ok, status_code=response.status_code)

    def close(self) -> None:
        self.session.close()


class ZarrSink(Sink):
    """
    Writes tiles into a local zarr array covering every slab of the volume.

    The array Z axis starts at the first slab of the volume, recorded in the
    ``voxel_offset`` attribute as (x, y, z). Chunks match the slab thickness
    and tile edge so concurrent tiles never share a chunk.

    Args:
        path: Output zarr path
        extent: Volume geometry
        max_edge: Tile edge used when partitioning slabs
    """
    def __init__(self, path: str, extent: VolumeExtent, max_edge: int):
        self.path = path
        self.extent = extent
        self.max_edge = max_edge
        depth = len(extent.slab_starts()) * extent.thickness
        self.array = zarr.open(
            path,
            mode="w",
            shape=(depth, extent.size_y, extent.size_x),
            chunks=(extent.thickness, min(max_edge, extent.size_y), min(max_edge, extent.size_x)),
            dtype=LABEL_DTYPE
        )
        self.array.attrs["voxel_offset"] = [0, 0, extent.beg_z]
        logger.info(f"Created zarr output {path} with shape {self.array.shape}")

    def tile_shape(self, offset_x: int, offset_y: int) -> Tuple[int, int, int]:
        """Shape (z, y, x) of the tile at an XY offset."""
        width = min(self.max_edge, self.extent.size_x - offset_x)
        height = min(self.max_edge, self.extent.size_y - offset_y)
        return (self.extent.thickness, height, width)

    def send(self, buffer: bytes, offset_x: int, offset_y: int, offset_z: int) -> SendOutcome:
        offset = (offset_x, offset_y, offset_z)
        z0 = offset_z - self.extent.beg_z
        if (offset_x < 0 or offset_y < 0 or z0 < 0 or offset_x >= self.extent.size_x
                or offset_y >= self.extent.size_y or z0 >= self.array.shape[0]):
            raise TransportError(f"Tile offset {offset} is outside {self.path}", offset=offset)

        shape = self.tile_shape(offset_x, offset_y)
        expected = int(np.prod(shape)) * BYTES_PER_VOXEL
        if len(buffer) != expected:
            raise TransportError(
                f"Tile at {offset} has {len(buffer)} bytes, expected {expected}", offset=offset
            )

        data = np.frombuffer(buffer, dtype=LABEL_DTYPE).reshape(shape)
        self.array[z0:z0 + shape[0], offset_y:offset_y + shape[1], offset_x:offset_x + shape[2]] = data
        return SendOutcome(ok=True)


__all__ = [
    'SendOutcome',
    'Sink',
    'create_session',
    'HTTPSink',
    'ZarrSink'
]
