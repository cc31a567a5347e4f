"""Remote GeoTIFF fetch and in-memory decode for the map overlay."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

import numpy as np
import requests
from affine import Affine
from loguru import logger
from rasterio.coords import BoundingBox
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.io import MemoryFile
from rasterio.transform import array_bounds
from rasterio.warp import calculate_default_transform, reproject

DEFAULT_OVERLAY_URL = (
    "https://github.com/toinesevenier-spec/ferme-manville-map/blob/main/98622.tif"
)
DEFAULT_OVERLAY_OPACITY = 0.7
DEFAULT_MAX_SIZE = 2048
DEFAULT_TIMEOUT_S = 60.0

_GITHUB_BLOB_PATTERN = re.compile(
    r"^https?://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/blob/(?P<path>.+)$"
)

WGS84 = CRS.from_epsg(4326)


class OverlayState(str, Enum):
    """Overlay presence on the map."""

    ABSENT = "absent"
    PRESENT = "present"


@dataclass
class GeoRaster:
    """Decoded raster ready for display.

    Parameters
    ----------
    image : numpy.ndarray
        ``(H, W, C)`` uint8 image, row 0 is the northern edge, ``C`` is 3 or 4.
    bounds : rasterio.coords.BoundingBox
        Extent in degrees: ``left=west, bottom=south, right=east, top=north``.
    crs_wkt : str | None
        Source CRS before reprojection.
    """

    image: np.ndarray
    bounds: BoundingBox
    crs_wkt: str | None = None


def resolve_download_url(url: str) -> str:
    """Rewrite GitHub file page URLs to their raw-content URL.

    Examples
    --------
    >>> resolve_download_url("https://github.com/o/r/blob/main/a.tif")
    'https://raw.githubusercontent.com/o/r/main/a.tif'
    >>> resolve_download_url("https://example.org/a.tif")
    'https://example.org/a.tif'
    """
    match = _GITHUB_BLOB_PATTERN.match(url.strip())
    if match is None:
        return url.strip()
    return (
        f"https://raw.githubusercontent.com/{match['owner']}/{match['repo']}/"
        f"{match['path']}"
    )


def fetch_geotiff(url: str, timeout: float = DEFAULT_TIMEOUT_S) -> bytes:
    """Download raw GeoTIFF bytes.

    Raises
    ------
    requests.RequestException
        On connection failure or non-2xx status.
    """
    download_url = resolve_download_url(url)
    logger.info(f"Fetching GeoTIFF: {download_url}")
    response = requests.get(download_url, timeout=timeout)
    response.raise_for_status()
    logger.debug(f"  Received {len(response.content)} bytes")
    return response.content


def _scaled_shape(width: int, height: int, max_size: int) -> tuple[int, int]:
    """Return ``(width, height)`` shrunk so the longest side fits ``max_size``."""
    scale = min(1.0, float(max_size) / float(max(width, height)))
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def _read_wgs84(dataset, max_size: int) -> tuple[np.ndarray, BoundingBox]:
    """Read all bands reprojected to EPSG:4326 and downsampled."""
    if dataset.crs == WGS84:
        out_width, out_height = _scaled_shape(dataset.width, dataset.height, max_size)
        data = dataset.read(
            out_shape=(dataset.count, out_height, out_width),
            resampling=Resampling.nearest,
        )
        return data, dataset.bounds

    dst_transform, dst_width, dst_height = calculate_default_transform(
        dataset.crs, WGS84, dataset.width, dataset.height, *dataset.bounds
    )
    out_width, out_height = _scaled_shape(dst_width, dst_height, max_size)
    dst_transform = dst_transform * Affine.scale(
        dst_width / out_width, dst_height / out_height
    )
    data = np.zeros((dataset.count, out_height, out_width), dtype=dataset.dtypes[0])
    reproject(
        source=dataset.read(),
        destination=data,
        src_transform=dataset.transform,
        src_crs=dataset.crs,
        dst_transform=dst_transform,
        dst_crs=WGS84,
        resampling=Resampling.nearest,
    )
    west, south, east, north = array_bounds(out_height, out_width, dst_transform)
    return data, BoundingBox(west, south, east, north)


def to_display_image(data: np.ndarray) -> np.ndarray:
    """Convert ``(B, H, W)`` band data to an ``(H, W, C)`` uint8 image.

    Single-band rasters are expanded to grey RGB, 4+ bands keep RGBA and
    3 bands keep RGB.
    """
    if data.ndim != 3:
        raise ValueError("band data must have shape (B, H, W)")
    if data.shape[0] >= 4:
        data = data[:4]
    elif data.shape[0] >= 3:
        data = data[:3]
    else:
        data = np.repeat(data[:1], 3, axis=0)
    image = np.transpose(data, (1, 2, 0))

    if image.dtype != np.uint8:
        image = np.nan_to_num(image.astype(np.float64))
        max_value = image.max()
        if max_value > 0:
            image = (image / max_value * 255).astype(np.uint8)
        else:
            image = image.astype(np.uint8)
    return np.ascontiguousarray(image)


def decode_geotiff(content: bytes, max_size: int = DEFAULT_MAX_SIZE) -> GeoRaster:
    """Decode GeoTIFF bytes into a display-ready raster.

    Parameters
    ----------
    content : bytes
        Raw GeoTIFF file content.
    max_size : int
        Longest output side in pixels.

    Returns
    -------
    GeoRaster
        Image in EPSG:4326 with lat/lng bounds.

    Raises
    ------
    ValueError
        If the raster carries no CRS.
    rasterio.errors.RasterioIOError
        If the bytes are not a readable raster.
    """
    with MemoryFile(content) as memfile:
        with memfile.open() as dataset:
            logger.debug(f"  Size: {dataset.width} x {dataset.height}")
            logger.debug(f"  Bounds: {dataset.bounds}")
            logger.debug(f"  CRS: {dataset.crs}")
            if dataset.crs is None:
                raise ValueError("GeoTIFF has no CRS, cannot place it on the map")
            crs_wkt = dataset.crs.to_wkt()
            data, bounds = _read_wgs84(dataset, max_size)
    return GeoRaster(image=to_display_image(data), bounds=bounds, crs_wkt=crs_wkt)


def load_remote_geotiff(
    url: str,
    timeout: float = DEFAULT_TIMEOUT_S,
    max_size: int = DEFAULT_MAX_SIZE,
) -> GeoRaster:
    """Fetch and decode a remote GeoTIFF."""
    return decode_geotiff(fetch_geotiff(url, timeout=timeout), max_size=max_size)
