"""Pytest bootstrap helpers shared by all test domains."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import numpy as np
import pytest


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture
def make_geotiff_bytes():
    """Return a factory writing a small north-up GeoTIFF to bytes."""
    from affine import Affine
    from rasterio.io import MemoryFile

    def _make(
        width: int = 32,
        height: int = 16,
        left: float = 4.8,
        top: float = 43.96,
        res: float = 0.001,
        fill: int = 90,
    ) -> bytes:
        data = np.full((3, height, width), fill, dtype=np.uint8)
        with MemoryFile() as memfile:
            with memfile.open(
                driver="GTiff",
                width=width,
                height=height,
                count=3,
                dtype="uint8",
                crs="EPSG:4326",
                transform=Affine(res, 0, left, 0, -res, top),
            ) as dataset:
                dataset.write(data)
            return memfile.read()

    return _make
