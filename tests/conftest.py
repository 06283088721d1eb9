"""Shared fixtures for the hdrstack tests."""

import os
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Keep config and logs out of the real home directory. Must happen before
# hdrstack.config is imported anywhere.
os.environ.setdefault("HDRSTACK_HOME", tempfile.mkdtemp(prefix="hdrstack_test_"))

from hdrstack.imaging.codec import encode_display  # noqa: E402
from hdrstack.models import CanonicalRaster  # noqa: E402


def solid_raster(value, width: int = 2, height: int = 2) -> CanonicalRaster:
    """A raster with every channel of every pixel set to `value`."""
    pixels = np.full((height, width, 3), value, dtype=np.uint16)
    return CanonicalRaster.from_array(pixels)


@pytest.fixture
def write_png(tmp_path: Path):
    """Writes a solid 16-bit PNG and returns its path as a string."""
    def _write(name: str, value, width: int = 2, height: int = 2) -> str:
        path = tmp_path / name
        encode_display(solid_raster(value, width, height), path)
        return str(path)
    return _write
