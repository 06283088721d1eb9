"""Perceptual brightness statistics for decoded exposures."""

import logging
from typing import Iterable, List

import numpy as np

from hdrstack.errors import NoInputError
from hdrstack.imaging.codec import decode
from hdrstack.models import U16_MAX, CanonicalRaster, ImageStat

log = logging.getLogger(__name__)

# ITU-R BT.709 luma coefficients (R, G, B)
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def average_luma(raster: CanonicalRaster) -> float:
    """Mean BT.709 luma of the raster, normalized to [0, 1]."""
    if raster.pixel_count == 0:
        return 0.0
    normalized = raster.pixels.astype(np.float64) / U16_MAX
    total = float((normalized @ LUMA_WEIGHTS).sum(dtype=np.float64))
    return total / raster.pixel_count


def analyze(paths: List[str]) -> List[ImageStat]:
    """Decodes each path in order and returns its average luma.

    The first decode failure propagates; no partial list is returned.
    """
    if not paths:
        raise NoInputError("No images to analyze")

    stats = []
    for path in paths:
        raster = decode(path)
        stats.append(ImageStat(path=path, average_luma=average_luma(raster)))
    log.info("Analyzed %d images", len(stats))
    return stats


def exposure_spread(stats: Iterable[ImageStat]) -> float:
    """Difference between the brightest and darkest exposure in a bracket."""
    values = [stat.average_luma for stat in stats]
    if not values:
        return 0.0
    return max(values) - min(values)
