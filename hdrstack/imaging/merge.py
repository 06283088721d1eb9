"""Merges a bracket of exposures into one averaged raster.

This is a plain per-channel mean, not radiometric HDR reconstruction: no
exposure weighting, tone mapping, alignment or ghost removal. The mean is
truncated (floor), never rounded, so results are bit-reproducible.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from hdrstack.errors import DimensionMismatchError, InvalidArgumentError, PathError
from hdrstack.imaging.codec import decode, encode_display, encode_linear_hdr
from hdrstack.models import CanonicalRaster, MergeRequest, MergeResult, PathLike

log = logging.getLogger(__name__)

MIN_MERGE_IMAGES = 2
MAX_MERGE_IMAGES = 5
OUTPUT_PREFIX = "hdr_merge_"


def _now() -> datetime:
    return datetime.now().astimezone()


def mean_rasters(rasters: Sequence[CanonicalRaster]) -> CanonicalRaster:
    """Per-pixel, per-channel floor(sum / N) over equally sized rasters."""
    if not rasters:
        raise InvalidArgumentError("No rasters to merge")

    first = rasters[0]
    for raster in rasters[1:]:
        if (raster.width, raster.height) != (first.width, first.height):
            raise DimensionMismatchError(
                f"Image sizes do not match: {first.width}x{first.height} "
                f"vs {raster.width}x{raster.height}"
            )

    total = np.zeros(first.pixels.shape, dtype=np.uint64)
    for raster in rasters:
        total += raster.pixels
    merged = total // np.uint64(len(rasters))
    return CanonicalRaster.from_array(merged.astype(np.uint16))


def resolve_output_dir(paths: Sequence[str], output_dir: Optional[PathLike] = None) -> Path:
    """The explicit output dir, else the directory holding the first input."""
    if output_dir:
        return Path(output_dir)

    first = Path(paths[0]) if paths and paths[0] else None
    if first is None or first.parent == first:
        raise PathError(f"Could not determine an output directory from {paths[0] if paths else None!r}")
    return first.parent


def merge(
    paths: Sequence[str],
    output_dir: Optional[PathLike] = None,
    output_exr: bool = False,
    decoder: Callable[[PathLike], CanonicalRaster] = decode,
) -> MergeResult:
    """Decodes, averages and writes a bracket of 2 to 5 exposures.

    The PNG is always written; the EXR only when `output_exr` is set. The
    PNG is written first, so an EXR failure can leave the PNG behind.
    """
    count = len(paths)
    if count < MIN_MERGE_IMAGES:
        raise InvalidArgumentError(f"At least {MIN_MERGE_IMAGES} images are required to merge, got {count}")
    if count > MAX_MERGE_IMAGES:
        raise InvalidArgumentError(f"At most {MAX_MERGE_IMAGES} images can be merged, got {count}")

    rasters: List[CanonicalRaster] = [decoder(path) for path in paths]
    merged = mean_rasters(rasters)
    log.info("Merged %d exposures at %dx%d", count, merged.width, merged.height)

    out_dir = resolve_output_dir(paths, output_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PathError(f"Failed to create output directory {out_dir}: {e}") from e

    base_name = OUTPUT_PREFIX + datetime.now().strftime("%Y%m%d_%H%M%S")
    png_path = out_dir / f"{base_name}.png"
    encode_display(merged, png_path)

    exr_path = None
    if output_exr:
        exr_path = out_dir / f"{base_name}.exr"
        encode_linear_hdr(merged, exr_path)

    return MergeResult(
        output_png_path=str(png_path),
        output_exr_path=str(exr_path) if exr_path else None,
        width=merged.width,
        height=merged.height,
        merged_at=_now().isoformat(),
    )


def merge_request(request: MergeRequest) -> MergeResult:
    return merge(request.paths, request.output_dir, request.output_exr)
