"""Image decoding into canonical 16-bit RGB, and PNG/OpenEXR encoding.

OpenCV is used for decoding and writing since it handles 16-bit PNG and
float OpenEXR; Pillow is the fallback for encodings OpenCV rejects.
"""

import logging
import os
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image

from hdrstack.errors import DecodeError, EncodeError
from hdrstack.models import U16_MAX, CanonicalRaster, PathLike

# OpenEXR support in the OpenCV wheels is opt-in and read from the environment.
os.environ.setdefault("OPENCV_IO_ENABLE_OPENEXR", "1")
import cv2  # noqa: E402

log = logging.getLogger(__name__)

_PIL_16BIT_MODES = {"I;16", "I;16L", "I;16B", "I;16N"}


def decode(path: PathLike) -> CanonicalRaster:
    """Decodes an image file into a CanonicalRaster.

    Any bit depth or channel layout is accepted: grayscale is replicated to
    three channels, alpha is dropped, 8-bit samples are scaled by 257 and
    floating point samples are clipped to [0, 1] before scaling.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DecodeError(f"Failed to open {path}: {e}") from e

    pixels = _decode_with_opencv(data)
    if pixels is None:
        log.debug("OpenCV could not decode %s. Trying Pillow.", path)
        pixels = _decode_with_pillow(data, path)

    raster = CanonicalRaster.from_array(_to_rgb16(pixels, path))
    log.debug("Decoded %s (%dx%d)", path, raster.width, raster.height)
    return raster


def _decode_with_opencv(data: bytes):
    """Returns an RGB(A) or grayscale array, or None if OpenCV can't parse it."""
    if not data:
        return None
    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        log.debug("cv2.imdecode raised: %s", e)
        return None
    if arr is None:
        return None
    if arr.ndim == 3 and arr.shape[2] == 3:
        return arr[..., ::-1]
    if arr.ndim == 3 and arr.shape[2] == 4:
        return arr[..., [2, 1, 0]]
    return arr


def _decode_with_pillow(data: bytes, path: Path) -> np.ndarray:
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if img.mode in _PIL_16BIT_MODES:
                return np.array(img, dtype=np.uint16)
            if img.mode in ("I", "F"):
                return np.array(img)
            return np.array(img.convert("RGB"))
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to decode {path}: {e}") from e


def _to_rgb16(arr: np.ndarray, path: Path) -> np.ndarray:
    if arr.ndim == 2:
        arr = arr[..., np.newaxis]
    if arr.ndim != 3:
        raise DecodeError(f"Failed to decode {path}: unexpected array shape {arr.shape}")

    channels = arr.shape[2]
    if channels in (1, 2):
        # Gray, or gray + alpha
        arr = np.repeat(arr[..., :1], 3, axis=2)
    elif channels > 3:
        arr = arr[..., :3]

    if arr.dtype == np.uint8:
        return arr.astype(np.uint16) * 257
    if arr.dtype == np.uint16:
        return arr
    if np.issubdtype(arr.dtype, np.floating):
        scaled = np.clip(np.nan_to_num(arr), 0.0, 1.0) * U16_MAX
        return np.rint(scaled).astype(np.uint16)
    if np.issubdtype(arr.dtype, np.integer):
        return np.clip(arr, 0, U16_MAX).astype(np.uint16)
    raise DecodeError(f"Failed to decode {path}: unsupported sample type {arr.dtype}")


def encode_display(raster: CanonicalRaster, path: PathLike) -> None:
    """Writes the raster as a 16-bit RGB PNG. The parent directory must exist."""
    path = Path(path)
    bgr = np.ascontiguousarray(raster.pixels[..., ::-1])
    try:
        ok, encoded = cv2.imencode(".png", bgr)
    except cv2.error as e:
        raise EncodeError(f"Failed to encode {path}: {e}") from e
    if not ok:
        raise EncodeError(f"Failed to encode {path}")

    try:
        path.write_bytes(encoded.tobytes())
    except OSError as e:
        raise EncodeError(f"Failed to write {path}: {e}") from e
    log.info("Wrote display image %s", path)


def encode_linear_hdr(raster: CanonicalRaster, path: PathLike) -> None:
    """Writes the raster as a linear 32-bit float OpenEXR, values in [0, 1]."""
    path = Path(path)
    if not path.parent.is_dir():
        raise EncodeError(f"Failed to write {path}: directory {path.parent} does not exist")

    linear = raster.pixels.astype(np.float32) / np.float32(U16_MAX)
    bgr = np.ascontiguousarray(linear[..., ::-1])
    params = [cv2.IMWRITE_EXR_TYPE, cv2.IMWRITE_EXR_TYPE_FLOAT]
    try:
        ok = cv2.imwrite(str(path), bgr, params)
    except cv2.error as e:
        raise EncodeError(f"Failed to write {path}: {e}") from e
    if not ok:
        raise EncodeError(f"Failed to write {path}: OpenEXR writer reported failure")
    log.info("Wrote linear HDR image %s", path)
