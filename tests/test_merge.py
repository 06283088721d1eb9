"""Tests for the merge engine."""

import re
from datetime import datetime
from pathlib import Path

import numpy as np
import pytest

from hdrstack.errors import (
    DecodeError,
    DimensionMismatchError,
    EncodeError,
    InvalidArgumentError,
    PathError,
)
from hdrstack.imaging import merge as merge_module
from hdrstack.imaging.codec import cv2, decode
from hdrstack.imaging.merge import mean_rasters, merge, resolve_output_dir
from hdrstack.models import CanonicalRaster

from conftest import solid_raster


def test_mean_truncates_instead_of_rounding():
    a = CanonicalRaster.from_array(np.array([[[1, 65535, 0]]], dtype=np.uint16))
    b = CanonicalRaster.from_array(np.array([[[2, 65534, 3]]], dtype=np.uint16))

    merged = mean_rasters([a, b])

    # floor(3/2)=1, floor(131069/2)=65534, floor(3/2)=1
    assert tuple(merged.pixels[0, 0]) == (1, 65534, 1)


def test_mean_of_five_max_values_does_not_overflow():
    rasters = [solid_raster(65535) for _ in range(5)]
    assert np.all(mean_rasters(rasters).pixels == 65535)


def test_mean_matches_floor_of_sum():
    rng = np.random.default_rng(1234)
    arrays = [rng.integers(0, 65536, size=(4, 5, 3), dtype=np.uint16) for _ in range(3)]

    merged = mean_rasters([CanonicalRaster.from_array(a) for a in arrays])

    expected = sum(a.astype(np.uint64) for a in arrays) // 3
    assert np.array_equal(merged.pixels, expected.astype(np.uint16))


def test_mean_rejects_mismatched_sizes():
    with pytest.raises(DimensionMismatchError):
        mean_rasters([solid_raster(1, 2, 2), solid_raster(1, 3, 2)])


@pytest.mark.parametrize("count", [0, 1, 6])
def test_merge_rejects_batch_size_before_any_io(tmp_path: Path, count):
    out_dir = tmp_path / "out"
    paths = [str(tmp_path / f"missing_{i}.png") for i in range(count)]

    with pytest.raises(InvalidArgumentError):
        merge(paths, output_dir=out_dir)
    assert not out_dir.exists()


def test_merge_dimension_mismatch(write_png, tmp_path: Path):
    a = write_png("a.png", 10, width=2, height=2)
    b = write_png("b.png", 10, width=3, height=2)
    out_dir = tmp_path / "out"

    with pytest.raises(DimensionMismatchError):
        merge([a, b], output_dir=out_dir)
    assert not out_dir.exists()


def test_merge_propagates_decode_error(write_png, tmp_path: Path):
    a = write_png("a.png", 10)
    with pytest.raises(DecodeError):
        merge([a, str(tmp_path / "missing.png")], output_dir=tmp_path / "out")


def test_merge_three_exposures_end_to_end(write_png, tmp_path: Path):
    paths = [write_png(f"ev{i}.png", value) for i, value in enumerate((100, 200, 300))]
    out_dir = tmp_path / "nested" / "out"

    result = merge(paths, output_dir=out_dir, output_exr=True)

    assert (result.width, result.height) == (2, 2)
    png = Path(result.output_png_path)
    exr = Path(result.output_exr_path)
    assert png.parent == out_dir and exr.parent == out_dir
    assert re.fullmatch(r"hdr_merge_\d{8}_\d{6}", png.stem)
    assert exr.stem == png.stem and exr.suffix == ".exr"

    assert np.all(decode(png).pixels == 200)
    linear = cv2.imread(str(exr), cv2.IMREAD_UNCHANGED)
    assert linear.shape == (2, 2, 3)
    assert np.allclose(linear, 200 / 65535, rtol=1e-6)

    merged_at = datetime.fromisoformat(result.merged_at)
    assert merged_at.utcoffset() is not None


def test_merge_without_exr(write_png):
    paths = [write_png("a.png", 0), write_png("b.png", 65535)]

    result = merge(paths)

    assert result.output_exr_path is None
    png = Path(result.output_png_path)
    assert png.parent == Path(paths[0]).parent
    assert not list(png.parent.glob("*.exr"))
    assert np.all(decode(png).pixels == 32767)


def test_merge_exr_failure_leaves_png(write_png, tmp_path: Path, monkeypatch):
    paths = [write_png("a.png", 10), write_png("b.png", 20)]

    def fail(raster, path):
        raise EncodeError("disk full")

    monkeypatch.setattr(merge_module, "encode_linear_hdr", fail)
    with pytest.raises(EncodeError):
        merge(paths, output_dir=tmp_path / "out", output_exr=True)
    assert len(list((tmp_path / "out").glob("hdr_merge_*.png"))) == 1


def test_merge_uses_injected_decoder(tmp_path: Path):
    rasters = {"a": solid_raster(4), "b": solid_raster(7)}

    result = merge(["a", "b"], output_dir=tmp_path, decoder=rasters.__getitem__)

    assert np.all(decode(result.output_png_path).pixels == 5)


def test_resolve_output_dir_prefers_explicit(tmp_path: Path):
    assert resolve_output_dir(["/x/y/a.png"], tmp_path) == tmp_path
    assert resolve_output_dir(["/x/y/a.png"]) == Path("/x/y")


def test_resolve_output_dir_without_parent():
    with pytest.raises(PathError):
        resolve_output_dir(["/"])
    with pytest.raises(PathError):
        resolve_output_dir([""])
