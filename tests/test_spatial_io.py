from pathlib import Path

import pytest

import torch
import yaml

from ffdreg.spatial import FreeFormDeformation2d
from ffdreg.spatial import read_transform, transform_from_dict, transform_to_dict, write_transform


def random_ffd(dtype: torch.dtype) -> FreeFormDeformation2d:
    generator = torch.Generator("cpu").manual_seed(42)
    ffd = FreeFormDeformation2d((4, 3), spacing=(0.25, 1.5), origin=(-1.5, 2), dtype=dtype)
    params = torch.randn(ffd.num_params(), generator=generator, dtype=torch.float64)
    return ffd.data_(params.mul(3))


def assert_equal_ffd(a: FreeFormDeformation2d, b: FreeFormDeformation2d) -> None:
    assert a.grid() == b.grid()
    assert a.dtype == b.dtype
    assert torch.equal(a.data(), b.data())


@pytest.mark.parametrize("dtype", [torch.float32, torch.float64])
def test_transform_dict(dtype: torch.dtype) -> None:
    ffd = random_ffd(dtype)
    record = transform_to_dict(ffd)
    assert record["type"] == "FreeFormDeformation2d"
    assert record["grid_size"] == [4, 3]
    assert record["grid_spacing"] == [0.25, 1.5]
    assert record["grid_origin"] == [-1.5, 2.0]
    assert len(record["parameters"]) == 24
    assert record["dtype"] == str(dtype).split(".")[-1]
    assert record == ffd.to_dict()
    assert_equal_ffd(transform_from_dict(record), ffd)
    assert_equal_ffd(FreeFormDeformation2d.from_dict(record), ffd)


@pytest.mark.parametrize("dtype", [torch.float32, torch.float64])
@pytest.mark.parametrize("suffix", [".json", ".yaml", ".yml"])
def test_transform_file(tmp_path: Path, dtype: torch.dtype, suffix: str) -> None:
    ffd = random_ffd(dtype)
    path = write_transform(tmp_path / "subdir" / f"ffd{suffix}", ffd)
    assert path.is_file()
    assert_equal_ffd(read_transform(path), ffd)


def test_transform_yaml_format(tmp_path: Path) -> None:
    ffd = FreeFormDeformation2d((2, 1), dtype=torch.float64)
    ffd.set_dx(2, 1, 0.5)
    path = write_transform(tmp_path / "ffd.yaml", ffd)
    record = yaml.safe_load(path.read_text())
    assert record["type"] == "FreeFormDeformation2d"
    assert record["grid_size"] == [2, 1]
    assert record["parameters"] == [0.0, 0.0, 0.5, 0.0]
    assert record["dtype"] == "float64"


def test_transform_from_dict_without_dtype() -> None:
    record = {
        "type": "FreeFormDeformation2d",
        "grid_size": [1, 2],
        "grid_spacing": [1, 1],
        "grid_origin": [0, 0],
        "parameters": [1, 2, 3, 4],
    }
    ffd = transform_from_dict(record)
    assert ffd.size() == (1, 2)
    assert ffd.dtype == torch.float32
    assert ffd.data().tolist() == [1, 2, 3, 4]
    assert ffd.get_dy(1, 2) == 4


def test_transform_from_legacy_dict() -> None:
    record = {
        "type": "BSplineTransformModel2D",
        "gridSize": [2, 1],
        "gridSpacing": [0.5, 2],
        "gridOrigin": [-1, 3],
        "parameters": [0.5, -1, 0, 2],
    }
    ffd = transform_from_dict(record)
    assert ffd.size() == (2, 1)
    assert ffd.spacing() == (0.5, 2.0)
    assert ffd.origin() == (-1.0, 3.0)
    assert ffd.get_dx(1, 1) == 0.5
    assert ffd.get_dy(2, 1) == 2
    assert transform_to_dict(ffd)["type"] == "FreeFormDeformation2d"

    mixed = dict(record, type="FreeFormDeformation2d")
    assert transform_from_dict(mixed).grid() == ffd.grid()

    with pytest.raises(ValueError):
        transform_from_dict(dict(record, grid_size=[2, 1]))
    with pytest.raises(ValueError):
        transform_from_dict(dict(record, parameters=[0.5, -1, 0]))


@pytest.mark.parametrize("size", [(1, 1), (3, 4), (10, 10)])
def test_transform_from_dict_length_mismatch(size) -> None:
    record = transform_to_dict(FreeFormDeformation2d(size))
    params = record["parameters"]
    for parameters in (params[:-1], params + [0.0], params[: len(params) // 2], []):
        with pytest.raises(ValueError):
            transform_from_dict(dict(record, parameters=parameters))


def test_transform_from_dict_invalid() -> None:
    record = transform_to_dict(FreeFormDeformation2d((2, 2)))
    with pytest.raises(ValueError):
        transform_from_dict(dict(record, type="AffineTransform"))
    with pytest.raises(ValueError):
        transform_from_dict({k: v for k, v in record.items() if k != "grid_size"})
    with pytest.raises(ValueError):
        transform_from_dict(dict(record, grid_size=[2, 2, 1]))
    with pytest.raises(ValueError):
        transform_from_dict(dict(record, grid_spacing=[1, 0]))
    with pytest.raises(TypeError):
        transform_from_dict([record])


def test_transform_file_invalid_suffix(tmp_path: Path) -> None:
    ffd = FreeFormDeformation2d()
    with pytest.raises(ValueError):
        write_transform(tmp_path / "ffd.txt", ffd)
    path = tmp_path / "ffd.txt"
    path.write_text("{}")
    with pytest.raises(ValueError):
        read_transform(path)
