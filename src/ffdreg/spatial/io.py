r"""Serialization of free-form deformations to plain records and files."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import dacite
import torch
import yaml

from ..core.tensor import as_dtype, dtype_name
from ..core.typing import Device, PathStr

from .nonrigid import FreeFormDeformation2d


__all__ = (
    "FreeFormDeformationRecord",
    "read_transform",
    "transform_from_dict",
    "transform_to_dict",
    "write_transform",
)


log = logging.getLogger(__name__)

TRANSFORM_TYPE = "FreeFormDeformation2d"

# Type tag and field names of records in legacy camelCase format
LEGACY_TRANSFORM_TYPES = ("BSplineTransformModel2D",)
LEGACY_FIELD_NAMES = {
    "gridSize": "grid_size",
    "gridSpacing": "grid_spacing",
    "gridOrigin": "grid_origin",
}


@dataclass
class FreeFormDeformationRecord(object):
    r"""Plain record of free-form deformation geometry and parameters."""

    type: str
    grid_size: Tuple[int, int]
    grid_spacing: Tuple[float, float]
    grid_origin: Tuple[float, float]
    parameters: List[float] = field(default_factory=list)
    dtype: Optional[str] = None


def transform_to_dict(transform: FreeFormDeformation2d) -> Dict[str, Any]:
    r"""Convert free-form deformation to plain dictionary."""
    if not isinstance(transform, FreeFormDeformation2d):
        raise TypeError("transform_to_dict() 'transform' must be FreeFormDeformation2d")
    grid = transform.grid()
    record = FreeFormDeformationRecord(
        type=TRANSFORM_TYPE,
        grid_size=list(grid.size()),
        grid_spacing=list(grid.spacing()),
        grid_origin=list(grid.origin()),
        parameters=transform.data().detach().cpu().tolist(),
        dtype=dtype_name(transform.dtype),
    )
    return asdict(record)


def transform_from_dict(
    arg: Mapping[str, Any], device: Optional[Device] = None
) -> FreeFormDeformation2d:
    r"""Create free-form deformation from plain dictionary.

    Besides records created by :func:`transform_to_dict`, records in the legacy format with
    type ``"BSplineTransformModel2D"`` and fields ``gridSize``, ``gridSpacing``, and ``gridOrigin``
    are accepted.

    Raises:
        ValueError: When the type tag is unknown or the number of parameters does not
            match the size of the control vertex grid.

    """
    if not isinstance(arg, Mapping):
        raise TypeError("transform_from_dict() 'arg' must be mapping")
    entries = {}
    for key, value in arg.items():
        name = LEGACY_FIELD_NAMES.get(key, key)
        if name in entries:
            raise ValueError(f"transform_from_dict() duplicate record field {name!r}")
        entries[name] = value
    if entries.get("type") in LEGACY_TRANSFORM_TYPES:
        entries["type"] = TRANSFORM_TYPE
    try:
        record = dacite.from_dict(
            FreeFormDeformationRecord,
            entries,
            config=dacite.Config(cast=[tuple], check_types=False),
        )
    except dacite.DaciteError as error:
        raise ValueError(f"transform_from_dict() invalid record: {error}") from error
    if record.type != TRANSFORM_TYPE:
        raise ValueError(
            f"transform_from_dict() 'type' must be {TRANSFORM_TYPE!r}, got {record.type!r}"
        )
    if len(record.grid_size) != 2:
        raise ValueError("transform_from_dict() 'grid_size' must have two components")
    nx, ny = record.grid_size
    num_params = 2 * nx * ny
    if len(record.parameters) != num_params:
        raise ValueError(
            f"transform_from_dict() 'parameters' must have length {num_params}"
            f" for grid size ({nx}, {ny}), got {len(record.parameters)}"
        )
    dtype = as_dtype(record.dtype) or torch.float
    transform = FreeFormDeformation2d(
        size=record.grid_size,
        spacing=record.grid_spacing,
        origin=record.grid_origin,
        dtype=dtype,
        device=device,
    )
    params = torch.tensor(record.parameters, dtype=dtype)
    return transform.data_(params)


def write_transform(path: PathStr, transform: FreeFormDeformation2d) -> Path:
    r"""Write free-form deformation to YAML or JSON file."""
    path = Path(path).absolute()
    record = transform_to_dict(transform)
    if path.suffix == ".json":
        text = json.dumps(record, indent=2)
    elif path.suffix in (".yaml", ".yml"):
        text = yaml.safe_dump(record, default_flow_style=None, sort_keys=False)
    else:
        raise ValueError(f"write_transform() unsupported file suffix {path.suffix!r}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    log.info(f"Wrote transformation to {path}")
    return path


def read_transform(path: PathStr, device: Optional[Device] = None) -> FreeFormDeformation2d:
    r"""Read free-form deformation from YAML or JSON file."""
    path = Path(path).absolute()
    log.info(f"Read transformation from {path}")
    text = path.read_text()
    if path.suffix == ".json":
        record = json.loads(text)
    elif path.suffix in (".yaml", ".yml"):
        record = yaml.safe_load(text)
    else:
        raise ValueError(f"read_transform() unsupported file suffix {path.suffix!r}")
    return transform_from_dict(record, device=device)
