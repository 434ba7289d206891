r"""Configuration dataclasses which can be loaded from YAML or JSON files."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

import dacite
import yaml

from .typing import PathStr


__all__ = ("DataclassConfig", "ControlGridConfig", "load_config")


log = logging.getLogger(__name__)

TDataclassConfig = TypeVar("TDataclassConfig", bound="DataclassConfig")


def load_config(path: PathStr) -> Dict[str, Any]:
    r"""Load configuration entries from YAML or JSON file."""
    config_path = Path(path).absolute()
    log.info(f"Load configuration from {config_path}")
    config_text = config_path.read_text()
    if config_path.suffix == ".json":
        return json.loads(config_text)
    if config_path.suffix in (".yaml", ".yml"):
        return yaml.safe_load(config_text) or {}
    raise ValueError(f"load_config() unsupported file suffix {config_path.suffix!r}")


class DataclassConfig(object):
    r"""Base class of configuration dataclasses."""

    @classmethod
    def from_dict(cls: Type[TDataclassConfig], arg: Mapping[str, Any]) -> TDataclassConfig:
        r"""Create configuration from dictionary, e.g., loaded from a YAML file."""
        if not isinstance(arg, Mapping):
            raise TypeError(f"{cls.__name__}.from_dict() 'arg' must be mapping")
        return dacite.from_dict(cls, dict(arg), config=dacite.Config(cast=[tuple], check_types=False))

    @classmethod
    def from_path(cls: Type[TDataclassConfig], path: PathStr) -> TDataclassConfig:
        r"""Load configuration from YAML or JSON file."""
        return cls.from_dict(load_config(path))

    def asdict(self) -> Dict[str, Any]:
        r"""Get dictionary of configuration entries."""
        return asdict(self)


@dataclass
class ControlGridConfig(DataclassConfig):
    r"""Geometry of free-form deformation control vertex grid."""

    size: Tuple[int, int] = (1, 1)
    spacing: Tuple[float, float] = (1.0, 1.0)
    origin: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self):
        for n in self.size:
            if isinstance(n, bool) or int(n) != n:
                raise TypeError(f"{type(self).__name__}() 'size' must be integral")
        self.size = tuple(int(n) for n in self.size)
        self.spacing = tuple(float(s) for s in self.spacing)
        self.origin = tuple(float(x) for x in self.origin)
        if len(self.size) != 2 or len(self.spacing) != 2 or len(self.origin) != 2:
            raise ValueError(f"{type(self).__name__}() entries must have two components")
        if any(n < 1 for n in self.size):
            raise ValueError(f"{type(self).__name__}() 'size' must be positive")
        if not all(s > 0 for s in self.spacing):
            raise ValueError(f"{type(self).__name__}() 'spacing' must be positive")
