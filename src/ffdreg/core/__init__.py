r"""Common types and functions that operate on tensors representing a free-form deformation.

This core library defines the control vertex grid geometry, the cubic B-spline basis, and a
functional API of state-less functions which evaluate a cubic B-spline free-form deformation
and its derivatives given the grid and a flat parameter vector. Object-oriented APIs such as
:class:`ffdreg.spatial.FreeFormDeformation2d` use this functional API to realize their
functionality.

"""

from .config import ControlGridConfig
from .config import DataclassConfig
from .config import load_config

from .grid import ControlGrid

from .logging import LOG_FORMAT
from .logging import LogLevel
from .logging import configure_logging

from .typing import Array
from .typing import Device
from .typing import DType
from .typing import LossReduction
from .typing import PathStr
from .typing import Scalar


__all__ = (
    "Array",
    "ControlGrid",
    "ControlGridConfig",
    "DataclassConfig",
    "Device",
    "DType",
    "LOG_FORMAT",
    "LogLevel",
    "LossReduction",
    "PathStr",
    "Scalar",
    "configure_logging",
    "load_config",
)
