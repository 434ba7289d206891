r"""Spatial transformation models.

Each transformation model is a ``torch.nn.Module`` subclass of :class:`.ParametricTransform`,
whose ``forward()`` method maps points of shape ``(N, D)`` to transformed points. Derivatives
with respect to the spatial coordinates and the model parameters are provided by dedicated
methods, which are used by regularization terms and gradient-based optimizers.

"""

from .base import ParametricTransform

from .nonrigid import FreeFormDeformation2d

from .io import FreeFormDeformationRecord
from .io import read_transform
from .io import transform_from_dict
from .io import transform_to_dict
from .io import write_transform


__all__ = (
    "FreeFormDeformation2d",
    "FreeFormDeformationRecord",
    "ParametricTransform",
    "read_transform",
    "transform_from_dict",
    "transform_to_dict",
    "write_transform",
)
